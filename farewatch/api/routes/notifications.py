"""
Notification channel endpoints: configuration status and test messages.
"""

import logging

from fastapi import APIRouter, Depends

from farewatch.api.dependencies import get_dispatcher
from farewatch.api.schemas.notification import NotificationTestRequest
from farewatch.notifications.notification_service import NotificationDispatcher, resolve_channels

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/notifications")
async def notification_status(dispatcher: NotificationDispatcher = Depends(get_dispatcher)):
    """Report which channels are configured, with masked destinations."""
    return {"success": True, "data": dispatcher.channel_status()}


@router.post("/notifications/test")
async def send_test_notification(
    payload: NotificationTestRequest,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
):
    """
    Send a test message on the chosen channel(s).

    Always 200: each channel reports its own success, so an unconfigured or
    failing channel does not hide the outcome of the others.
    """
    results = await dispatcher.send_test(resolve_channels(payload.channel))
    delivered = sum(1 for r in results if r.delivered)
    logger.info(f"Test notification ({payload.channel}): {delivered}/{len(results)} delivered")
    return {
        "success": True,
        "data": [
            {"channel": r.channel.value.lower(), "success": r.delivered, "error": r.error}
            for r in results
        ],
    }
