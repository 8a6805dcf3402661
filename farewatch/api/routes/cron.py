"""
Cron trigger endpoint.

An external periodic job runner calls this to run one tracking cycle.
When CRON_SECRET is set the caller must send it as a bearer token.
"""

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from fastapi.responses import JSONResponse

from farewatch.api.dependencies import get_app_settings, get_tracking_cycle
from farewatch.config import Settings
from farewatch.services.tracking_cycle import TrackingCycle

logger = logging.getLogger(__name__)

router = APIRouter()


def verify_cron_secret(
    authorization: Optional[str] = Header(None),
    settings: Settings = Depends(get_app_settings),
) -> None:
    if not settings.cron_secret:
        return
    expected = f"Bearer {settings.cron_secret}"
    if not authorization or not secrets.compare_digest(authorization, expected):
        logger.warning("Rejected cron trigger with missing or invalid bearer token")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"success": False, "error": "Unauthorized"},
        )


@router.api_route(
    "/cron/run-tasks",
    methods=["GET", "POST"],
    dependencies=[Depends(verify_cron_secret)],
)
async def run_tasks(cycle: TrackingCycle = Depends(get_tracking_cycle)):
    """
    Run due scheduled tasks and pending price alerts.

    Per-item failures are reported in the body with status 200; a 500 means
    the batch itself could not run.
    """
    try:
        report = await cycle.run()
    except Exception as e:
        logger.error(f"Tracking cycle could not run: {e}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "success": False,
                "error": "Failed to run scheduled tasks",
                "details": str(e),
                "error_code": getattr(getattr(e, "code", None), "value", None),
            },
        )
    return report.to_dict()
