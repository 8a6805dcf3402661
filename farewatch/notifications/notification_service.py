"""
Notification dispatch for price events.

Decides whether a task execution deserves a notification, builds the
payload and delivers it over every configured channel. Channels fail
independently; a failed delivery is logged and reported, never raised.
Successful deliveries are written to the notifications audit table.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Dict, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from farewatch.config import Settings, settings as default_settings
from farewatch.exceptions import NotificationException
from farewatch.models.notification import NotificationRecord
from farewatch.models.scheduled_task import ScheduledTask
from farewatch.monitoring.metrics import track_notification
from farewatch.notifications.email_sender import EmailNotifier
from farewatch.notifications.messages import AlertPayload, Channel, NotificationType
from farewatch.notifications.telegram import TelegramNotifier
from farewatch.utils.clock import Clock, SystemClock
from farewatch.utils.logging_config import get_logger

if TYPE_CHECKING:
    from farewatch.services.task_scheduler import TaskExecutionResult

logger = logging.getLogger(__name__)

PRICE_DROP_THRESHOLD_PERCENT = -5

CHANNEL_SETUP_HINTS = {
    Channel.EMAIL: "Email not configured. Set SMTP_USER, SMTP_PASSWORD and NOTIFICATION_EMAIL.",
    Channel.TELEGRAM: "Telegram not configured. Set TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID.",
}


def should_notify(result: "TaskExecutionResult") -> Optional[NotificationType]:
    """
    Pick the notification for a task execution, or None to stay silent.

    Target hit wins over a new low, which wins over a drop of 5% or more.
    """
    if not result.success or result.current_price is None:
        return None
    if result.hit_target:
        return NotificationType.PRICE_TARGET
    if result.is_new_low:
        return NotificationType.NEW_LOW
    if (
        result.price_change_percent is not None
        and result.price_change_percent <= PRICE_DROP_THRESHOLD_PERCENT
    ):
        return NotificationType.PRICE_DROP
    return None


def build_task_payload(
    task: ScheduledTask,
    result: "TaskExecutionResult",
    notification_type: NotificationType,
    departure_date: str,
    return_date: Optional[str] = None,
) -> AlertPayload:
    """Payload for a scheduled task; dates are the resolved ones the search used."""
    offer = result.best_offer
    return AlertPayload(
        type=notification_type,
        title=task.name,
        origin=task.origin,
        destination=task.destination,
        departure_date=departure_date,
        return_date=return_date,
        current_price=result.current_price,
        currency=offer.currency if offer else default_settings.default_currency,
        previous_price=result.previous_price,
        lowest_price=task.lowest_price,
        price_target=task.price_target,
        airlines=list(offer.airlines) if offer else [],
        is_new_low=result.is_new_low,
        hit_target=result.hit_target,
        task_id=task.id,
    )


CHANNEL_CHOICES = ("email", "telegram", "all")


def resolve_channels(name: str) -> List[Channel]:
    """Channels selected by 'email', 'telegram' or 'all'."""
    name = name.strip().lower()
    if name not in CHANNEL_CHOICES:
        raise ValueError(f"Unknown notification channel '{name}'")
    if name == "all":
        return list(Channel)
    return [Channel(name.upper())]

def build_sample_payload() -> AlertPayload:
    """A fixed price event used to check channel setup."""
    return AlertPayload(
        type=NotificationType.PRICE_TARGET,
        title="Test Notification",
        origin="JFK",
        destination="LHR",
        departure_date="2025-03-15",
        return_date="2025-03-22",
        current_price=450.0,
        currency="USD",
        previous_price=520.0,
        lowest_price=450.0,
        price_target=500.0,
        airlines=["BA"],
        is_new_low=True,
        hit_target=True,
    )


def mask_email(email: str) -> str:
    local, _, domain = email.partition("@")
    if not domain:
        return email
    masked_local = f"{local[0]}***{local[-1]}" if len(local) > 2 else "***"
    return f"{masked_local}"


@dataclass
class DeliveryResult:
    channel: Channel
    delivered: bool
    error: Optional[str] = None
    skipped: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "channel": self.channel.value,
            "delivered": self.delivered,
            "error": self.error,
        }


class NotificationDispatcher:
    """
    Delivers AlertPayloads over email and Telegram.

    Each send runs under ``timeout`` seconds. With a ``session_factory`` every
    successful delivery is recorded as a NotificationRecord in its own
    session, so recording never interferes with the caller's transaction.
    """

    def __init__(
        self,
        email_notifier: Optional[EmailNotifier] = None,
        telegram_notifier: Optional[TelegramNotifier] = None,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        clock: Optional[Clock] = None,
        timeout: Optional[float] = None,
        enabled: Optional[bool] = None,
    ):
        self.email_notifier = email_notifier
        self.telegram_notifier = telegram_notifier
        self.session_factory = session_factory
        self.clock = clock or SystemClock()
        self.timeout = timeout if timeout is not None else default_settings.notification_timeout_seconds
        self.enabled = enabled if enabled is not None else default_settings.enable_notifications

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
        clock: Optional[Clock] = None,
    ) -> "NotificationDispatcher":
        return cls(
            email_notifier=EmailNotifier(settings),
            telegram_notifier=TelegramNotifier.from_settings(settings),
            session_factory=session_factory,
            clock=clock,
            timeout=settings.notification_timeout_seconds,
            enabled=settings.enable_notifications,
        )

    def is_channel_configured(self, channel: Channel) -> bool:
        if channel == Channel.EMAIL:
            return self.email_notifier is not None and self.email_notifier.is_configured
        if channel == Channel.TELEGRAM:
            return self.telegram_notifier is not None and self.telegram_notifier.is_configured
        return False

    @property
    def configured_channels(self) -> List[Channel]:
        return [channel for channel in Channel if self.is_channel_configured(channel)]

    async def notify(self, channel: Channel, payload: AlertPayload) -> DeliveryResult:
        """
        Deliver ``payload`` on one channel.

        Never raises for delivery problems: the outcome is in the result.
        """
        if not self.enabled:
            track_notification(channel.value, "skipped")
            return DeliveryResult(channel, delivered=False, error="Notifications disabled", skipped=True)

        if not self.is_channel_configured(channel):
            track_notification(channel.value, "skipped")
            return DeliveryResult(channel, delivered=False, error=f"{channel.value} not configured", skipped=True)

        return await self._deliver(channel, payload, self._send(channel, payload))

    async def _deliver(
        self, channel: Channel, payload: AlertPayload, send: Awaitable[None], record: bool = True
    ) -> DeliveryResult:
        try:
            await asyncio.wait_for(send, timeout=self.timeout)
        except asyncio.TimeoutError:
            return self._failed(channel, payload, f"Timed out after {self.timeout}s")
        except NotificationException as e:
            return self._failed(channel, payload, str(e))
        except Exception as e:
            logger.error(f"Unexpected error delivering {channel.value} notification: {e}", exc_info=True)
            return self._failed(channel, payload, str(e) or e.__class__.__name__)

        track_notification(channel.value, "delivered")
        logger.info(f"{channel.value} notification delivered: {payload.type.value} {payload.route}")
        if record:
            await self._record(channel, payload)
        return DeliveryResult(channel, delivered=True)

    async def notify_all(
        self,
        payload: AlertPayload,
        channels: Optional[Iterable[Channel]] = None,
    ) -> List[DeliveryResult]:
        """Deliver on every configured channel concurrently."""
        targets = [c for c in (channels or Channel) if self.is_channel_configured(c)]
        if not self.enabled or not targets:
            logger.debug(f"No notification channels available for {payload.route}")
            return []
        return list(await asyncio.gather(*(self.notify(c, payload) for c in targets)))

    async def send_test(self, channels: Optional[Iterable[Channel]] = None) -> List[DeliveryResult]:
        """
        Send a test message on each requested channel, one after another.

        Email gets the sample price alert, Telegram a connection check.
        Unconfigured channels are reported with the settings they need.
        Test messages bypass ENABLE_NOTIFICATIONS and are not written to
        the audit log.
        """
        payload = build_sample_payload()
        results = []
        for channel in channels or Channel:
            if not self.is_channel_configured(channel):
                results.append(
                    DeliveryResult(channel, delivered=False, error=CHANNEL_SETUP_HINTS[channel], skipped=True)
                )
                continue
            results.append(
                await self._deliver(channel, payload, self._send_test(channel, payload), record=False)
            )
        return results

    def channel_status(self) -> Dict[str, Dict[str, Any]]:
        """Whether each channel is configured, with its masked destination."""
        email = self.email_notifier
        telegram = self.telegram_notifier
        return {
            "email": {
                "configured": self.is_channel_configured(Channel.EMAIL),
                "recipient": mask_email(email.user_email) if email and email.user_email else None,
            },
            "telegram": {
                "configured": self.is_channel_configured(Channel.TELEGRAM),
                "chat_id": f"...{telegram.chat_id[-4:]}" if telegram and telegram.chat_id else None,
            },
        }

    async def _send(self, channel: Channel, payload: AlertPayload) -> None:
        if channel == Channel.EMAIL:
            if not await self.email_notifier.send_price_alert(payload):
                raise NotificationException("Email delivery failed")
        else:
            await self.telegram_notifier.send_price_alert(payload)

    async def _send_test(self, channel: Channel, payload: AlertPayload) -> None:
        if channel == Channel.TELEGRAM:
            await self.telegram_notifier.send_test_message()
        else:
            await self._send(channel, payload)

    def _failed(self, channel: Channel, payload: AlertPayload, error: str) -> DeliveryResult:
        track_notification(channel.value, "failed")
        failure_logger = get_logger(
            __name__,
            {"channel": channel.value, "task_id": payload.task_id, "alert_id": payload.alert_id},
        )
        failure_logger.error(
            f"{channel.value} notification failed for {payload.route} "
            f"({payload.type.value}): {error}"
        )
        return DeliveryResult(channel, delivered=False, error=error)

    async def _record(self, channel: Channel, payload: AlertPayload) -> None:
        if self.session_factory is None:
            return
        try:
            async with self.session_factory() as session:
                session.add(
                    NotificationRecord(
                        task_id=payload.task_id,
                        alert_id=payload.alert_id,
                        type=payload.type.value,
                        channel=channel.value,
                        payload=payload.to_record(),
                        sent_at=self.clock.now(),
                    )
                )
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to record {channel.value} notification: {e}", exc_info=True)

    async def aclose(self) -> None:
        if self.telegram_notifier is not None:
            await self.telegram_notifier.aclose()
