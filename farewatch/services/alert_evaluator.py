"""
Price alert evaluation.

Each pending alert (active, not yet triggered, not expired) is priced with
a single cheapest-offer search. An alert whose price reaches its target
is marked triggered and announced on every channel; it is never
evaluated again. Expired alerts are deleted at the end of every pass
whether or not they triggered.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from farewatch.config import settings
from farewatch.exceptions import ConfigurationException
from farewatch.models.price_alert import PriceAlert
from farewatch.monitoring.metrics import track_alert_check
from farewatch.notifications.messages import AlertPayload, NotificationType
from farewatch.notifications.notification_service import DeliveryResult, NotificationDispatcher
from farewatch.providers.base import FlightSearchGateway
from farewatch.providers.exceptions import FlightSearchError
from farewatch.providers.schemas import FlightSearchRequest, NormalizedOffer
from farewatch.services.task_scheduler import NO_FLIGHTS_FOUND
from farewatch.utils.clock import Clock, SystemClock
from farewatch.utils.work_queue import DelayPolicy, FixedDelay, SequentialWorkQueue

logger = logging.getLogger(__name__)


@dataclass
class AlertCheckResult:
    alert_id: int
    success: bool
    triggered: bool = False
    current_price: Optional[float] = None
    target_price: Optional[float] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    notifications: List[DeliveryResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "alert_id": self.alert_id,
            "success": self.success,
            "triggered": self.triggered,
            "current_price": self.current_price,
            "target_price": self.target_price,
            "error": self.error,
            "error_code": self.error_code,
            "notifications": [n.to_dict() for n in self.notifications],
        }


def build_alert_payload(alert: PriceAlert, offer: NormalizedOffer) -> AlertPayload:
    return AlertPayload(
        type=NotificationType.ALERT_TRIGGERED,
        title=f"Price alert {alert.origin}-{alert.destination}",
        origin=alert.origin,
        destination=alert.destination,
        departure_date=alert.departure_date.isoformat(),
        return_date=alert.return_date.isoformat() if alert.return_date else None,
        current_price=float(offer.price),
        currency=offer.currency,
        price_target=alert.target_price,
        airlines=list(offer.airlines),
        hit_target=True,
        alert_id=alert.id,
    )


class PriceAlertEvaluator:
    """Checks pending price alerts against the flight search gateway."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        gateway: FlightSearchGateway,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Optional[Clock] = None,
        delay_policy: Optional[DelayPolicy] = None,
    ):
        self.session_factory = session_factory
        self.gateway = gateway
        self.dispatcher = dispatcher
        self.clock = clock or SystemClock()
        self.delay_policy = delay_policy or FixedDelay(settings.alert_delay_seconds)

    async def pending_alerts(self) -> List[PriceAlert]:
        now = self.clock.now()
        async with self.session_factory() as db:
            query = (
                select(PriceAlert)
                .where(PriceAlert.active.is_(True))
                .where(PriceAlert.triggered.is_(False))
                .where(PriceAlert.expires_at > now)
                .order_by(PriceAlert.id.asc())
            )
            result = await db.execute(query)
            return list(result.scalars().all())

    async def check_all_alerts(self) -> List[AlertCheckResult]:
        """
        Price every pending alert, then delete expired ones.

        Raises:
            GatewayConfigurationError: The gateway cannot be used
        """
        alerts = await self.pending_alerts()
        logger.info(f"Checking {len(alerts)} price alerts")

        queue = SequentialWorkQueue(self.delay_policy, is_failure=lambda r: not r.success)
        try:
            results = await queue.run([alert.id for alert in alerts], self._check_isolated)
        finally:
            deleted = await self.delete_expired()
            if deleted:
                logger.info(f"Deleted {deleted} expired price alerts")
        return results

    async def _check_isolated(self, alert_id: int) -> AlertCheckResult:
        try:
            return await self.check_alert(alert_id)
        except ConfigurationException:
            raise
        except Exception as e:
            logger.error(f"Unexpected error checking alert {alert_id}: {e}", exc_info=True)
            track_alert_check("failed")
            return AlertCheckResult(alert_id, success=False, error=str(e), error_code="INTERNAL_ERROR")

    async def check_alert(self, alert_id: int) -> AlertCheckResult:
        """Price one alert. Search failures are returned, not raised."""
        async with self.session_factory() as db:
            alert = await db.get(PriceAlert, alert_id)
            if alert is None:
                return AlertCheckResult(alert_id, success=False, error=f"Alert {alert_id} not found")

            request = FlightSearchRequest(
                origin=alert.origin,
                destination=alert.destination,
                departure_date=alert.departure_date,
                return_date=alert.return_date,
                max_results=1,
            )

            try:
                search_result = await self.gateway.search(request)
            except ConfigurationException:
                raise
            except FlightSearchError as e:
                logger.warning(f"Alert check failed for alert {alert.id} ({alert.route}): {e.message}")
                track_alert_check("failed")
                return AlertCheckResult(
                    alert.id,
                    success=False,
                    target_price=alert.target_price,
                    error=e.message,
                    error_code=e.code.value,
                )

            offer = search_result.cheapest
            if offer is None:
                track_alert_check("no_results")
                return AlertCheckResult(
                    alert.id, success=True, target_price=alert.target_price, error=NO_FLIGHTS_FOUND
                )

            alert.current_price = float(offer.price)
            alert.currency = offer.currency
            alert.flight_offer_id = offer.id
            alert.airlines = list(offer.airlines)

            triggered = alert.current_price <= alert.target_price
            if triggered:
                alert.triggered = True
                alert.notified_at = self.clock.now()
            await db.commit()

            result = AlertCheckResult(
                alert.id,
                success=True,
                triggered=triggered,
                current_price=alert.current_price,
                target_price=alert.target_price,
            )

            if not triggered:
                track_alert_check("not_triggered")
                return result

            track_alert_check("triggered")
            logger.info(
                f"Alert {alert.id} triggered: {alert.route} at {alert.current_price:.2f} "
                f"(target {alert.target_price:.2f})"
            )
            if self.dispatcher is not None:
                result.notifications = await self.dispatcher.notify_all(build_alert_payload(alert, offer))
            return result

    async def delete_expired(self) -> int:
        """Delete every alert that expired before now, triggered or not."""
        now = self.clock.now()
        async with self.session_factory() as db:
            outcome = await db.execute(delete(PriceAlert).where(PriceAlert.expires_at < now))
            await db.commit()
            return outcome.rowcount or 0
