"""
The tracking cycle: one pass over due scheduled tasks followed by one pass
over pending price alerts.

Both the Celery beat task and the HTTP cron endpoint run this.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from farewatch.config import Settings
from farewatch.notifications.notification_service import NotificationDispatcher
from farewatch.providers import create_gateway
from farewatch.providers.base import FlightSearchGateway
from farewatch.services.alert_evaluator import AlertCheckResult, PriceAlertEvaluator
from farewatch.services.task_scheduler import TaskExecutionResult, TaskScheduler
from farewatch.utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)


def summarize_tasks(results: List[TaskExecutionResult]) -> Dict[str, int]:
    return {
        "total": len(results),
        "successful": sum(1 for r in results if r.success),
        "failed": sum(1 for r in results if not r.success),
        "price_drops": sum(1 for r in results if r.price_dropped),
        "new_lows": sum(1 for r in results if r.is_new_low),
        "targets_hit": sum(1 for r in results if r.hit_target),
    }


def summarize_alerts(results: List[AlertCheckResult]) -> Dict[str, int]:
    return {
        "total": len(results),
        "successful": sum(1 for r in results if r.success),
        "failed": sum(1 for r in results if not r.success),
        "triggered": sum(1 for r in results if r.triggered),
    }


@dataclass
class CycleReport:
    task_results: List[TaskExecutionResult] = field(default_factory=list)
    alert_results: List[AlertCheckResult] = field(default_factory=list)
    duration_seconds: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": True,
            "tasks": {
                "summary": summarize_tasks(self.task_results),
                "results": [r.to_dict() for r in self.task_results],
            },
            "alerts": {
                "summary": summarize_alerts(self.alert_results),
                "results": [r.to_dict() for r in self.alert_results],
            },
            "duration_seconds": round(self.duration_seconds, 2),
        }


class TrackingCycle:
    def __init__(self, scheduler: TaskScheduler, alert_evaluator: PriceAlertEvaluator):
        self.scheduler = scheduler
        self.alert_evaluator = alert_evaluator

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        gateway: Optional[FlightSearchGateway] = None,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Optional[Clock] = None,
    ) -> "TrackingCycle":
        """Wire a cycle with the deployment's gateway and notification channels."""
        clock = clock or SystemClock()
        gateway = gateway or create_gateway(clock=clock)
        dispatcher = dispatcher or NotificationDispatcher.from_settings(
            settings, session_factory=session_factory, clock=clock
        )
        return cls(
            scheduler=TaskScheduler(session_factory, gateway, dispatcher, clock=clock),
            alert_evaluator=PriceAlertEvaluator(session_factory, gateway, dispatcher, clock=clock),
        )

    async def run(self) -> CycleReport:
        """
        Run due tasks, then pending alerts.

        Raises:
            GatewayConfigurationError: The gateway cannot be used
        """
        started = time.monotonic()
        report = CycleReport()
        report.task_results = await self.scheduler.run_due_tasks()
        report.alert_results = await self.alert_evaluator.check_all_alerts()
        report.duration_seconds = time.monotonic() - started

        logger.info(
            f"Tracking cycle complete in {report.duration_seconds:.1f}s: "
            f"tasks {summarize_tasks(report.task_results)}, "
            f"alerts {summarize_alerts(report.alert_results)}"
        )
        return report

    async def aclose(self) -> None:
        await self.scheduler.gateway.aclose()
        if self.scheduler.dispatcher is not None:
            await self.scheduler.dispatcher.aclose()
