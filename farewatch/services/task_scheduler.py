"""
Scheduled task execution.

The scheduler finds tasks whose ``next_run`` has passed and executes them
one at a time: resolve the task's date expressions, search the cheapest
offers, classify the price movement against the task's previous
observations, persist a history point, advance the schedule and notify
when the change qualifies.

Per-task failures are reported in the task's result and never stop the
batch. The one exception is a gateway configuration error (missing
credentials): every remaining task would fail the same way, so it
propagates and aborts the run.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from farewatch.config import settings
from farewatch.exceptions import (
    ConfigurationException,
    PastDepartureDateError,
    TaskExecutionError,
    TaskInactiveError,
    TaskNotFoundError,
    ValidationException,
)
from farewatch.models.scheduled_task import ScheduledTask
from farewatch.monitoring.metrics import last_cycle_due_tasks, track_task_execution
from farewatch.notifications.notification_service import (
    DeliveryResult,
    NotificationDispatcher,
    build_task_payload,
    should_notify,
)
from farewatch.providers.base import FlightSearchGateway
from farewatch.providers.exceptions import FlightSearchError
from farewatch.providers.schemas import CabinClass, FlightSearchRequest, NormalizedOffer
from farewatch.services.price_history_service import PriceHistoryService
from farewatch.utils.clock import Clock, SystemClock
from farewatch.utils.cron import next_run_time
from farewatch.utils.date_utils import resolve_date_expression
from farewatch.utils.price_utils import percent_change
from farewatch.utils.work_queue import DelayPolicy, FixedDelay, SequentialWorkQueue

logger = logging.getLogger(__name__)

NO_FLIGHTS_FOUND = "No flights found"


@dataclass
class TaskExecutionResult:
    """Outcome of one task execution."""

    task_id: int
    success: bool
    current_price: Optional[float] = None
    previous_price: Optional[float] = None
    price_change: Optional[float] = None
    price_change_percent: Optional[int] = None
    is_new_low: bool = False
    hit_target: bool = False
    best_offer: Optional[NormalizedOffer] = None
    error: Optional[str] = None
    error_code: Optional[str] = None
    no_results: bool = False
    notifications: List[DeliveryResult] = field(default_factory=list)

    @classmethod
    def failed(cls, task_id: int, error: str, error_code: Optional[str]) -> "TaskExecutionResult":
        return cls(task_id=task_id, success=False, error=error, error_code=error_code)

    @property
    def price_dropped(self) -> bool:
        return self.price_change is not None and self.price_change < 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "task_id": self.task_id,
            "success": self.success,
            "current_price": self.current_price,
            "previous_price": self.previous_price,
            "price_change": self.price_change,
            "price_change_percent": self.price_change_percent,
            "is_new_low": self.is_new_low,
            "hit_target": self.hit_target,
            "best_offer": self.best_offer.to_dict() if self.best_offer else None,
            "error": self.error,
            "error_code": self.error_code,
            "no_results": self.no_results,
            "notifications": [n.to_dict() for n in self.notifications],
        }


class TaskScheduler:
    """
    Runs due scheduled tasks against a flight search gateway.

    Every collaborator is injected: the session factory, gateway,
    dispatcher (optional; no notifications without one), clock and the
    delay policy applied between tasks of a batch.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        gateway: FlightSearchGateway,
        dispatcher: Optional[NotificationDispatcher] = None,
        clock: Optional[Clock] = None,
        delay_policy: Optional[DelayPolicy] = None,
        max_results: Optional[int] = None,
    ):
        self.session_factory = session_factory
        self.gateway = gateway
        self.dispatcher = dispatcher
        self.clock = clock or SystemClock()
        self.delay_policy = delay_policy or FixedDelay(settings.task_delay_seconds)
        self.max_results = max_results or settings.task_search_max_results

    async def due_tasks(self) -> List[ScheduledTask]:
        """Active tasks whose next run has passed or was never scheduled."""
        now = self.clock.now()
        async with self.session_factory() as db:
            query = (
                select(ScheduledTask)
                .where(ScheduledTask.active.is_(True))
                .where(or_(ScheduledTask.next_run.is_(None), ScheduledTask.next_run <= now))
                .order_by(ScheduledTask.next_run.asc(), ScheduledTask.id.asc())
            )
            result = await db.execute(query)
            return list(result.scalars().all())

    async def run_due_tasks(self) -> List[TaskExecutionResult]:
        """
        Execute every due task sequentially.

        Raises:
            GatewayConfigurationError: The gateway cannot be used; the rest
                of the batch is not attempted.
        """
        tasks = await self.due_tasks()
        last_cycle_due_tasks.set(len(tasks))
        logger.info(f"Found {len(tasks)} due tasks")

        if not tasks:
            return []

        queue = SequentialWorkQueue(self.delay_policy, is_failure=lambda r: not r.success)
        results = await queue.run([task.id for task in tasks], self._execute_isolated)

        successful = sum(1 for r in results if r.success)
        logger.info(f"Task batch complete: {successful}/{len(results)} successful")
        return results

    async def _execute_isolated(self, task_id: int) -> TaskExecutionResult:
        try:
            return await self.execute_one(task_id)
        except TaskExecutionError as e:
            return TaskExecutionResult.failed(task_id, e.message, e.code)
        except ConfigurationException:
            raise
        except Exception as e:
            logger.error(f"Unexpected error executing task {task_id}: {e}", exc_info=True)
            track_task_execution("failed")
            return TaskExecutionResult.failed(task_id, str(e), "INTERNAL_ERROR")

    async def execute_one(self, task_id: int) -> TaskExecutionResult:
        """
        Execute one task now.

        Raises:
            TaskNotFoundError: No task with this id
            TaskInactiveError: The task is paused; its schedule is untouched
            PastDepartureDateError: The resolved departure date has passed;
                the schedule still advances
            GatewayConfigurationError: The gateway cannot be used
        """
        async with self.session_factory() as db:
            task = await db.get(ScheduledTask, task_id)
            if task is None:
                track_task_execution("not_found")
                raise TaskNotFoundError(task_id)
            if not task.active:
                track_task_execution("inactive")
                raise TaskInactiveError(task_id)

            now = self.clock.now()
            logger.info(f"Executing task {task.id} '{task.name}' ({task.route})")

            try:
                dates = resolve_task_dates(task, now.date())
            except ValidationException as e:
                logger.warning(f"Task {task.id} has an unusable date: {e.message}")
                await self._advance_and_commit(db, task, now)
                track_task_execution("failed")
                return TaskExecutionResult.failed(task.id, e.message, e.code)

            departure, return_date = dates["departure_date"], dates["return_date"]

            if departure < now.date():
                logger.warning(f"Task {task.id} departure date {departure} is in the past")
                await self._advance_and_commit(db, task, now)
                track_task_execution("past_date")
                raise PastDepartureDateError(task.id, departure.isoformat())

            request = FlightSearchRequest(
                origin=task.origin,
                destination=task.destination,
                departure_date=departure,
                return_date=return_date,
                adults=task.adults,
                cabin_class=CabinClass(task.cabin_class),
                max_results=self.max_results,
            )

            try:
                search_result = await self.gateway.search(request)
            except ConfigurationException:
                raise
            except FlightSearchError as e:
                await self._advance_and_commit(db, task, now)
                track_task_execution("failed")
                return TaskExecutionResult.failed(task.id, e.message, e.code.value)

            offer = search_result.cheapest
            if offer is None:
                logger.info(f"Task {task.id}: no flights found for {task.route} on {departure}")
                await self._advance_and_commit(db, task, now)
                track_task_execution("no_results")
                return TaskExecutionResult(
                    task_id=task.id, success=True, no_results=True, error=NO_FLIGHTS_FOUND
                )

            result = self._classify(task, offer)

            await PriceHistoryService.record_offer(db, task, offer, recorded_at=now)
            task.last_price = result.current_price
            if result.is_new_low:
                task.lowest_price = result.current_price
            elif task.lowest_price is None:
                task.lowest_price = result.previous_price
            self._advance(task, now)
            await db.commit()

            track_task_execution("success")
            logger.info(
                f"Task {task.id}: {offer.price:.2f} {offer.currency} "
                f"(change {result.price_change:+.2f}, {result.price_change_percent:+d}%, "
                f"new_low={result.is_new_low}, hit_target={result.hit_target})"
            )

            notification_type = should_notify(result)
            if notification_type is not None and self.dispatcher is not None:
                payload = build_task_payload(
                    task,
                    result,
                    notification_type,
                    departure_date=departure.isoformat(),
                    return_date=return_date.isoformat() if return_date else None,
                )
                result.notifications = await self.dispatcher.notify_all(payload)

            return result

    @staticmethod
    def _classify(task: ScheduledTask, offer: NormalizedOffer) -> TaskExecutionResult:
        current = float(offer.price)
        previous = task.last_price
        baseline = task.lowest_price if task.lowest_price is not None else previous

        return TaskExecutionResult(
            task_id=task.id,
            success=True,
            current_price=current,
            previous_price=previous,
            price_change=round(current - previous, 2) if previous is not None else 0.0,
            price_change_percent=percent_change(current, previous),
            is_new_low=baseline is None or current < baseline,
            hit_target=task.price_target is not None and current <= task.price_target,
            best_offer=offer,
        )

    @staticmethod
    def _advance(task: ScheduledTask, now: datetime) -> None:
        task.last_run = now
        task.next_run = next_run_time(task.cron_expression, now)

    async def _advance_and_commit(self, db: AsyncSession, task: ScheduledTask, now: datetime) -> None:
        self._advance(task, now)
        await db.commit()


def resolve_task_dates(task: ScheduledTask, today: date) -> Dict[str, Optional[date]]:
    """Departure and return dates a task would search with on ``today``."""
    return {
        "departure_date": resolve_date_expression(task.departure_date, today),
        "return_date": resolve_date_expression(task.return_date, today) if task.return_date else None,
    }
