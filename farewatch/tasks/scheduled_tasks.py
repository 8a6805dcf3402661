"""
Scheduled Celery tasks.

Each task runs its coroutine with ``asyncio.run`` on a fresh engine: the
async database pool must not outlive the event loop it was created on.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from farewatch.config import settings
from farewatch.database import create_engine_for_url, create_session_factory
from farewatch.services.alert_evaluator import PriceAlertEvaluator
from farewatch.services.task_scheduler import TaskScheduler
from farewatch.services.tracking_cycle import TrackingCycle, summarize_alerts
from farewatch.tasks.celery_app import GracefulTask, celery_app

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def _with_session_factory(
    work: Callable[[async_sessionmaker[AsyncSession]], Awaitable[T]],
) -> T:
    engine = create_engine_for_url(settings.database_url)
    try:
        return await work(create_session_factory(engine))
    finally:
        await engine.dispose()


async def _run_cycle(session_factory: async_sessionmaker[AsyncSession]) -> Dict[str, Any]:
    cycle = TrackingCycle.from_settings(settings, session_factory)
    try:
        report = await cycle.run()
    finally:
        await cycle.aclose()
    return report.to_dict()


@celery_app.task(
    name="farewatch.tasks.scheduled_tasks.run_tracking_cycle", base=GracefulTask, bind=True
)
def run_tracking_cycle(self):
    """
    Run due scheduled tasks and pending price alerts.

    Triggered by beat on the TRACKING_CYCLE_CRON cadence.
    """
    logger.info("Starting tracking cycle task")

    try:
        report = asyncio.run(_with_session_factory(_run_cycle))
        logger.info(
            f"Tracking cycle task completed: tasks {report['tasks']['summary']}, "
            f"alerts {report['alerts']['summary']}"
        )
        return {
            "status": "success",
            "tasks": report["tasks"]["summary"],
            "alerts": report["alerts"]["summary"],
            "task_id": self.request.id,
        }

    except Exception as e:
        logger.error(f"Error in tracking cycle task: {e}", exc_info=True)
        raise


@celery_app.task(name="farewatch.tasks.scheduled_tasks.run_scheduled_task", bind=True)
def run_scheduled_task(self, scheduled_task_id: int):
    """Execute one scheduled task immediately, regardless of its next run."""
    logger.info(f"Running scheduled task {scheduled_task_id} on demand")

    async def work(session_factory: async_sessionmaker[AsyncSession]) -> Dict[str, Any]:
        cycle = TrackingCycle.from_settings(settings, session_factory)
        scheduler: TaskScheduler = cycle.scheduler
        try:
            result = await scheduler.execute_one(scheduled_task_id)
        finally:
            await cycle.aclose()
        return result.to_dict()

    try:
        result = asyncio.run(_with_session_factory(work))
        return {"status": "success", "result": result, "task_id": self.request.id}
    except Exception as e:
        logger.error(f"Error running scheduled task {scheduled_task_id}: {e}", exc_info=True)
        raise


@celery_app.task(name="farewatch.tasks.scheduled_tasks.check_price_alerts", bind=True)
def check_price_alerts(self):
    """Check pending price alerts only."""
    logger.info("Starting price alert check task")

    async def work(session_factory: async_sessionmaker[AsyncSession]) -> Dict[str, int]:
        cycle = TrackingCycle.from_settings(settings, session_factory)
        evaluator: PriceAlertEvaluator = cycle.alert_evaluator
        try:
            results = await evaluator.check_all_alerts()
        finally:
            await cycle.aclose()
        return summarize_alerts(results)

    try:
        summary = asyncio.run(_with_session_factory(work))
        logger.info(f"Price alert check completed: {summary}")
        return {"status": "success", "alerts": summary, "task_id": self.request.id}
    except Exception as e:
        logger.error(f"Error in price alert check task: {e}", exc_info=True)
        raise
