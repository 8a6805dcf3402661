"""
Celery application configuration.

Beat is the periodic trigger for the tracking cycle; its cadence comes from
the TRACKING_CYCLE_CRON setting.
"""

import logging
import signal
from typing import Any

from celery import Celery, Task
from celery.schedules import crontab

from farewatch.config import settings
from farewatch.utils.cron import is_valid_cron

logger = logging.getLogger(__name__)

DEFAULT_TRACKING_CYCLE_CRON = "*/15 * * * *"


def crontab_from_expression(expression: str) -> crontab:
    """
    Build a Celery crontab from a 5-field cron expression.

    An invalid expression falls back to every 15 minutes.
    """
    if not is_valid_cron(expression):
        logger.warning(
            f"Invalid TRACKING_CYCLE_CRON {expression!r}, "
            f"using {DEFAULT_TRACKING_CYCLE_CRON!r}"
        )
        expression = DEFAULT_TRACKING_CYCLE_CRON

    minute, hour, day_of_month, month_of_year, day_of_week = expression.split()
    return crontab(
        minute=minute,
        hour=hour,
        day_of_month=day_of_month,
        month_of_year=month_of_year,
        day_of_week=day_of_week,
    )


# ============================================================================
# Graceful Task Base Class
# ============================================================================


class GracefulTask(Task):
    """
    Celery Task class that handles SIGTERM gracefully.

    The tracking cycle commits each task and alert as it goes, so stopping
    between items leaves the database consistent; the handler only makes
    the interruption visible in the logs before the worker exits.

    Usage:
        @celery_app.task(base=GracefulTask, bind=True)
        def my_task(self):
            pass
    """

    _shutdown_requested = False
    _original_sigterm_handler = None

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        def signal_handler(signum: int, frame: Any) -> None:
            logger.warning(
                f"Task {self.request.id} ({self.name}) received shutdown signal (SIGTERM). "
                f"Stopping after the current item..."
            )
            self._shutdown_requested = True
            raise SystemExit("Task terminated by SIGTERM signal")

        self._original_sigterm_handler = signal.signal(signal.SIGTERM, signal_handler)

        try:
            return super().__call__(*args, **kwargs)
        finally:
            if self._original_sigterm_handler is not None:
                signal.signal(signal.SIGTERM, self._original_sigterm_handler)

    def is_shutdown_requested(self) -> bool:
        return self._shutdown_requested


# Create Celery instance
celery_app = Celery(
    "farewatch",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["farewatch.tasks.scheduled_tasks"],
)

celery_app.conf.update(
    # Task settings
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # Result backend settings
    result_expires=3600,
    result_extended=True,
    # Task execution settings
    task_track_started=True,
    task_time_limit=900,
    task_soft_time_limit=840,
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # Worker settings
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=1000,
    # Broker settings
    broker_connection_retry_on_startup=True,
    broker_connection_max_retries=10,
    # Beat scheduler settings
    beat_schedule={
        "tracking-cycle": {
            "task": "farewatch.tasks.scheduled_tasks.run_tracking_cycle",
            "schedule": crontab_from_expression(settings.tracking_cycle_cron),
            "options": {"queue": "scheduled"},
        },
    },
    # One cycle at a time: the cycle is not safe to overlap with itself
    task_routes={
        "farewatch.tasks.scheduled_tasks.*": {"queue": "scheduled"},
    },
    task_default_queue="default",
)


@celery_app.on_after_configure.connect
def setup_periodic_tasks(sender, **kwargs):
    logger.info(f"Tracking cycle scheduled with cron '{settings.tracking_cycle_cron}'")


if __name__ == "__main__":
    celery_app.start()
