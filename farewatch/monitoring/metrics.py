"""
Prometheus metrics for the tracking cycle and route comparisons.

This module defines and tracks metrics for:
- Flight search calls (by provider and outcome code)
- Scheduled task executions and alert checks (by outcome)
- Notification deliveries (by channel and status)
- Route comparison latency

All metrics are exposed via the /metrics endpoint for Prometheus to scrape.
"""

import logging

from prometheus_client import Counter, Gauge, Histogram, Info

logger = logging.getLogger(__name__)

# =============================================================================
# Flight Search Metrics
# =============================================================================

flight_searches_total = Counter(
    "farewatch_flight_searches_total",
    "Total number of flight search calls",
    ["provider", "status"],  # status: success or a FlightSearchErrorCode value
)

flight_search_duration_seconds = Histogram(
    "farewatch_flight_search_duration_seconds",
    "Duration of flight search calls in seconds",
    ["provider"],
    buckets=(0.25, 0.5, 1, 2, 5, 10, 20, 30, 60),
)

# =============================================================================
# Scheduler Metrics
# =============================================================================

task_executions_total = Counter(
    "farewatch_task_executions_total",
    "Scheduled task executions by outcome",
    ["outcome"],  # success, no_results, failed, past_date, inactive, not_found
)

alert_checks_total = Counter(
    "farewatch_alert_checks_total",
    "Price alert checks by outcome",
    ["outcome"],  # triggered, not_triggered, no_results, failed
)

last_cycle_due_tasks = Gauge(
    "farewatch_last_cycle_due_tasks",
    "Number of due tasks found by the most recent tracking cycle",
)

# =============================================================================
# Notification Metrics
# =============================================================================

notifications_total = Counter(
    "farewatch_notifications_total",
    "Notification deliveries",
    ["channel", "status"],  # status: delivered, failed, skipped
)

# =============================================================================
# Route Optimizer Metrics
# =============================================================================

route_comparison_duration_seconds = Histogram(
    "farewatch_route_comparison_duration_seconds",
    "Duration of a full direct-vs-stopover comparison",
    buckets=(1, 2, 5, 10, 20, 30, 60, 120, 300),
)

app_info = Info(
    "farewatch_app",
    "Application information",
)


# =============================================================================
# Helper Functions
# =============================================================================


def track_flight_search(provider: str, status: str, duration_seconds: float) -> None:
    """
    Record one flight search call.

    Args:
        provider: Provider name (e.g. "amadeus")
        status: "success" or the error code the call failed with
        duration_seconds: Wall time of the call
    """
    flight_searches_total.labels(provider=provider, status=status).inc()
    flight_search_duration_seconds.labels(provider=provider).observe(duration_seconds)
    logger.debug(f"Tracked flight search: {provider} - {status} ({duration_seconds:.2f}s)")


def track_task_execution(outcome: str) -> None:
    task_executions_total.labels(outcome=outcome).inc()


def track_alert_check(outcome: str) -> None:
    alert_checks_total.labels(outcome=outcome).inc()


def track_notification(channel: str, status: str) -> None:
    notifications_total.labels(channel=channel, status=status).inc()
    logger.debug(f"Tracked notification: {channel} - {status}")


def track_route_comparison(duration_seconds: float) -> None:
    route_comparison_duration_seconds.observe(duration_seconds)
