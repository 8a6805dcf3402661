"""
Monitoring module for metrics collection and observability.
"""

from farewatch.monitoring.metrics import (
    flight_searches_total,
    flight_search_duration_seconds,
    notifications_total,
    route_comparison_duration_seconds,
    task_executions_total,
)

__all__ = [
    "flight_searches_total",
    "flight_search_duration_seconds",
    "notifications_total",
    "route_comparison_duration_seconds",
    "task_executions_total",
]
