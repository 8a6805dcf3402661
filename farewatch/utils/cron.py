"""
Cron expression evaluation for scheduled price checks.

Expressions use the standard five fields (minute, hour, day-of-month, month,
day-of-week). Parsing and iteration are delegated to croniter, which applies
the usual OR semantics when both day fields are restricted.
"""

import logging
from datetime import datetime, timedelta
from typing import List, NamedTuple

from croniter import croniter

logger = logging.getLogger(__name__)

# Offset used when an expression cannot be evaluated
FALLBACK_INTERVAL = timedelta(hours=24)


class CronPreset(NamedTuple):
    label: str
    value: str


CRON_PRESETS: List[CronPreset] = [
    CronPreset("Every 6 hours", "0 */6 * * *"),
    CronPreset("Every 12 hours", "0 */12 * * *"),
    CronPreset("Daily at 9 AM", "0 9 * * *"),
    CronPreset("Twice daily (9 AM, 6 PM)", "0 9,18 * * *"),
    CronPreset("Weekly (Monday 9 AM)", "0 9 * * 1"),
    CronPreset("Twice weekly (Mon, Thu)", "0 9 * * 1,4"),
]

_KNOWN_DESCRIPTIONS = {
    "0 9 * * *": "Daily at 9:00 AM",
    "0 9,18 * * *": "Daily at 9:00 AM and 6:00 PM",
    "0 9 * * 1": "Every Monday at 9:00 AM",
    "0 9 * * 1,4": "Every Monday and Thursday at 9:00 AM",
    "0 0 * * *": "Daily at midnight",
    "0 */6 * * *": "Every 6 hours",
    "0 */12 * * *": "Every 12 hours",
}


def _fields(expression: str) -> List[str]:
    return (expression or "").split()


def is_valid_cron(expression: str) -> bool:
    """Return True if ``expression`` is a parseable five-field cron expression."""
    if not isinstance(expression, str) or len(_fields(expression)) != 5:
        return False
    try:
        return bool(croniter.is_valid(expression))
    except (ValueError, KeyError, TypeError):
        return False


def next_run_time(expression: str, from_instant: datetime) -> datetime:
    """
    Compute the earliest instant strictly after ``from_instant`` matching
    ``expression``.

    Malformed expressions never raise: the failure is logged and the result
    falls back to ``from_instant`` plus 24 hours.
    """
    if not is_valid_cron(expression):
        logger.warning(
            f"Invalid cron expression {expression!r}, scheduling fallback "
            f"run {FALLBACK_INTERVAL} after {from_instant.isoformat()}"
        )
        return from_instant + FALLBACK_INTERVAL

    # croniter works at minute resolution; drop sub-minute noise first
    start = from_instant.replace(second=0, microsecond=0)
    next_run = croniter(expression, start).get_next(datetime)
    while next_run <= from_instant:
        next_run = croniter(expression, next_run).get_next(datetime)
    return next_run


def describe_cron_schedule(expression: str) -> str:
    """
    Produce a short human-readable description of a cron expression.

    Examples:
        >>> describe_cron_schedule("0 */6 * * *")
        'Every 6 hours'
        >>> describe_cron_schedule("30 7 * * *")
        'Daily at 7:30'
    """
    if expression in _KNOWN_DESCRIPTIONS:
        return _KNOWN_DESCRIPTIONS[expression]

    parts = _fields(expression)
    if len(parts) != 5:
        return expression

    minute, hour = parts[0], parts[1]
    padded_minute = minute.zfill(2)

    if hour == "*":
        return f"Every hour at minute {minute}"
    if "," in hour:
        times = " and ".join(f"{h}:{padded_minute}" for h in hour.split(","))
        return f"Daily at {times}"
    if "/" in hour:
        return f"Every {hour.split('/', 1)[1]} hours"
    return f"Daily at {hour}:{padded_minute}"
