"""
Date utility functions for FareWatch.

Resolves the date expressions stored on scheduled tasks and formats
provider durations for display.
"""

import re
from datetime import date, datetime, timedelta

from dateutil.relativedelta import relativedelta

from farewatch.exceptions import ValidationException

RELATIVE_DATE_PATTERN = re.compile(r"^\+(\d+)([dwm])$")
ISO_DURATION_PATTERN = re.compile(r"^P(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:\d+(?:\.\d+)?S)?)?$")


def parse_date(date_str: str) -> date | None:
    """
    Parse a ``YYYY-MM-DD`` string.

    Examples:
        >>> parse_date("2025-08-15")
        datetime.date(2025, 8, 15)
        >>> parse_date("15.08.2025") is None
        True
    """
    if not date_str or not isinstance(date_str, str):
        return None
    try:
        return datetime.strptime(date_str.strip(), "%Y-%m-%d").date()
    except ValueError:
        return None


def is_relative_date(expression: str) -> bool:
    return bool(expression) and RELATIVE_DATE_PATTERN.match(expression.strip()) is not None


def is_valid_date_expression(expression: str) -> bool:
    """True for ``YYYY-MM-DD`` dates and ``+<n>d|w|m`` offsets."""
    return is_relative_date(expression) or parse_date(expression) is not None


def resolve_date_expression(expression: str, now: datetime | date) -> date:
    """
    Resolve a task date expression against ``now``.

    Relative expressions roll forward from the current day, so a task saved
    with ``+30d`` always tracks the flight thirty days out. Month offsets use
    calendar arithmetic and clamp to the end of shorter months.

    Examples:
        >>> resolve_date_expression("+2w", date(2025, 1, 1))
        datetime.date(2025, 1, 15)
        >>> resolve_date_expression("+1m", date(2025, 1, 31))
        datetime.date(2025, 2, 28)
        >>> resolve_date_expression("2025-06-01", date(2025, 1, 1))
        datetime.date(2025, 6, 1)

    Raises:
        ValidationException: The expression is neither form.
    """
    today = now.date() if isinstance(now, datetime) else now
    text = (expression or "").strip()

    match = RELATIVE_DATE_PATTERN.match(text)
    if match:
        amount, unit = int(match.group(1)), match.group(2)
        if unit == "d":
            return today + timedelta(days=amount)
        if unit == "w":
            return today + timedelta(weeks=amount)
        return today + relativedelta(months=amount)

    resolved = parse_date(text)
    if resolved is None:
        raise ValidationException(
            f"Invalid date expression {expression!r}: expected YYYY-MM-DD or +<n>d|w|m",
            code="INVALID_DATE_EXPRESSION",
        )
    return resolved


def parse_iso_duration(duration: str) -> timedelta | None:
    """Parse an ISO-8601 duration such as ``PT7H35M`` or ``P1DT2H``."""
    if not duration:
        return None
    match = ISO_DURATION_PATTERN.match(duration.strip())
    if not match or not any(match.groups()):
        return None
    days, hours, minutes = (int(g) if g else 0 for g in match.groups())
    return timedelta(days=days, hours=hours, minutes=minutes)


def format_duration(duration: str) -> str:
    """
    Format an ISO-8601 duration for display.

    Examples:
        >>> format_duration("PT7H35M")
        '7h 35m'
        >>> format_duration("PT45M")
        '45m'
        >>> format_duration("P1DT2H")
        '26h'
        >>> format_duration("garbage")
        'garbage'
    """
    delta = parse_iso_duration(duration)
    if delta is None:
        return duration
    return format_timedelta(delta) or duration


def format_timedelta(delta: timedelta) -> str:
    total_minutes = int(delta.total_seconds() // 60)
    hours, minutes = divmod(total_minutes, 60)
    if hours and minutes:
        return f"{hours}h {minutes}m"
    if hours:
        return f"{hours}h"
    if minutes:
        return f"{minutes}m"
    return ""


def hours_between(start: datetime, end: datetime) -> float:
    """Signed hours from ``start`` to ``end``."""
    return (end - start).total_seconds() / 3600
