"""
Input validators for CLI commands.
Ensures data quality and provides better error messages.
"""

from datetime import date, datetime
from typing import Optional

import typer

from farewatch.notifications.notification_service import CHANNEL_CHOICES
from farewatch.utils.cron import is_valid_cron


def validate_airport_code(value: str) -> str:
    """
    Validate airport IATA code.

    Must be exactly 3 alphabetic characters (case-insensitive).
    Returns uppercase version of the code.

    Raises:
        typer.BadParameter: If code is invalid
    """
    if not value:
        raise typer.BadParameter("Airport code cannot be empty")

    value = value.strip()

    if len(value) != 3:
        raise typer.BadParameter(
            f"Airport code must be exactly 3 characters (got '{value}' with {len(value)} characters)"
        )

    if not value.isalpha():
        raise typer.BadParameter(f"Airport code must contain only letters (got '{value}')")

    return value.upper()


def validate_date_string(value: Optional[str], allow_past: bool = False) -> Optional[str]:
    """
    Validate date string in YYYY-MM-DD format.

    Args:
        value: Date string to validate (can be None)
        allow_past: If False, rejects dates before today

    Raises:
        typer.BadParameter: If date is invalid or in the past
    """
    if value is None:
        return None

    try:
        parsed_date = datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise typer.BadParameter(
            f"Invalid date format. Expected YYYY-MM-DD (e.g., 2025-12-25), got '{value}'"
        )

    if not allow_past and parsed_date < date.today():
        raise typer.BadParameter(
            f"Date cannot be in the past (got {value}, today is {date.today()})"
        )

    return value


def validate_cron_expression(value: str) -> str:
    """
    Validate a five-field cron expression.

    Raises:
        typer.BadParameter: If the expression does not parse
    """
    value = (value or "").strip()
    if not is_valid_cron(value):
        raise typer.BadParameter(
            f"Invalid cron expression '{value}'. Expected five fields, e.g. '0 9 * * *'"
        )
    return value


# Typer callback functions for use with Option/Argument
def airport_code_callback(value: Optional[str]) -> Optional[str]:
    """Callback for validating airport codes in Typer options."""
    if value is None:
        return None
    return validate_airport_code(value)


def date_callback(value: Optional[str]) -> Optional[str]:
    """Callback for validating dates in Typer options."""
    if value is None:
        return None
    return validate_date_string(value, allow_past=False)


def cron_callback(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return validate_cron_expression(value)


def channel_callback(value: str) -> str:
    value = value.strip().lower()
    if value not in CHANNEL_CHOICES:
        raise typer.BadParameter(
            f"Channel must be one of {', '.join(CHANNEL_CHOICES)} (got '{value}')"
        )
    return value
