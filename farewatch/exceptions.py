"""
Custom exceptions for FareWatch.

This module provides:
1. Base exception hierarchy for application-wide error handling
2. Task execution errors carrying machine-readable codes
3. Informative exceptions with actionable guidance

The informative exceptions include:
- Clear explanation of what went wrong
- Specific remediation instructions
- Relevant configuration details
- Troubleshooting commands

Flight search errors live in farewatch.providers.exceptions.
"""

from typing import Optional


# ============================================================================
# Base Exception Hierarchy
# ============================================================================


class FareWatchException(Exception):
    """Base exception class for all FareWatch exceptions."""

    pass


class ConfigurationException(FareWatchException):
    """Exception raised for configuration errors."""

    pass


class DatabaseException(FareWatchException):
    """Exception raised for database-related errors."""

    pass


class NotificationException(FareWatchException):
    """Exception raised for notification delivery errors."""

    pass


class ValidationException(FareWatchException):
    """
    Exception raised when input is rejected before any external call.

    Attributes:
        code: Machine-readable rejection code (e.g. 'INVALID_ORIGIN')
        field: Name of the offending field, when known
    """

    def __init__(self, message: str, code: str, field: Optional[str] = None):
        self.message = message
        self.code = code
        self.field = field
        super().__init__(message)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


# ============================================================================
# Task Execution Errors
# ============================================================================


class TaskExecutionError(FareWatchException):
    """
    Base class for errors raised while executing a scheduled task.

    Every subclass carries a fixed machine-readable ``code`` so that callers
    (HTTP routes, CLI) can map failures without inspecting messages.
    """

    code = "TASK_EXECUTION_FAILED"

    def __init__(self, task_id: int, message: Optional[str] = None):
        self.task_id = task_id
        self.message = message or f"Task {task_id} could not be executed"
        super().__init__(self.message)


class TaskNotFoundError(TaskExecutionError):
    """Raised when the requested task does not exist."""

    code = "TASK_NOT_FOUND"

    def __init__(self, task_id: int):
        super().__init__(task_id, f"Task {task_id} not found")


class TaskInactiveError(TaskExecutionError):
    """Raised when the requested task is paused."""

    code = "TASK_INACTIVE"

    def __init__(self, task_id: int):
        super().__init__(task_id, f"Task {task_id} is not active")


class PastDepartureDateError(TaskExecutionError):
    """Raised when a task's departure date has already passed."""

    code = "PAST_DEPARTURE_DATE"

    def __init__(self, task_id: int, departure_date: str):
        self.departure_date = departure_date
        super().__init__(
            task_id,
            f"Departure date {departure_date} is in the past. "
            f"Update the task to use a future date.",
        )


# ============================================================================
# Informative Exceptions with Actionable Guidance
# ============================================================================


class InformativeException(FareWatchException):
    """Base class for informative exceptions with actionable guidance."""

    def __init__(self, message: str, remediation: Optional[str] = None,
                 details: Optional[str] = None, commands: Optional[list[str]] = None):
        """
        Initialize an informative exception.

        Args:
            message: Clear explanation of what went wrong
            remediation: Specific remediation instructions
            details: Relevant configuration or context details
            commands: List of troubleshooting commands to try
        """
        self.message = message
        self.remediation = remediation
        self.details = details
        self.commands = commands or []

        full_message = f"\n{'=' * 80}\n"
        full_message += f"ERROR: {message}\n"

        if details:
            full_message += f"\nDETAILS:\n{details}\n"

        if remediation:
            full_message += f"\nHOW TO FIX:\n{remediation}\n"

        if commands:
            full_message += "\nTROUBLESHOOTING COMMANDS:\n"
            for cmd in commands:
                full_message += f"  $ {cmd}\n"

        full_message += f"{'=' * 80}\n"

        super().__init__(full_message)


class DatabaseConnectionError(InformativeException, DatabaseException):
    """Raised when database connection fails."""

    def __init__(self, error_details: str = ""):
        message = "Database connection failed"

        details = "Check DATABASE_URL"
        if error_details:
            details += f"\nError: {error_details}"

        remediation = """
1. Ensure PostgreSQL is running
2. Verify DATABASE_URL in your .env file is correct
3. Create the schema with 'farewatch db init' or 'alembic upgrade head'
        """.strip()

        commands = [
            "docker-compose up -d postgres",
            "alembic upgrade head",
            "farewatch db init",
        ]

        super().__init__(message, remediation, details, commands)
