"""
Exception hierarchy for flight search providers.

Every provider translates upstream failures into these types at its
boundary, so the scheduler and route optimizer never see transport or
vendor-specific errors.

Exception Hierarchy:
    FlightSearchError (base, carries ``code``)
    ├── GatewayConfigurationError   (missing credentials; aborts batches)
    ├── SearchValidationError       (rejected before any request)
    ├── RateLimitError
    ├── ProviderAuthenticationError
    ├── ProviderTimeoutError
    └── ProviderNetworkError

Usage:
    >>> from farewatch.providers.exceptions import RateLimitError
    >>> raise RateLimitError("Too many requests", provider_name="amadeus", retry_after=60)
"""

from enum import Enum
from typing import Optional

from farewatch.exceptions import ConfigurationException, FareWatchException


class FlightSearchErrorCode(str, Enum):
    """Machine-readable failure codes surfaced to API clients."""

    # Upstream
    INVALID_AIRPORT = "INVALID_AIRPORT"
    PAST_DATE = "PAST_DATE"
    NO_RESULTS = "NO_RESULTS"
    RATE_LIMITED = "RATE_LIMITED"
    AUTH_FAILED = "AUTH_FAILED"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    NETWORK_ERROR = "NETWORK_ERROR"
    TIMEOUT = "TIMEOUT"
    UNKNOWN = "UNKNOWN"
    NOT_CONFIGURED = "NOT_CONFIGURED"

    # Request validation
    INVALID_ORIGIN = "INVALID_ORIGIN"
    INVALID_DESTINATION = "INVALID_DESTINATION"
    SAME_ORIGIN_DESTINATION = "SAME_ORIGIN_DESTINATION"
    INVALID_DEPARTURE_DATE = "INVALID_DEPARTURE_DATE"
    PAST_DEPARTURE_DATE = "PAST_DEPARTURE_DATE"
    INVALID_RETURN_DATE = "INVALID_RETURN_DATE"
    RETURN_BEFORE_DEPARTURE = "RETURN_BEFORE_DEPARTURE"
    TOO_MANY_PASSENGERS = "TOO_MANY_PASSENGERS"
    NO_ADULTS = "NO_ADULTS"
    TOO_MANY_INFANTS = "TOO_MANY_INFANTS"


class FlightSearchError(FareWatchException):
    """
    Base exception for flight search failures.

    Attributes:
        message: Human-readable error description
        code: FlightSearchErrorCode value
        provider_name: Provider that raised the error
        recoverable: Whether retrying later may succeed
        status_code: Upstream HTTP status, when there was one
        original_error: Wrapped exception, if any
    """

    default_code = FlightSearchErrorCode.UNKNOWN

    def __init__(
        self,
        message: str,
        code: Optional[FlightSearchErrorCode] = None,
        provider_name: Optional[str] = None,
        recoverable: bool = False,
        status_code: Optional[int] = None,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.code = FlightSearchErrorCode(code or self.default_code)
        self.provider_name = provider_name
        self.recoverable = recoverable
        self.status_code = status_code
        self.original_error = original_error

        full_message = message
        if provider_name:
            full_message = f"[{provider_name}] {message}"

        super().__init__(full_message)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code.value!r}, "
            f"message={self.message!r}, "
            f"provider_name={self.provider_name!r}, "
            f"recoverable={self.recoverable})"
        )


class GatewayConfigurationError(FlightSearchError, ConfigurationException):
    """Raised when the provider cannot be used at all (e.g. missing credentials)."""

    default_code = FlightSearchErrorCode.NOT_CONFIGURED

    def __init__(self, message: str, provider_name: Optional[str] = None, env_var: Optional[str] = None):
        self.env_var = env_var
        if env_var:
            message = f"{message}. Set {env_var} in your .env file."
        super().__init__(message, provider_name=provider_name, recoverable=False)


class SearchValidationError(FlightSearchError):
    """Raised when search parameters are rejected before any request is made."""

    def __init__(self, message: str, code: FlightSearchErrorCode, field: Optional[str] = None):
        self.field = field
        super().__init__(message, code=code, recoverable=False)


class RateLimitError(FlightSearchError):
    """Raised when the provider throttles us. Always recoverable."""

    default_code = FlightSearchErrorCode.RATE_LIMITED

    def __init__(self, message: str, provider_name: Optional[str] = None, retry_after: Optional[int] = None):
        super().__init__(message, provider_name=provider_name, recoverable=True, status_code=429)
        self.retry_after = retry_after


class ProviderAuthenticationError(FlightSearchError):
    default_code = FlightSearchErrorCode.AUTH_FAILED

    def __init__(self, message: str, provider_name: Optional[str] = None, status_code: Optional[int] = 401):
        super().__init__(message, provider_name=provider_name, recoverable=False, status_code=status_code)


class ProviderTimeoutError(FlightSearchError):
    default_code = FlightSearchErrorCode.TIMEOUT

    def __init__(
        self,
        message: str,
        provider_name: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message, provider_name=provider_name, recoverable=True, original_error=original_error
        )
        self.timeout_seconds = timeout_seconds


class ProviderNetworkError(FlightSearchError):
    default_code = FlightSearchErrorCode.NETWORK_ERROR

    def __init__(
        self,
        message: str,
        provider_name: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message, provider_name=provider_name, recoverable=True, original_error=original_error
        )


def log_search_error(logger, error: FlightSearchError) -> None:
    """Log a flight search error with consistent formatting."""
    error_details = {
        "provider": error.provider_name,
        "code": error.code.value,
        "recoverable": error.recoverable,
        "status_code": error.status_code,
    }
    if isinstance(error, RateLimitError):
        error_details["retry_after"] = error.retry_after

    logger.error(
        f"{error.message} | Details: {error_details}",
        exc_info=error.original_error if error.original_error else None,
    )
