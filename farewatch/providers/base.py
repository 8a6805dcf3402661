"""
Base class for flight search gateways.

A gateway turns a FlightSearchRequest into a SearchResult of normalized
offers or raises a FlightSearchError. The base class owns the parts every
provider shares: request validation, the per-call timeout, metrics and
error logging. Providers implement ``_perform_search`` only.

Usage:
    >>> class MyProvider(FlightSearchGateway):
    ...     PROVIDER_NAME = "myprovider"
    ...     async def _perform_search(self, request):
    ...         ...
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Optional

from farewatch.monitoring.metrics import track_flight_search
from farewatch.providers.exceptions import (
    FlightSearchError,
    FlightSearchErrorCode,
    ProviderTimeoutError,
    log_search_error,
)
from farewatch.providers.schemas import FlightSearchRequest, SearchResult
from farewatch.utils.clock import Clock, SystemClock


class FlightSearchGateway(ABC):
    """
    Abstract base class for flight search providers.

    Class Attributes:
        PROVIDER_NAME: Unique identifier used in logs and metrics
        DEFAULT_TIMEOUT: Per-call timeout in seconds
    """

    PROVIDER_NAME: str = "base"
    DEFAULT_TIMEOUT: float = 30.0

    def __init__(self, timeout: Optional[float] = None, clock: Optional[Clock] = None):
        self.timeout = timeout if timeout is not None else self.DEFAULT_TIMEOUT
        self.clock = clock or SystemClock()
        self.logger = logging.getLogger(f"{__name__}.{self.PROVIDER_NAME}")

    def is_configured(self) -> bool:
        """Whether the provider has what it needs to make calls."""
        return True

    async def search(self, request: FlightSearchRequest) -> SearchResult:
        """
        Validate ``request`` and run the provider search under a timeout.

        Raises:
            SearchValidationError: Rejected before any network call
            GatewayConfigurationError: Provider not usable (missing credentials)
            FlightSearchError: Any translated upstream failure; unexpected
                provider failures are wrapped with code UNKNOWN
        """
        request.validate(self.clock.today())

        start_time = time.monotonic()
        status = "success"
        try:
            result = await asyncio.wait_for(self._perform_search(request), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            status = FlightSearchErrorCode.TIMEOUT.value
            error = ProviderTimeoutError(
                f"Flight search timed out after {self.timeout}s",
                provider_name=self.PROVIDER_NAME,
                timeout_seconds=self.timeout,
                original_error=e,
            )
            log_search_error(self.logger, error)
            raise error from e
        except FlightSearchError as e:
            status = e.code.value
            if e.code != FlightSearchErrorCode.NO_RESULTS:
                log_search_error(self.logger, e)
            raise
        except Exception as e:
            status = FlightSearchErrorCode.UNKNOWN.value
            error = FlightSearchError(
                f"Unexpected flight search failure: {e}",
                code=FlightSearchErrorCode.UNKNOWN,
                provider_name=self.PROVIDER_NAME,
                original_error=e,
            )
            log_search_error(self.logger, error)
            raise error from e
        finally:
            track_flight_search(self.PROVIDER_NAME, status, time.monotonic() - start_time)

        self.logger.info(
            f"{request.origin}->{request.destination} on {request.departure_date}: "
            f"{len(result.offers)} offers"
        )
        return result

    @abstractmethod
    async def _perform_search(self, request: FlightSearchRequest) -> SearchResult:
        """Provider-specific search. Must raise FlightSearchError subclasses only."""

    async def aclose(self) -> None:
        """Release network resources."""

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(provider={self.PROVIDER_NAME!r}, timeout={self.timeout}s)"
