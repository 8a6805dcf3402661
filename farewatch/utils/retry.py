"""
Retry decorators for external calls, built on tenacity.

Only transport-level failures are retried here. Translated provider errors
(rate limits, invalid airports, ...) are raised to the caller untouched so
that the scheduler can record them and retry on the next cron tick.
"""

import logging
from typing import Tuple, Type

import httpx
from tenacity import (
    after_log,
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

# Transient transport errors worth retrying within a single call
TRANSIENT_HTTP_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    ConnectionError,
    httpx.TimeoutException,
    httpx.NetworkError,
    httpx.RemoteProtocolError,
)


def api_retry(
    max_attempts: int = 3,
    min_wait_seconds: float = 1,
    max_wait_seconds: float = 10,
    exceptions: Tuple[Type[Exception], ...] = TRANSIENT_HTTP_EXCEPTIONS,
):
    """
    Retry decorator for async external API calls.

    Args:
        max_attempts: Maximum number of attempts (default: 3)
        min_wait_seconds: Lower bound of the exponential wait
        max_wait_seconds: Upper bound of the exponential wait
        exceptions: Exception types that trigger a retry

    Examples:
        >>> @api_retry(max_attempts=3)
        ... async def fetch_token(client: httpx.AsyncClient):
        ...     response = await client.post("/v1/security/oauth2/token")
        ...     response.raise_for_status()
        ...     return response.json()
    """
    return retry(
        retry=retry_if_exception_type(exceptions),
        stop=stop_after_attempt(max(1, max_attempts)),
        wait=wait_exponential(multiplier=1, min=min_wait_seconds, max=max_wait_seconds),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        after=after_log(logger, logging.DEBUG),
        reraise=True,
    )
