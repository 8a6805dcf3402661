"""
Sequential work queue with pluggable inter-item delay.

Scheduled tasks and price alerts are processed one at a time with a pause
between items so the flight provider's rate limits are respected. The pause
is a policy object so batches can run with a fixed delay in production,
back off after consecutive failures, or run without waiting in tests.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Generic, Iterable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class DelayPolicy:
    """Decides how long to wait before the next item."""

    def next_delay(self, failed: bool) -> float:
        """Seconds to wait after an item; ``failed`` reports that item's outcome."""
        raise NotImplementedError

    def reset(self) -> None:
        pass


class NoDelay(DelayPolicy):
    def next_delay(self, failed: bool) -> float:
        return 0.0


class FixedDelay(DelayPolicy):
    def __init__(self, seconds: float):
        if seconds < 0:
            raise ValueError("Delay must be non-negative")
        self.seconds = seconds

    def next_delay(self, failed: bool) -> float:
        return self.seconds


class ExponentialBackoff(DelayPolicy):
    """
    Base delay after successes, doubling (by ``factor``) for each consecutive
    failure up to ``max_seconds``.
    """

    def __init__(self, base_seconds: float = 1.0, factor: float = 2.0, max_seconds: float = 30.0):
        self.base_seconds = base_seconds
        self.factor = factor
        self.max_seconds = max_seconds
        self._consecutive_failures = 0

    def next_delay(self, failed: bool) -> float:
        if not failed:
            self._consecutive_failures = 0
            return self.base_seconds
        self._consecutive_failures += 1
        delay = self.base_seconds * (self.factor ** self._consecutive_failures)
        return min(delay, self.max_seconds)

    def reset(self) -> None:
        self._consecutive_failures = 0


class SequentialWorkQueue(Generic[T, R]):
    """
    Run an async worker over items strictly one after another.

    No delay is inserted after the last item. Exceptions raised by the
    worker propagate and stop the batch; workers that want per-item
    isolation return a failed result instead of raising.

    Examples:
        >>> queue = SequentialWorkQueue(FixedDelay(1.0), is_failure=lambda r: not r.success)
        >>> results = await queue.run(task_ids, scheduler.execute_one)
    """

    def __init__(
        self,
        delay_policy: Optional[DelayPolicy] = None,
        is_failure: Optional[Callable[[Any], bool]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.delay_policy = delay_policy or NoDelay()
        self.is_failure = is_failure or (lambda result: False)
        self._sleep = sleep

    async def run(self, items: Iterable[T], worker: Callable[[T], Awaitable[R]]) -> List[R]:
        pending = list(items)
        results: List[R] = []
        self.delay_policy.reset()

        for index, item in enumerate(pending):
            result = await worker(item)
            results.append(result)

            if index < len(pending) - 1:
                delay = self.delay_policy.next_delay(self.is_failure(result))
                if delay > 0:
                    logger.debug(f"Waiting {delay:.2f}s before next item")
                    await self._sleep(delay)

        return results
