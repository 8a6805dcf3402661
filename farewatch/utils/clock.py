"""
Injectable time source.

All "current time" reads in the scheduler, alert evaluator and date
resolution go through a Clock so tests can pin time. Instants are naive
datetimes in UTC, matching how they are stored in the database.
"""

from datetime import date, datetime, timedelta, timezone


class Clock:
    """Abstract time source."""

    def now(self) -> datetime:
        raise NotImplementedError

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """Wall-clock time in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc).replace(tzinfo=None)


class FrozenClock(Clock):
    """A clock that only moves when told to."""

    def __init__(self, now: datetime):
        self._now = now

    def now(self) -> datetime:
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now

    def advance(self, delta: timedelta) -> datetime:
        self._now += delta
        return self._now
