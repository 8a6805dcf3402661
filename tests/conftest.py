"""
Pytest configuration and shared fixtures for FareWatch tests.
"""

import os
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from dotenv import load_dotenv

# Load test environment variables before any farewatch imports
env_file = Path(__file__).parent.parent / ".env.test"
if env_file.exists():
    load_dotenv(env_file, override=True)
else:
    os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
    os.environ.setdefault("AMADEUS_CLIENT_ID", "")
    os.environ.setdefault("AMADEUS_CLIENT_SECRET", "")
    os.environ.setdefault("CRON_SECRET", "")
    os.environ.setdefault("ENABLE_NOTIFICATIONS", "true")
    os.environ.setdefault("TASK_DELAY_SECONDS", "0")
    os.environ.setdefault("ALERT_DELAY_SECONDS", "0")
    os.environ.setdefault("DEBUG", "False")

from sqlalchemy.ext.asyncio import create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from farewatch.database import create_session_factory  # noqa: E402
from farewatch.models import Base, PriceAlert, ScheduledTask  # noqa: E402
from farewatch.providers.schemas import SearchResult  # noqa: E402
from farewatch.utils.clock import FrozenClock  # noqa: E402

from helpers import NOW, FakeGateway, build_offer  # noqa: E402


@pytest.fixture
def clock():
    """Clock pinned to 2025-01-10 12:00 UTC."""
    return FrozenClock(NOW)


@pytest.fixture
def gateway(clock):
    return FakeGateway(clock)


@pytest.fixture
def make_offer():
    return build_offer


@pytest.fixture
def offers_result():
    """Build a SearchResult from offers."""

    def _result(*offers):
        return SearchResult(offers=list(offers))

    return _result


@pytest.fixture
async def engine():
    """In-memory SQLite engine with the full schema."""
    engine = create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def add_task(session_factory):
    """Insert a scheduled task; due one hour before NOW unless overridden."""

    async def _add_task(**overrides) -> ScheduledTask:
        values = dict(
            name="London to Bangkok",
            origin="LHR",
            destination="BKK",
            departure_date="2025-06-01",
            cron_expression="0 9 * * *",
            next_run=NOW - timedelta(hours=1),
        )
        values.update(overrides)
        async with session_factory() as db:
            task = ScheduledTask(**values)
            db.add(task)
            await db.commit()
            return task

    return _add_task


@pytest.fixture
def add_alert(session_factory):
    """Insert a pending price alert expiring at its departure date."""

    async def _add_alert(**overrides) -> PriceAlert:
        values = dict(
            origin="LHR",
            destination="BKK",
            departure_date=datetime(2025, 6, 1).date(),
            target_price=500.0,
            expires_at=datetime(2025, 6, 1),
        )
        values.update(overrides)
        async with session_factory() as db:
            alert = PriceAlert(**values)
            db.add(alert)
            await db.commit()
            return alert

    return _add_alert
