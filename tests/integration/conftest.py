"""
Fixtures for API integration tests.

The app runs against a file-backed SQLite database with its engine
dependencies overridden: a frozen clock, a scripted gateway and a mock
notification dispatcher.
"""

import asyncio
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from farewatch.api import dependencies
from farewatch.api.main import app
from farewatch.config import get_settings
from farewatch.database import create_session_factory, get_async_session
from farewatch.models import Base, ScheduledTask
from farewatch.notifications.notification_service import NotificationDispatcher
from farewatch.utils.clock import FrozenClock

from helpers import NOW, FakeGateway


@pytest.fixture
def api_session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'farewatch.db'}", poolclass=NullPool)

    async def create_tables():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_tables())
    yield create_session_factory(engine)
    asyncio.run(engine.dispose())


@pytest.fixture
def api_clock():
    return FrozenClock(NOW)


@pytest.fixture
def api_gateway(api_clock):
    return FakeGateway(api_clock)


@pytest.fixture
def api_dispatcher():
    dispatcher = Mock(spec=NotificationDispatcher)
    dispatcher.notify_all = AsyncMock(return_value=[])
    return dispatcher


@pytest.fixture
def api_settings():
    """Settings with the cron secret unset; tests copy and update as needed."""
    return get_settings().model_copy(update={"cron_secret": None})


@pytest.fixture
def client(api_session_factory, api_clock, api_gateway, api_dispatcher, api_settings):
    async def override_session():
        async with api_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_async_session] = override_session
    app.dependency_overrides[dependencies.get_db_session_factory] = lambda: api_session_factory
    app.dependency_overrides[dependencies.get_clock] = lambda: api_clock
    app.dependency_overrides[dependencies.get_gateway] = lambda: api_gateway
    app.dependency_overrides[dependencies.get_dispatcher] = lambda: api_dispatcher
    app.dependency_overrides[dependencies.get_app_settings] = lambda: api_settings

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def seed_task(api_session_factory):
    """Insert a scheduled task directly; due one hour before NOW by default."""

    def _seed(**overrides) -> int:
        values = dict(
            name="London to Bangkok",
            origin="LHR",
            destination="BKK",
            departure_date="2025-06-01",
            cron_expression="0 9 * * *",
            next_run=NOW.replace(hour=11),
        )
        values.update(overrides)

        async def insert():
            async with api_session_factory() as db:
                task = ScheduledTask(**values)
                db.add(task)
                await db.commit()
                return task.id

        return asyncio.run(insert())

    return _seed
