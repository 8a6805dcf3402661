"""
Database connection and session management using SQLAlchemy.
Supports async operations with asyncpg (PostgreSQL) and aiosqlite (SQLite).

The engine is created on first use so that importing the package does not
require a database driver or a reachable server.
"""

import logging
from contextlib import asynccontextmanager
from functools import lru_cache
from typing import AsyncGenerator

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from farewatch.config import settings
from farewatch.exceptions import DatabaseConnectionError
from farewatch.models.base import Base

logger = logging.getLogger(__name__)


def create_engine_for_url(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Build an async engine for ``database_url`` with per-dialect connection setup:
    PostgreSQL sessions run in UTC, SQLite connections enforce foreign keys.
    """
    url = make_url(database_url)
    kwargs = {"echo": echo}

    if url.get_backend_name() == "postgresql":
        kwargs.update(
            pool_pre_ping=True,  # Verify connections before using
            pool_size=5,
            max_overflow=10,
            pool_recycle=3600,
            pool_timeout=30,
            connect_args={
                "server_settings": {"application_name": settings.app_name, "timezone": "UTC"},
                "timeout": 10,
            },
        )

    engine = create_async_engine(database_url, **kwargs)

    if url.get_backend_name() == "sqlite":

        @event.listens_for(engine.sync_engine, "connect")
        def set_sqlite_pragmas(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@lru_cache()
def get_engine() -> AsyncEngine:
    """Application engine built from settings.database_url."""
    return create_engine_for_url(settings.database_url, echo=settings.debug)


@lru_cache()
def get_session_factory() -> async_sessionmaker[AsyncSession]:
    return create_session_factory(get_engine())


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Async dependency for FastAPI to get database session.

    Usage:
        @app.get("/api/tasks")
        async def list_tasks(db: AsyncSession = Depends(get_async_session)):
            result = await db.execute(select(ScheduledTask))
            return result.scalars().all()
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_async_session_context() -> AsyncGenerator[AsyncSession, None]:
    """
    Async context manager for database session.

    Usage:
        async with get_async_session_context() as db:
            result = await db.execute(select(ScheduledTask))
            tasks = result.scalars().all()
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """
    Create all tables.

    Intended for development and tests. In production, use Alembic
    migrations instead.
    """
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created successfully")


async def check_db_connection() -> bool:
    """Return True if a trivial query succeeds."""
    try:
        async with get_engine().connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False


async def close_db_connections() -> None:
    """Dispose of the engine if one was created."""
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
        logger.info("Database connections closed")


@asynccontextmanager
async def lifespan_db(require_connection: bool = False):
    """
    Database lifespan context manager for FastAPI.

    Args:
        require_connection: Abort startup when the database is unreachable
    """
    try:
        logger.info("Checking database connection")
        if await check_db_connection():
            logger.info("Database is ready")
        elif require_connection:
            raise DatabaseConnectionError("Database unreachable during startup")
        else:
            logger.warning("Database unreachable during startup; requests will fail until it is up")

        yield

    finally:
        await close_db_connections()
