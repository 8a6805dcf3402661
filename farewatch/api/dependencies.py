"""
FastAPI dependencies that wire the engine components.

Tests swap any of these out through ``app.dependency_overrides``.
"""

from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from farewatch.config import Settings, get_settings
from farewatch.database import get_session_factory
from farewatch.notifications.notification_service import NotificationDispatcher
from farewatch.orchestration.route_optimizer import RouteOptimizer
from farewatch.providers import create_gateway
from farewatch.providers.base import FlightSearchGateway
from farewatch.services.alert_evaluator import PriceAlertEvaluator
from farewatch.services.task_scheduler import TaskScheduler
from farewatch.services.tracking_cycle import TrackingCycle
from farewatch.utils.clock import Clock, SystemClock


def get_app_settings() -> Settings:
    return get_settings()


def get_clock() -> Clock:
    return SystemClock()


def get_db_session_factory() -> async_sessionmaker[AsyncSession]:
    return get_session_factory()


async def get_gateway(clock: Clock = Depends(get_clock)) -> AsyncGenerator[FlightSearchGateway, None]:
    gateway = create_gateway(clock=clock)
    try:
        yield gateway
    finally:
        await gateway.aclose()


async def get_dispatcher(
    settings: Settings = Depends(get_app_settings),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_db_session_factory),
    clock: Clock = Depends(get_clock),
) -> AsyncGenerator[NotificationDispatcher, None]:
    dispatcher = NotificationDispatcher.from_settings(settings, session_factory=session_factory, clock=clock)
    try:
        yield dispatcher
    finally:
        await dispatcher.aclose()


def get_task_scheduler(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_db_session_factory),
    gateway: FlightSearchGateway = Depends(get_gateway),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
    clock: Clock = Depends(get_clock),
) -> TaskScheduler:
    return TaskScheduler(session_factory, gateway, dispatcher, clock=clock)


def get_tracking_cycle(
    scheduler: TaskScheduler = Depends(get_task_scheduler),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_db_session_factory),
) -> TrackingCycle:
    evaluator = PriceAlertEvaluator(
        session_factory, scheduler.gateway, scheduler.dispatcher, clock=scheduler.clock
    )
    return TrackingCycle(scheduler, evaluator)


def get_route_optimizer(
    gateway: FlightSearchGateway = Depends(get_gateway),
    clock: Clock = Depends(get_clock),
) -> RouteOptimizer:
    return RouteOptimizer(gateway, clock=clock)
