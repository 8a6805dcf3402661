"""
SQLAlchemy models for FareWatch.
Import all models here to ensure they are registered with SQLAlchemy.
"""

from farewatch.models.base import Base, TimestampMixin
from farewatch.models.notification import NotificationRecord
from farewatch.models.price_alert import PriceAlert
from farewatch.models.price_history import PriceHistoryPoint
from farewatch.models.scheduled_task import ScheduledTask

__all__ = [
    "Base",
    "TimestampMixin",
    "ScheduledTask",
    "PriceHistoryPoint",
    "PriceAlert",
    "NotificationRecord",
]
