"""
Scheduled task model: a saved flight search re-run on a cron cadence.
"""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from farewatch.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from farewatch.models.notification import NotificationRecord
    from farewatch.models.price_history import PriceHistoryPoint


class ScheduledTask(Base, TimestampMixin):
    """
    A recurring price check.

    Departure and return dates are stored as expressions: either an
    absolute ``YYYY-MM-DD`` date or a rolling ``+<n>d|w|m`` offset resolved
    at execution time. ``last_run``, ``next_run``, ``last_price`` and
    ``lowest_price`` are only written by the task executor.
    """

    __tablename__ = "scheduled_tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)

    # Route
    origin: Mapped[str] = mapped_column(String(3), nullable=False, comment="IATA code")
    destination: Mapped[str] = mapped_column(String(3), nullable=False, comment="IATA code")
    departure_date: Mapped[str] = mapped_column(
        String(20), nullable=False, comment="YYYY-MM-DD or +<n>d|w|m"
    )
    return_date: Mapped[Optional[str]] = mapped_column(
        String(20), nullable=True, comment="YYYY-MM-DD or +<n>d|w|m"
    )
    adults: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    cabin_class: Mapped[str] = mapped_column(String(20), nullable=False, default="ECONOMY")

    # Schedule
    cron_expression: Mapped[str] = mapped_column(String(100), nullable=False)
    price_target: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_run: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    next_run: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Observations
    last_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    lowest_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    price_history: Mapped[List["PriceHistoryPoint"]] = relationship(
        back_populates="task",
        cascade="all, delete-orphan",
        order_by="desc(PriceHistoryPoint.recorded_at), desc(PriceHistoryPoint.id)",
    )
    notifications: Mapped[List["NotificationRecord"]] = relationship(
        back_populates="task",
        cascade="all, delete-orphan",
    )

    __table_args__ = (Index("ix_scheduled_tasks_due", "active", "next_run"),)

    @property
    def route(self) -> str:
        return f"{self.origin}-{self.destination}"

    def __repr__(self) -> str:
        return (
            f"<ScheduledTask(id={self.id}, name='{self.name}', route='{self.route}', "
            f"cron='{self.cron_expression}', active={self.active}, next_run={self.next_run})>"
        )
