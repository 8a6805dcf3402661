"""
Price history model: one observation per successful task execution.
"""

from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from farewatch.models.base import Base

if TYPE_CHECKING:
    from farewatch.models.scheduled_task import ScheduledTask


class PriceHistoryPoint(Base):
    """
    Cheapest price observed for a task at ``recorded_at``.
    Append-only; read newest first.
    """

    __tablename__ = "price_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("scheduled_tasks.id", ondelete="CASCADE"), nullable=False
    )

    price: Mapped[float] = mapped_column(Float, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    airlines: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    stops: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duration: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    recorded_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    task: Mapped["ScheduledTask"] = relationship(back_populates="price_history")

    __table_args__ = (Index("ix_price_history_task_recorded", "task_id", "recorded_at"),)

    def __repr__(self) -> str:
        return (
            f"<PriceHistoryPoint(id={self.id}, task_id={self.task_id}, "
            f"price={self.price} {self.currency}, recorded_at={self.recorded_at})>"
        )
