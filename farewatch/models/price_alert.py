"""
Price alert model: a one-shot "tell me when it drops below X" watch.
"""

from datetime import date, datetime
from typing import List, Optional

from sqlalchemy import JSON, Boolean, Date, DateTime, Float, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from farewatch.models.base import Base, TimestampMixin


class PriceAlert(Base, TimestampMixin):
    """
    Alerts are priced on every tracking cycle until they trigger or expire.
    A triggered alert is never evaluated again; an expired one is deleted
    regardless of its trigger state.
    """

    __tablename__ = "price_alerts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    origin: Mapped[str] = mapped_column(String(3), nullable=False)
    destination: Mapped[str] = mapped_column(String(3), nullable=False)
    departure_date: Mapped[date] = mapped_column(Date, nullable=False)
    return_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    target_price: Mapped[float] = mapped_column(Float, nullable=False)
    current_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="USD")

    # Last priced offer
    flight_offer_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    airlines: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    triggered: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    notified_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    __table_args__ = (
        Index("ix_price_alerts_pending", "active", "triggered", "expires_at"),
        Index("ix_price_alerts_expires_at", "expires_at"),
    )

    @property
    def route(self) -> str:
        return f"{self.origin}-{self.destination}"

    def __repr__(self) -> str:
        return (
            f"<PriceAlert(id={self.id}, route='{self.route}', target={self.target_price}, "
            f"current={self.current_price}, triggered={self.triggered}, expires_at={self.expires_at})>"
        )
