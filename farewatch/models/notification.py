"""
Notification audit log: one row per successfully delivered message.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from farewatch.models.base import Base

if TYPE_CHECKING:
    from farewatch.models.scheduled_task import ScheduledTask


class NotificationRecord(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("scheduled_tasks.id", ondelete="CASCADE"), nullable=True, index=True
    )
    alert_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("price_alerts.id", ondelete="SET NULL"), nullable=True, index=True
    )

    type: Mapped[str] = mapped_column(
        String(30), nullable=False, comment="PRICE_TARGET, NEW_LOW, PRICE_DROP, ALERT_TRIGGERED"
    )
    channel: Mapped[str] = mapped_column(String(20), nullable=False, comment="EMAIL or TELEGRAM")
    payload: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    sent_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)

    task: Mapped[Optional["ScheduledTask"]] = relationship(back_populates="notifications")

    def __repr__(self) -> str:
        return (
            f"<NotificationRecord(id={self.id}, type='{self.type}', channel='{self.channel}', "
            f"task_id={self.task_id}, alert_id={self.alert_id}, sent_at={self.sent_at})>"
        )
