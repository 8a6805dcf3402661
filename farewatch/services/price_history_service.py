"""
Price history tracking service.

This module provides functionality for:
- Recording the cheapest offer of a task execution
- Querying a task's history newest first
- Summarizing a task's observed prices
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from farewatch.models.price_history import PriceHistoryPoint
from farewatch.models.scheduled_task import ScheduledTask
from farewatch.providers.schemas import NormalizedOffer

logger = logging.getLogger(__name__)


class PriceHistoryService:
    """Service for recording and reading task price history."""

    @staticmethod
    async def record_offer(
        db: AsyncSession,
        task: ScheduledTask,
        offer: NormalizedOffer,
        recorded_at: datetime,
    ) -> PriceHistoryPoint:
        """
        Append a history point for ``offer``.

        Airlines are the union across all legs of the offer and stops are
        summed over its legs.
        """
        point = PriceHistoryPoint(
            task_id=task.id,
            price=float(offer.price),
            currency=offer.currency,
            airlines=list(offer.airlines),
            stops=offer.total_stops,
            duration=offer.total_duration,
            recorded_at=recorded_at,
        )
        db.add(point)
        await db.flush()

        logger.info(
            f"Price tracked: task {task.id} {task.route} "
            f"{offer.price:.2f} {offer.currency} ({', '.join(offer.airlines) or 'unknown airline'})"
        )
        return point

    @staticmethod
    async def get_history(
        db: AsyncSession,
        task_id: int,
        limit: Optional[int] = 100,
    ) -> List[PriceHistoryPoint]:
        """History points for ``task_id`` ordered newest first."""
        query = (
            select(PriceHistoryPoint)
            .where(PriceHistoryPoint.task_id == task_id)
            .order_by(desc(PriceHistoryPoint.recorded_at), desc(PriceHistoryPoint.id))
        )
        if limit:
            query = query.limit(limit)

        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def get_price_stats(db: AsyncSession, task_id: int) -> Dict:
        """
        Summary of a task's observations.

        Returns:
            {'count': int, 'min_price': float | None, 'max_price': float | None,
             'avg_price': float | None}
        """
        query = select(
            func.count(PriceHistoryPoint.id),
            func.min(PriceHistoryPoint.price),
            func.max(PriceHistoryPoint.price),
            func.avg(PriceHistoryPoint.price),
        ).where(PriceHistoryPoint.task_id == task_id)

        count, min_price, max_price, avg_price = (await db.execute(query)).one()
        return {
            "count": int(count or 0),
            "min_price": float(min_price) if min_price is not None else None,
            "max_price": float(max_price) if max_price is not None else None,
            "avg_price": round(float(avg_price), 2) if avg_price is not None else None,
        }
