"""
Price alert endpoints.
"""

import logging
from datetime import datetime, time
from typing import List

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from farewatch.api.dependencies import get_clock
from farewatch.api.schemas.alert import AlertCreate, AlertResponse
from farewatch.database import get_async_session
from farewatch.models.price_alert import PriceAlert
from farewatch.utils.clock import Clock

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/alerts", response_model=List[AlertResponse])
async def list_alerts(
    db: AsyncSession = Depends(get_async_session),
    clock: Clock = Depends(get_clock),
) -> List[PriceAlert]:
    """Active alerts that have not expired, newest first."""
    query = (
        select(PriceAlert)
        .where(PriceAlert.active.is_(True))
        .where(PriceAlert.expires_at > clock.now())
        .order_by(desc(PriceAlert.created_at), desc(PriceAlert.id))
    )
    result = await db.execute(query)
    return list(result.scalars().all())


@router.post("/alerts")
async def create_alert(payload: AlertCreate, db: AsyncSession = Depends(get_async_session)):
    """
    Create an alert, or update the target of the active alert already
    watching the same route and departure date.
    """
    existing = (
        await db.execute(
            select(PriceAlert)
            .where(PriceAlert.origin == payload.origin)
            .where(PriceAlert.destination == payload.destination)
            .where(PriceAlert.departure_date == payload.departure_date)
            .where(PriceAlert.active.is_(True))
        )
    ).scalars().first()

    if existing is not None:
        existing.target_price = payload.target_price
        if payload.current_price is not None:
            existing.current_price = payload.current_price
        existing.airlines = list(payload.airlines)
        await db.flush()
        await db.refresh(existing)
        logger.info(f"Updated alert {existing.id} ({existing.route}) target to {payload.target_price}")
        return {
            "success": True,
            "data": AlertResponse.model_validate(existing).model_dump(mode="json"),
            "message": "Alert updated",
        }

    alert = PriceAlert(
        origin=payload.origin,
        destination=payload.destination,
        departure_date=payload.departure_date,
        return_date=payload.return_date,
        target_price=payload.target_price,
        current_price=payload.current_price,
        currency=payload.currency,
        flight_offer_id=payload.flight_offer_id,
        airlines=list(payload.airlines),
        expires_at=datetime.combine(payload.departure_date, time.min),
    )
    db.add(alert)
    await db.flush()
    await db.refresh(alert)
    logger.info(f"Created alert {alert.id} ({alert.route}) with target {alert.target_price}")

    return JSONResponse(
        status_code=status.HTTP_201_CREATED,
        content={
            "success": True,
            "data": AlertResponse.model_validate(alert).model_dump(mode="json"),
            "message": "Alert created",
        },
    )
