"""
Scheduled task endpoints: CRUD, price history and manual runs.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from farewatch.api.dependencies import get_clock, get_task_scheduler
from farewatch.api.schemas.task import PriceHistoryRecord, TaskCreate, TaskResponse, TaskUpdate
from farewatch.database import get_async_session
from farewatch.exceptions import (
    ConfigurationException,
    PastDepartureDateError,
    TaskExecutionError,
    TaskInactiveError,
    TaskNotFoundError,
)
from farewatch.models.scheduled_task import ScheduledTask
from farewatch.services.price_history_service import PriceHistoryService
from farewatch.services.task_scheduler import TaskScheduler
from farewatch.utils.clock import Clock
from farewatch.utils.cron import next_run_time

logger = logging.getLogger(__name__)

router = APIRouter()

TASK_ERROR_STATUS = {
    TaskNotFoundError.code: status.HTTP_404_NOT_FOUND,
    TaskInactiveError.code: status.HTTP_409_CONFLICT,
    PastDepartureDateError.code: status.HTTP_422_UNPROCESSABLE_ENTITY,
    "INVALID_DATE_EXPRESSION": status.HTTP_422_UNPROCESSABLE_ENTITY,
}


async def _get_task_or_404(db: AsyncSession, task_id: int) -> ScheduledTask:
    task = await db.get(ScheduledTask, task_id)
    if task is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": f"Task {task_id} not found", "error_code": TaskNotFoundError.code},
        )
    return task


@router.get("/tasks", response_model=List[TaskResponse])
async def list_tasks(
    active: Optional[bool] = Query(None, description="Filter by active flag"),
    db: AsyncSession = Depends(get_async_session),
) -> List[ScheduledTask]:
    query = select(ScheduledTask).order_by(desc(ScheduledTask.created_at), desc(ScheduledTask.id))
    if active is not None:
        query = query.where(ScheduledTask.active.is_(active))
    result = await db.execute(query)
    return list(result.scalars().all())


@router.post("/tasks", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(
    payload: TaskCreate,
    db: AsyncSession = Depends(get_async_session),
    clock: Clock = Depends(get_clock),
) -> ScheduledTask:
    """Create a task; its first run is the next cron match from now."""
    task = ScheduledTask(
        name=payload.name,
        origin=payload.origin,
        destination=payload.destination,
        departure_date=payload.departure_date,
        return_date=payload.return_date,
        adults=payload.adults,
        cabin_class=payload.cabin_class.value,
        cron_expression=payload.cron_expression,
        price_target=payload.price_target,
        active=payload.active,
        next_run=next_run_time(payload.cron_expression, clock.now()),
    )
    db.add(task)
    await db.flush()
    await db.refresh(task)
    logger.info(f"Created task {task.id} '{task.name}' ({task.route}, cron '{task.cron_expression}')")
    return task


@router.get("/tasks/{task_id}", response_model=TaskResponse)
async def get_task(task_id: int, db: AsyncSession = Depends(get_async_session)) -> ScheduledTask:
    return await _get_task_or_404(db, task_id)


@router.patch("/tasks/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: int,
    payload: TaskUpdate,
    db: AsyncSession = Depends(get_async_session),
    clock: Clock = Depends(get_clock),
) -> ScheduledTask:
    """Pause/resume a task or change its name, target or cadence."""
    task = await _get_task_or_404(db, task_id)
    changes = payload.model_dump(exclude_unset=True)

    for field_name in ("name", "price_target"):
        if field_name in changes:
            setattr(task, field_name, changes[field_name])

    reschedule = False
    if changes.get("cron_expression"):
        task.cron_expression = changes["cron_expression"]
        reschedule = True
    if changes.get("active") is not None:
        reschedule = reschedule or (changes["active"] and not task.active)
        task.active = changes["active"]

    if reschedule:
        task.next_run = next_run_time(task.cron_expression, clock.now())

    await db.flush()
    await db.refresh(task)
    logger.info(f"Updated task {task.id}: {changes}")
    return task


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(task_id: int, db: AsyncSession = Depends(get_async_session)) -> None:
    """Delete a task together with its price history and notification log."""
    task = await _get_task_or_404(db, task_id)
    await db.delete(task)
    await db.flush()
    logger.info(f"Deleted task {task_id}")


@router.get("/tasks/{task_id}/history", response_model=List[PriceHistoryRecord])
async def get_task_history(
    task_id: int,
    limit: int = Query(100, ge=1, le=1000),
    db: AsyncSession = Depends(get_async_session),
):
    await _get_task_or_404(db, task_id)
    return await PriceHistoryService.get_history(db, task_id, limit=limit)



@router.get("/tasks/{task_id}/stats")
async def get_task_price_stats(task_id: int, db: AsyncSession = Depends(get_async_session)):
    """Observation count with the lowest, highest and average recorded price."""
    task = await _get_task_or_404(db, task_id)
    stats = await PriceHistoryService.get_price_stats(db, task_id)
    return {
        "task_id": task.id,
        "last_price": task.last_price,
        "lowest_price": task.lowest_price,
        **stats,
    }

@router.post("/tasks/{task_id}/run")
async def run_task(task_id: int, scheduler: TaskScheduler = Depends(get_task_scheduler)):
    """
    Run one task immediately.

    Status codes: 404 unknown task, 409 paused task, 422 departure date in
    the past, 502 flight search failure, 503 flight search not configured.
    """
    try:
        result = await scheduler.execute_one(task_id)
    except TaskExecutionError as e:
        return JSONResponse(
            status_code=TASK_ERROR_STATUS.get(e.code, status.HTTP_400_BAD_REQUEST),
            content={"success": False, "error": e.message, "error_code": e.code},
        )
    except ConfigurationException as e:
        logger.error(f"Cannot run task {task_id}: {e}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "success": False,
                "error": "Flight search service not configured",
                "error_code": getattr(getattr(e, "code", None), "value", "NOT_CONFIGURED"),
            },
        )

    body = {"success": result.success, "data": result.to_dict()}
    if result.success:
        return body

    body.update(error=result.error, error_code=result.error_code)
    return JSONResponse(
        status_code=TASK_ERROR_STATUS.get(result.error_code, status.HTTP_502_BAD_GATEWAY),
        content=body,
    )
