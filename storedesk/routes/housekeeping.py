"""
Housekeeping Routes for StoreDesk
=================================

Endpoints:
----------
- GET /housekeeping: List tasks (filters: status, unit_id, assigned_to)
- POST /housekeeping: Create a pending task for one of the store's units
- PATCH /housekeeping/{id}: Reassign, reprioritise or complete a task

Completing a task without an explicit completed_at stamps the current time.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..auth import get_current_store
from ..config import get_rate_limit_update, get_rate_limit_write
from ..db import get_db
from ..models import HousekeepingTask, Staff, Store, Unit
from ..rate_limit import limiter
from ..schemas.housekeeping import (
    HousekeepingCreate,
    HousekeepingListResponse,
    HousekeepingOut,
    HousekeepingUpdate,
)
from ..services.helpers import Pagination, paginate, pagination_params, utcnow, valid_choice

logger = logging.getLogger(__name__)

housekeeping_router = APIRouter(prefix="/housekeeping", tags=["Housekeeping"])

TASK_STATUSES = ("pending", "in_progress", "completed", "skipped")


def _check_staff(db: Session, store: Store, staff_id: Optional[str]) -> None:
    if staff_id and not db.query(Staff.id).filter(Staff.id == staff_id, Staff.store_id == store.id).first():
        raise HTTPException(status_code=404, detail="Staff not found")


@housekeeping_router.get("", response_model=HousekeepingListResponse)
def list_tasks(
    status: Optional[str] = None,
    unit_id: Optional[str] = None,
    assigned_to: Optional[str] = None,
    page: Pagination = Depends(pagination_params),
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> HousekeepingListResponse:
    query = db.query(HousekeepingTask).filter(HousekeepingTask.store_id == store.id)
    status = valid_choice(status, TASK_STATUSES)
    if status:
        query = query.filter(HousekeepingTask.status == status)
    if unit_id:
        query = query.filter(HousekeepingTask.unit_id == unit_id)
    if assigned_to:
        query = query.filter(HousekeepingTask.assigned_to == assigned_to)

    rows, total = paginate(query.order_by(HousekeepingTask.created_at.desc()), page)
    return HousekeepingListResponse(data=[HousekeepingOut.model_validate(t) for t in rows], total=total)


@housekeeping_router.post("", response_model=HousekeepingOut, status_code=201)
@limiter.limit(get_rate_limit_write)
def create_task(
    request: Request,
    payload: HousekeepingCreate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> HousekeepingOut:
    unit = db.query(Unit).filter(Unit.id == payload.unit_id, Unit.store_id == store.id).first()
    if not unit:
        raise HTTPException(status_code=404, detail="Unit not found")
    _check_staff(db, store, payload.assigned_to)

    task = HousekeepingTask(
        store_id=store.id,
        unit_id=unit.id,
        assigned_to=payload.assigned_to,
        task_type=payload.task_type,
        priority=payload.priority,
        status="pending",
        scheduled_at=payload.scheduled_at,
        notes=payload.notes,
    )
    db.add(task)
    db.commit()
    db.refresh(task)
    logger.info("Created housekeeping task: %s for unit %s (id=%s)", task.task_type, unit.unit_number, task.id)
    return HousekeepingOut.model_validate(task)


@housekeeping_router.patch("/{task_id}", response_model=HousekeepingOut)
@limiter.limit(get_rate_limit_update)
def update_task(
    request: Request,
    task_id: str,
    payload: HousekeepingUpdate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> HousekeepingOut:
    task = (
        db.query(HousekeepingTask)
        .filter(HousekeepingTask.id == task_id, HousekeepingTask.store_id == store.id)
        .first()
    )
    if not task:
        raise HTTPException(status_code=404, detail="Housekeeping task not found")

    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No valid fields to update")
    _check_staff(db, store, updates.get("assigned_to"))

    for field, value in updates.items():
        setattr(task, field, value)
    if updates.get("status") == "completed" and not updates.get("completed_at"):
        task.completed_at = utcnow()

    db.commit()
    db.refresh(task)
    logger.info("Updated housekeeping task %s (status=%s)", task.id, task.status)
    return HousekeepingOut.model_validate(task)
