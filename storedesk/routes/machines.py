"""
Laundry machine routes: list, register and update washers, dryers and presses.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..auth import get_current_store
from ..config import get_rate_limit_update, get_rate_limit_write
from ..db import get_db
from ..models import Machine, Store
from ..rate_limit import limiter
from ..schemas.machines import MachineCreate, MachineListResponse, MachineOut, MachineUpdate
from ..services.helpers import Pagination, paginate, pagination_params, valid_choice

logger = logging.getLogger(__name__)

machines_router = APIRouter(prefix="/machines", tags=["Machines"])

MACHINE_TYPES = ("washer", "dryer", "iron_press", "steam")
MACHINE_STATUSES = ("available", "in_use", "maintenance", "out_of_order")


@machines_router.get("", response_model=MachineListResponse)
def list_machines(
    machine_type: Optional[str] = None,
    status: Optional[str] = None,
    page: Pagination = Depends(pagination_params),
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> MachineListResponse:
    query = db.query(Machine).filter(Machine.store_id == store.id)
    machine_type = valid_choice(machine_type, MACHINE_TYPES)
    if machine_type:
        query = query.filter(Machine.machine_type == machine_type)
    status = valid_choice(status, MACHINE_STATUSES)
    if status:
        query = query.filter(Machine.status == status)

    rows, total = paginate(query.order_by(Machine.created_at.desc()), page)
    return MachineListResponse(data=[MachineOut.model_validate(m) for m in rows], total=total)


@machines_router.post("", response_model=MachineOut, status_code=201)
@limiter.limit(get_rate_limit_write)
def create_machine(
    request: Request,
    payload: MachineCreate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> MachineOut:
    machine = Machine(
        store_id=store.id,
        name=payload.name,
        machine_type=payload.machine_type,
        capacity_kg=payload.capacity_kg,
        status="available",
    )
    db.add(machine)
    db.commit()
    db.refresh(machine)
    logger.info("Created machine: %s (id=%s)", machine.name, machine.id)
    return MachineOut.model_validate(machine)


@machines_router.patch("/{machine_id}", response_model=MachineOut)
@limiter.limit(get_rate_limit_update)
def update_machine(
    request: Request,
    machine_id: str,
    payload: MachineUpdate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> MachineOut:
    machine = db.query(Machine).filter(Machine.id == machine_id, Machine.store_id == store.id).first()
    if not machine:
        raise HTTPException(status_code=404, detail="Machine not found")

    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No valid fields to update")
    for field, value in updates.items():
        setattr(machine, field, value)

    db.commit()
    db.refresh(machine)
    logger.info("Updated machine: %s (id=%s, status=%s)", machine.name, machine.id, machine.status)
    return MachineOut.model_validate(machine)
