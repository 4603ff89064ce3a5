"""
Unit Routes for StoreDesk
=========================

Rooms, cabins and apartments of a hospitality store.

Endpoints:
----------
- GET /units: List units (filters: status, unit_type)
- POST /units: Create a unit
- GET /units/{id}: Get a unit
- PATCH /units/{id}: Partial update
- DELETE /units/{id}: Delete a unit
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..auth import get_current_store
from ..config import get_rate_limit_update, get_rate_limit_write
from ..db import get_db
from ..models import Store, Unit
from ..rate_limit import limiter
from ..schemas.common import SuccessResponse
from ..schemas.units import UnitCreate, UnitListResponse, UnitOut, UnitUpdate
from ..services.helpers import Pagination, paginate, pagination_params, utcnow, valid_choice

logger = logging.getLogger(__name__)

units_router = APIRouter(prefix="/units", tags=["Units"])

UNIT_STATUSES = ("available", "occupied", "maintenance", "blocked")
UNIT_TYPES = ("standard", "deluxe", "suite", "penthouse", "dormitory", "cabin", "apartment")


def _get_unit(db: Session, store: Store, unit_id: str) -> Unit:
    unit = db.query(Unit).filter(Unit.id == unit_id, Unit.store_id == store.id).first()
    if not unit:
        raise HTTPException(status_code=404, detail="Unit not found")
    return unit


@units_router.get("", response_model=UnitListResponse)
def list_units(
    status: Optional[str] = None,
    unit_type: Optional[str] = None,
    page: Pagination = Depends(pagination_params),
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> UnitListResponse:
    query = db.query(Unit).filter(Unit.store_id == store.id)
    status = valid_choice(status, UNIT_STATUSES)
    if status:
        query = query.filter(Unit.status == status)
    unit_type = valid_choice(unit_type, UNIT_TYPES)
    if unit_type:
        query = query.filter(Unit.unit_type == unit_type)

    rows, total = paginate(query.order_by(Unit.created_at.desc()), page)
    return UnitListResponse(data=[UnitOut.model_validate(u) for u in rows], total=total)


@units_router.post("", response_model=UnitOut, status_code=201)
@limiter.limit(get_rate_limit_write)
def create_unit(
    request: Request,
    payload: UnitCreate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> UnitOut:
    unit = Unit(
        store_id=store.id,
        unit_number=payload.unit_number,
        unit_type=payload.unit_type,
        floor=payload.floor,
        max_occupancy=payload.max_occupancy,
        base_rate=payload.base_rate,
        amenities=payload.amenities or [],
        images=payload.images or [],
        status=payload.status,
    )
    db.add(unit)
    db.commit()
    db.refresh(unit)
    logger.info("Created unit: %s (id=%s)", unit.unit_number, unit.id)
    return UnitOut.model_validate(unit)


@units_router.get("/{unit_id}", response_model=UnitOut)
def get_unit(
    unit_id: str,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> UnitOut:
    return UnitOut.model_validate(_get_unit(db, store, unit_id))


@units_router.patch("/{unit_id}", response_model=UnitOut)
@limiter.limit(get_rate_limit_update)
def update_unit(
    request: Request,
    unit_id: str,
    payload: UnitUpdate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> UnitOut:
    unit = _get_unit(db, store, unit_id)
    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No valid fields to update")

    for field, value in updates.items():
        setattr(unit, field, value)
    unit.updated_at = utcnow()

    db.commit()
    db.refresh(unit)
    logger.info("Updated unit: %s (id=%s)", unit.unit_number, unit.id)
    return UnitOut.model_validate(unit)


@units_router.delete("/{unit_id}", response_model=SuccessResponse)
def delete_unit(
    unit_id: str,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> SuccessResponse:
    unit = _get_unit(db, store, unit_id)
    logger.info("Deleting unit: %s (id=%s)", unit.unit_number, unit.id)
    db.delete(unit)
    db.commit()
    return SuccessResponse()
