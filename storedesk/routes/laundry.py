"""
Laundry Routes for StoreDesk
============================

Endpoints:
----------
- GET /laundry-orders: List laundry orders (filter: status)
- POST /laundry-orders: Receive a new laundry order with its items
- PATCH /laundry-orders/{id}: Update status, payment, pickup date or notes
- GET /processing: Orders currently being worked on
- POST /processing: Move an order to a processing stage

Processing Stages:
------------------
processing, washing, drying, ironing and ready make up the processing
board. GET /processing narrows to one stage with a valid ?status= and
falls back to the whole board otherwise.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session, selectinload

from ..auth import get_current_store
from ..config import get_rate_limit_update, get_rate_limit_write
from ..db import get_db
from ..models import LaundryItem, LaundryOrder, Store
from ..rate_limit import limiter
from ..schemas.laundry import (
    LaundryOrderCreate,
    LaundryOrderListResponse,
    LaundryOrderOut,
    LaundryOrderUpdate,
    ProcessingUpdate,
)
from ..services.helpers import Pagination, paginate, pagination_params, valid_choice

logger = logging.getLogger(__name__)

laundry_router = APIRouter(prefix="/laundry-orders", tags=["Laundry"])
processing_router = APIRouter(prefix="/processing", tags=["Laundry"])

LAUNDRY_STATUSES = ("received", "processing", "washing", "drying", "ironing", "ready", "delivered", "cancelled")
PROCESSING_STATUSES = ("processing", "washing", "drying", "ironing", "ready")


def _orders_query(db: Session, store: Store):
    return (
        db.query(LaundryOrder)
        .options(selectinload(LaundryOrder.items))
        .filter(LaundryOrder.store_id == store.id)
    )


def _list_response(query, page: Pagination) -> LaundryOrderListResponse:
    rows, total = paginate(query.order_by(LaundryOrder.created_at.desc()), page)
    return LaundryOrderListResponse(data=[LaundryOrderOut.model_validate(o) for o in rows], total=total)


# =============================================================================
# Laundry orders
# =============================================================================

@laundry_router.get("", response_model=LaundryOrderListResponse)
def list_laundry_orders(
    status: Optional[str] = None,
    page: Pagination = Depends(pagination_params),
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> LaundryOrderListResponse:
    query = _orders_query(db, store)
    status = valid_choice(status, LAUNDRY_STATUSES)
    if status:
        query = query.filter(LaundryOrder.status == status)
    return _list_response(query, page)


@laundry_router.post("", response_model=LaundryOrderOut, status_code=201)
@limiter.limit(get_rate_limit_write)
def create_laundry_order(
    request: Request,
    payload: LaundryOrderCreate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> LaundryOrderOut:
    items = [LaundryItem(**item.model_dump()) for item in payload.items]
    order = LaundryOrder(
        store_id=store.id,
        customer_id=payload.customer_id,
        order_number=payload.order_number,
        status="received",
        total_items=sum(i.quantity for i in items),
        total_amount=sum(i.quantity * i.unit_price for i in items),
        paid_amount=0,
        rush_order=payload.rush_order,
        pickup_date=payload.pickup_date,
        notes=payload.notes,
        items=items,
    )
    db.add(order)
    db.commit()
    db.refresh(order)
    logger.info("Created laundry order: %s (id=%s, items=%s)", order.order_number, order.id, order.total_items)
    return LaundryOrderOut.model_validate(order)


@laundry_router.patch("/{order_id}", response_model=LaundryOrderOut)
@limiter.limit(get_rate_limit_update)
def update_laundry_order(
    request: Request,
    order_id: str,
    payload: LaundryOrderUpdate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> LaundryOrderOut:
    order = _orders_query(db, store).filter(LaundryOrder.id == order_id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Laundry order not found")

    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No valid fields to update")
    for field, value in updates.items():
        setattr(order, field, value)

    db.commit()
    db.refresh(order)
    logger.info("Updated laundry order: %s (status=%s)", order.order_number, order.status)
    return LaundryOrderOut.model_validate(order)


# =============================================================================
# Processing board
# =============================================================================

@processing_router.get("", response_model=LaundryOrderListResponse)
def list_processing(
    status: Optional[str] = None,
    page: Pagination = Depends(pagination_params),
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> LaundryOrderListResponse:
    query = _orders_query(db, store)
    status = valid_choice(status, PROCESSING_STATUSES)
    if status:
        query = query.filter(LaundryOrder.status == status)
    else:
        query = query.filter(LaundryOrder.status.in_(PROCESSING_STATUSES))
    return _list_response(query, page)


@processing_router.post("", response_model=LaundryOrderOut)
@limiter.limit(get_rate_limit_update)
def move_to_stage(
    request: Request,
    payload: ProcessingUpdate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> LaundryOrderOut:
    order = _orders_query(db, store).filter(LaundryOrder.id == payload.order_id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Laundry order not found")

    previous = order.status
    order.status = payload.status
    db.commit()
    db.refresh(order)
    logger.info("Laundry order %s: %s -> %s", order.order_number, previous, order.status)
    return LaundryOrderOut.model_validate(order)
