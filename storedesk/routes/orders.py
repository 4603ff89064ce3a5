"""
Order Routes for StoreDesk
==========================

Endpoints:
----------
- POST /orders: Public checkout used by the storefront and widget (no auth)
- GET /orders: Owner's order list (filter: status)
- PATCH /orders/status: Move an order along its status machine

Public Checkout:
----------------
The store is taken from the body. A store in busy mode rejects orders with
503 and a {detail, busy, estimated_wait_minutes} body so the storefront can
show the wait time. Shipping is only charged for delivery orders, from the
zone named in the body (see services.orders.calculate_shipping).

Order States:
-------------
    pending -> confirmed | cancelled
    confirmed -> processing | cancelled
    processing -> shipped | delivered | cancelled
    shipped -> delivered

Every successful create or status change notifies the owner.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session, selectinload

from ..auth import get_current_store
from ..config import get_rate_limit_orders, get_rate_limit_update
from ..db import get_db
from ..models import Order, Store
from ..rate_limit import limiter
from ..schemas.orders import (
    OrderCreate,
    OrderCreatedResponse,
    OrderListResponse,
    OrderOut,
    OrderStatusUpdate,
)
from ..services.helpers import Pagination, paginate, pagination_params, valid_choice
from ..services.notifications import dispatch_notification
from ..services.orders import calculate_shipping, create_order
from ..services.status_machine import ORDER_TRANSITIONS, validate_transition

logger = logging.getLogger(__name__)

orders_router = APIRouter(prefix="/orders", tags=["Orders"])

DEFAULT_BUSY_MESSAGE = "Дэлгүүр одоогоор захиалга авахгүй байна"


@orders_router.post("", response_model=OrderCreatedResponse, status_code=201)
@limiter.limit(get_rate_limit_orders)
def place_order(
    request: Request,
    payload: OrderCreate,
    db: Session = Depends(get_db),
):
    store = db.query(Store).filter(Store.id == payload.store_id).first()
    if not store:
        raise HTTPException(status_code=404, detail="Store not found")

    if store.busy_mode:
        logger.info("Order rejected, store %s is in busy mode", store.id)
        return JSONResponse(
            status_code=503,
            content={
                "detail": store.busy_message or DEFAULT_BUSY_MESSAGE,
                "busy": True,
                "estimated_wait_minutes": store.estimated_wait_minutes,
            },
        )

    items = [item.model_dump() for item in payload.items]
    subtotal = sum(item["unit_price"] * item["quantity"] for item in items)
    shipping = 0
    if payload.order_type == "delivery":
        shipping = calculate_shipping(subtotal, payload.shipping_zone, store.shipping_settings)

    order = create_order(
        db,
        store.id,
        items,
        customer_id=payload.customer_id,
        order_type=payload.order_type,
        shipping_amount=shipping,
        shipping_address=payload.shipping_address,
        notes=payload.notes,
    )

    dispatch_notification(db, store.id, "new_order", {
        "order_id": order.id,
        "order_number": order.order_number,
        "total_amount": order.total_amount,
        "payment_method": order.payment_method,
    })

    return OrderCreatedResponse(
        order_id=order.id,
        order_number=order.order_number,
        order_type=order.order_type,
        subtotal=order.subtotal,
        shipping_amount=order.shipping_amount,
        total_amount=order.total_amount,
        status=order.status,
        payment_status=order.payment_status,
        created_at=order.created_at,
    )


@orders_router.get("", response_model=OrderListResponse)
def list_orders(
    status: Optional[str] = None,
    page: Pagination = Depends(pagination_params),
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> OrderListResponse:
    query = (
        db.query(Order)
        .options(selectinload(Order.items))
        .filter(Order.store_id == store.id)
    )
    status = valid_choice(status, ORDER_TRANSITIONS)
    if status:
        query = query.filter(Order.status == status)

    rows, total = paginate(query.order_by(Order.created_at.desc()), page)
    return OrderListResponse(data=[OrderOut.model_validate(o) for o in rows], total=total)


@orders_router.patch("/status", response_model=OrderOut)
@limiter.limit(get_rate_limit_update)
def update_order_status(
    request: Request,
    payload: OrderStatusUpdate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> OrderOut:
    order = db.query(Order).filter(Order.id == payload.order_id, Order.store_id == store.id).first()
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")

    error = validate_transition(ORDER_TRANSITIONS, order.status, payload.status)
    if error:
        raise HTTPException(status_code=400, detail=error)

    previous = order.status
    order.status = payload.status
    if payload.tracking_number is not None:
        order.tracking_number = payload.tracking_number
    db.commit()
    db.refresh(order)
    logger.info("Order %s: %s -> %s", order.order_number, previous, order.status)

    dispatch_notification(db, store.id, "order_status", {
        "order_id": order.id,
        "order_number": order.order_number,
        "previous_status": previous,
        "new_status": order.status,
    })
    return OrderOut.model_validate(order)
