"""
Point-of-Sale Routes for StoreDesk
==================================

Cash-register sessions and in-store checkout.

Endpoints:
----------
- GET /pos/sessions: List register sessions, newest first
- POST /pos/sessions: Open a session for the current user's staff record
- POST /pos/sessions/{id}/close: Close a session and reconcile the cash
- POST /pos/checkout: Ring up a paid order on an open session

Cash Reconciliation:
--------------------
    expected_cash   = opening_cash + sum(cash checkouts)
    cash_difference = closing_cash - expected_cash

A negative difference is a shortfall in the drawer.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth import get_current_store, get_current_user
from ..config import get_rate_limit_write
from ..db import get_db
from ..models import Order, PosSession, Staff, Store, User
from ..rate_limit import limiter
from ..schemas.pos import (
    CheckoutRequest,
    CheckoutResponse,
    PosSessionClose,
    PosSessionListResponse,
    PosSessionOpen,
    PosSessionOut,
)
from ..services.helpers import Pagination, paginate, pagination_params, round2, utcnow
from ..services.orders import create_order

logger = logging.getLogger(__name__)

pos_router = APIRouter(prefix="/pos", tags=["POS"])


def _get_session(db: Session, store: Store, session_id: str) -> PosSession:
    session = db.query(PosSession).filter(PosSession.id == session_id, PosSession.store_id == store.id).first()
    if not session:
        raise HTTPException(status_code=404, detail="Session not found")
    return session


@pos_router.get("/sessions", response_model=PosSessionListResponse)
def list_sessions(
    page: Pagination = Depends(pagination_params),
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> PosSessionListResponse:
    query = db.query(PosSession).filter(PosSession.store_id == store.id).order_by(PosSession.opened_at.desc())
    rows, total = paginate(query, page)
    return PosSessionListResponse(data=[PosSessionOut.model_validate(s) for s in rows], total=total)


@pos_router.post("/sessions", response_model=PosSessionOut, status_code=201)
@limiter.limit(get_rate_limit_write)
def open_session(
    request: Request,
    payload: PosSessionOpen,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    store: Store = Depends(get_current_store),
) -> PosSessionOut:
    staff = db.query(Staff).filter(Staff.store_id == store.id, Staff.user_id == user.id).first()
    if not staff:
        raise HTTPException(status_code=403, detail="Staff record not found")

    session = PosSession(
        store_id=store.id,
        opened_by=staff.id,
        register_name=payload.register_name,
        status="open",
        opening_cash=payload.opening_cash,
        total_sales=0,
        total_transactions=0,
        opened_at=utcnow(),
    )
    db.add(session)
    db.commit()
    db.refresh(session)
    logger.info("Opened POS session %s (register=%s, staff=%s)", session.id, session.register_name, staff.name)
    return PosSessionOut.model_validate(session)


@pos_router.post("/sessions/{session_id}/close", response_model=PosSessionOut)
def close_session(
    session_id: str,
    payload: PosSessionClose,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> PosSessionOut:
    session = _get_session(db, store, session_id)
    if session.status != "open":
        raise HTTPException(status_code=400, detail="Session is not open")

    cash_sales = (
        db.query(func.coalesce(func.sum(Order.total_amount), 0))
        .filter(Order.pos_session_id == session.id, Order.payment_method == "cash")
        .scalar()
    )
    expected = round2((session.opening_cash or 0) + float(cash_sales or 0))

    session.status = "closed"
    session.closed_at = utcnow()
    session.closing_cash = payload.closing_cash
    session.expected_cash = expected
    session.cash_difference = round2(payload.closing_cash - expected)

    db.commit()
    db.refresh(session)
    logger.info(
        "Closed POS session %s: expected=%s closing=%s difference=%s",
        session.id, expected, payload.closing_cash, session.cash_difference,
    )
    return PosSessionOut.model_validate(session)


@pos_router.post("/checkout", response_model=CheckoutResponse, status_code=201)
@limiter.limit(get_rate_limit_write)
def checkout(
    request: Request,
    payload: CheckoutRequest,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> CheckoutResponse:
    session = _get_session(db, store, payload.session_id)
    if session.status != "open":
        raise HTTPException(status_code=400, detail="Session is not open")

    order = create_order(
        db,
        store.id,
        [item.model_dump() for item in payload.items],
        customer_id=payload.customer_id,
        order_type=payload.order_type,
        notes=payload.notes,
        prefix="POS",
        status="completed",
        payment_status="paid",
        payment_method=payload.payment_method,
        pos_session_id=session.id,
        commit=False,
    )
    session.total_sales = round2((session.total_sales or 0) + order.total_amount)
    session.total_transactions = (session.total_transactions or 0) + 1
    db.commit()
    db.refresh(order)

    change = max(0, round2(payload.amount_paid - order.total_amount))
    logger.info("POS checkout %s on session %s: total=%s change=%s", order.order_number, session.id, order.total_amount, change)
    return CheckoutResponse(
        order_id=order.id,
        order_number=order.order_number,
        total_amount=order.total_amount,
        change_amount=change,
    )
