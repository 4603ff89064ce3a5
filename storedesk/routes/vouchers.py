"""
Voucher and Compensation Policy Routes for StoreDesk
====================================================

Endpoints:
----------
- GET /vouchers: List vouchers (filter: status)
- PATCH /vouchers/{id}: Approve, reject or redeem a voucher
- GET /compensation-policies: List policies
- POST /compensation-policies: Create a policy

Voucher Lifecycle:
------------------
    pending_approval -> approved | rejected
    approved -> redeemed

Approving a pending voucher also posts the compensation message into the
customer's conversation, the same message an auto-approved voucher gets.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..auth import get_current_store
from ..chat.escalation import compensation_label, compensation_message
from ..config import get_rate_limit_update, get_rate_limit_write
from ..db import get_db
from ..models import CompensationPolicy, Message, Store, Voucher
from ..rate_limit import limiter
from ..schemas.vouchers import (
    CompensationPolicyCreate,
    CompensationPolicyListResponse,
    CompensationPolicyOut,
    VoucherListResponse,
    VoucherOut,
    VoucherUpdate,
)
from ..services.helpers import Pagination, paginate, pagination_params, utcnow, valid_choice
from ..services.status_machine import VOUCHER_TRANSITIONS, validate_transition

logger = logging.getLogger(__name__)

vouchers_router = APIRouter(prefix="/vouchers", tags=["Vouchers"])
compensation_policies_router = APIRouter(prefix="/compensation-policies", tags=["Vouchers"])


@vouchers_router.get("", response_model=VoucherListResponse)
def list_vouchers(
    status: Optional[str] = None,
    page: Pagination = Depends(pagination_params),
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> VoucherListResponse:
    query = db.query(Voucher).filter(Voucher.store_id == store.id)
    status = valid_choice(status, VOUCHER_TRANSITIONS)
    if status:
        query = query.filter(Voucher.status == status)

    rows, total = paginate(query.order_by(Voucher.created_at.desc()), page)
    return VoucherListResponse(data=[VoucherOut.model_validate(v) for v in rows], total=total)


@vouchers_router.patch("/{voucher_id}", response_model=VoucherOut)
@limiter.limit(get_rate_limit_update)
def update_voucher(
    request: Request,
    voucher_id: str,
    payload: VoucherUpdate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> VoucherOut:
    voucher = db.query(Voucher).filter(Voucher.id == voucher_id, Voucher.store_id == store.id).first()
    if not voucher:
        raise HTTPException(status_code=404, detail="Voucher not found")
    if voucher.status == payload.status:
        return VoucherOut.model_validate(voucher)

    error = validate_transition(VOUCHER_TRANSITIONS, voucher.status, payload.status)
    if error:
        raise HTTPException(status_code=400, detail=error)

    now = utcnow()
    previous = voucher.status
    voucher.status = payload.status
    if payload.status == "approved":
        voucher.approved_at = now
        if voucher.conversation_id:
            label = compensation_label(voucher.compensation_type, voucher.compensation_value)
            db.add(Message(
                conversation_id=voucher.conversation_id,
                content=compensation_message(label, voucher.voucher_code),
                is_from_customer=False,
                is_ai_response=False,
                extra_metadata={"type": "compensation", "voucher_code": voucher.voucher_code},
            ))
    elif payload.status == "redeemed":
        voucher.redeemed_at = now

    db.commit()
    db.refresh(voucher)
    logger.info("Voucher %s: %s -> %s", voucher.voucher_code, previous, voucher.status)
    return VoucherOut.model_validate(voucher)


@compensation_policies_router.get("", response_model=CompensationPolicyListResponse)
def list_policies(
    page: Pagination = Depends(pagination_params),
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> CompensationPolicyListResponse:
    query = (
        db.query(CompensationPolicy)
        .filter(CompensationPolicy.store_id == store.id)
        .order_by(CompensationPolicy.created_at.desc())
    )
    rows, total = paginate(query, page)
    return CompensationPolicyListResponse(data=[CompensationPolicyOut.model_validate(p) for p in rows], total=total)


@compensation_policies_router.post("", response_model=CompensationPolicyOut, status_code=201)
@limiter.limit(get_rate_limit_write)
def create_policy(
    request: Request,
    payload: CompensationPolicyCreate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> CompensationPolicyOut:
    policy = CompensationPolicy(store_id=store.id, **payload.model_dump())
    db.add(policy)
    db.commit()
    db.refresh(policy)
    logger.info("Created compensation policy: %s -> %s (id=%s)", policy.complaint_category, policy.compensation_type, policy.id)
    return CompensationPolicyOut.model_validate(policy)
