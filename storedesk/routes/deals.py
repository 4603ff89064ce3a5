"""
Deal Routes for StoreDesk
=========================

Real-estate deal pipeline for the store owner's dashboard.

Endpoints:
----------
- GET /deals: List deals (filters: status, agent_id)
- POST /deals: Open a deal as a lead
- GET /deals/{id}: Get a deal
- PATCH /deals/{id}: Update a deal, moving it along the pipeline
- DELETE /deals/{id}: Delete a lead or lost deal

Status Pipeline:
----------------
    lead -> viewing | lost
    viewing -> offer | lost
    offer -> contract | lost
    contract -> closed | withdrawn

closed, withdrawn and lost are terminal. Entering viewing, offer or
contract stamps the matching date the first time; closed and withdrawn
stamp theirs on entry.

Commission:
-----------
Closing a deal fixes the final price (body, stored final, offer, asking,
in that order) and splits the commission between agent and company.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..auth import get_current_store
from ..config import get_rate_limit_update, get_rate_limit_write
from ..db import get_db
from ..models import Deal, Product, Staff, Store
from ..rate_limit import limiter
from ..schemas.common import SuccessResponse
from ..schemas.deals import DealCreate, DealListResponse, DealOut, DealUpdate
from ..services.helpers import Pagination, generate_number, paginate, pagination_params, utcnow, valid_choice
from ..services.status_machine import DEAL_TRANSITIONS, validate_transition

logger = logging.getLogger(__name__)

deals_router = APIRouter(prefix="/deals", tags=["Deals"])

DATE_STAMPS = {
    "viewing": "viewing_date",
    "offer": "offer_date",
    "contract": "contract_date",
}
DELETABLE_STATUSES = ("lead", "lost")


def _get_deal(db: Session, store: Store, deal_id: str) -> Deal:
    deal = db.query(Deal).filter(Deal.id == deal_id, Deal.store_id == store.id).first()
    if not deal:
        raise HTTPException(status_code=404, detail="Deal not found")
    return deal


def _check_references(db: Session, store: Store, property_id: Optional[str], agent_id: Optional[str]) -> None:
    if property_id:
        found = db.query(Product.id).filter(Product.id == property_id, Product.store_id == store.id).first()
        if not found:
            raise HTTPException(status_code=404, detail="Property not found")
    if agent_id:
        found = db.query(Staff.id).filter(Staff.id == agent_id, Staff.store_id == store.id).first()
        if not found:
            raise HTTPException(status_code=404, detail="Agent not found")


def apply_commission(deal: Deal, final_price: Optional[float] = None,
                     commission_rate: Optional[float] = None,
                     agent_share_rate: Optional[float] = None) -> None:
    """Fix the final price and commission split of a closing deal."""
    price = final_price
    for candidate in (deal.final_price, deal.offer_price, deal.asking_price):
        if price is None:
            price = candidate
    rate = commission_rate if commission_rate is not None else deal.commission_rate
    share = agent_share_rate if agent_share_rate is not None else deal.agent_share_rate
    rate = 5 if rate is None else rate
    share = 50 if share is None else share

    deal.final_price = price
    deal.commission_rate = rate
    deal.agent_share_rate = share
    if price and price > 0:
        commission = price * rate / 100
        agent_share = commission * share / 100
        deal.commission_amount = commission
        deal.agent_share_amount = agent_share
        deal.company_share_amount = commission - agent_share


@deals_router.get("", response_model=DealListResponse)
def list_deals(
    status: Optional[str] = None,
    agent_id: Optional[str] = None,
    page: Pagination = Depends(pagination_params),
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> DealListResponse:
    """Return the store's deals, newest first."""
    query = db.query(Deal).filter(Deal.store_id == store.id)
    status = valid_choice(status, DEAL_TRANSITIONS)
    if status:
        query = query.filter(Deal.status == status)
    if agent_id:
        query = query.filter(Deal.agent_id == agent_id)

    rows, total = paginate(query.order_by(Deal.created_at.desc()), page)
    return DealListResponse(data=[DealOut.model_validate(d) for d in rows], total=total)


@deals_router.post("", response_model=DealOut, status_code=201)
@limiter.limit(get_rate_limit_write)
def create_deal(
    request: Request,
    payload: DealCreate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> DealOut:
    _check_references(db, store, payload.property_id, payload.agent_id)

    deal = Deal(
        store_id=store.id,
        deal_number=generate_number("DEAL"),
        property_id=payload.property_id,
        customer_id=payload.customer_id,
        agent_id=payload.agent_id,
        status="lead",
        deal_type=payload.deal_type,
        asking_price=payload.asking_price,
        commission_rate=payload.commission_rate,
        agent_share_rate=payload.agent_share_rate,
        notes=payload.notes,
        extra_metadata={},
    )
    db.add(deal)
    db.commit()
    db.refresh(deal)
    logger.info("Created deal: %s (id=%s)", deal.deal_number, deal.id)
    return DealOut.model_validate(deal)


@deals_router.get("/{deal_id}", response_model=DealOut)
def get_deal(
    deal_id: str,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> DealOut:
    return DealOut.model_validate(_get_deal(db, store, deal_id))


@deals_router.patch("/{deal_id}", response_model=DealOut)
@limiter.limit(get_rate_limit_update)
def update_deal(
    request: Request,
    deal_id: str,
    payload: DealUpdate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> DealOut:
    """
    Update a deal.

    A status change must follow the pipeline (400 otherwise). Closing the
    deal computes the commission split.
    """
    deal = _get_deal(db, store, deal_id)
    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No valid fields to update")

    _check_references(db, store, updates.get("property_id"), updates.get("agent_id"))

    new_status = updates.pop("status", None)
    metadata = updates.pop("metadata", None)
    for field, value in updates.items():
        setattr(deal, field, value)
    if metadata is not None:
        deal.extra_metadata = {**(deal.extra_metadata or {}), **metadata}

    if new_status and new_status != deal.status:
        error = validate_transition(DEAL_TRANSITIONS, deal.status, new_status)
        if error:
            raise HTTPException(status_code=400, detail=error)

        now = utcnow()
        stamp = DATE_STAMPS.get(new_status)
        if stamp and getattr(deal, stamp) is None:
            setattr(deal, stamp, now)
        if new_status == "closed":
            deal.closed_date = now
            apply_commission(deal, payload.final_price, payload.commission_rate, payload.agent_share_rate)
        elif new_status == "withdrawn":
            deal.withdrawn_date = now
        logger.info("Deal %s: %s -> %s", deal.deal_number, deal.status, new_status)
        deal.status = new_status

    db.commit()
    db.refresh(deal)
    logger.info("Updated deal: %s (id=%s)", deal.deal_number, deal.id)
    return DealOut.model_validate(deal)


@deals_router.delete("/{deal_id}", response_model=SuccessResponse)
def delete_deal(
    deal_id: str,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> SuccessResponse:
    deal = _get_deal(db, store, deal_id)
    if deal.status not in DELETABLE_STATUSES:
        raise HTTPException(status_code=400, detail="Only lead or lost deals can be deleted")
    logger.info("Deleting deal: %s (id=%s)", deal.deal_number, deal.id)
    db.delete(deal)
    db.commit()
    return SuccessResponse()
