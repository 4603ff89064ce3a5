"""
Invoice Routes for StoreDesk
============================

Billing endpoints. Totals and numbering live in services.billing; these
handlers scope everything to the owner's store.

Endpoints:
----------
- GET /invoices: List invoices (filters: status, party_type, party_id)
- POST /invoices: Create a draft invoice with its items
- GET /invoices/{id}: Invoice with items (sort order) and payments
- PATCH /invoices/{id}: Update status, due date, notes or metadata
- DELETE /invoices/{id}: Delete a draft invoice
- POST /invoices/{id}/payments: Record a payment against the invoice
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..auth import get_current_store
from ..config import get_rate_limit_update, get_rate_limit_write
from ..db import get_db
from ..models import Invoice, Store
from ..rate_limit import limiter
from ..schemas.common import SuccessResponse
from ..schemas.invoices import (
    InvoiceCreate,
    InvoiceDetailOut,
    InvoiceListResponse,
    InvoiceOut,
    InvoiceUpdate,
    PaymentCreate,
    PaymentOut,
    PaymentResult,
)
from ..services.billing import create_invoice, record_payment
from ..services.helpers import Pagination, paginate, pagination_params, valid_choice

logger = logging.getLogger(__name__)

invoices_router = APIRouter(prefix="/invoices", tags=["Invoices"])

INVOICE_STATUSES = ("draft", "sent", "paid", "partial", "overdue", "cancelled", "refunded")
PARTY_TYPES = ("customer", "supplier", "staff", "driver")


def _get_invoice(db: Session, store: Store, invoice_id: str) -> Invoice:
    invoice = db.query(Invoice).filter(Invoice.id == invoice_id, Invoice.store_id == store.id).first()
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return invoice


@invoices_router.get("", response_model=InvoiceListResponse)
def list_invoices(
    status: Optional[str] = None,
    party_type: Optional[str] = None,
    party_id: Optional[str] = None,
    page: Pagination = Depends(pagination_params),
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> InvoiceListResponse:
    query = db.query(Invoice).filter(Invoice.store_id == store.id)
    status = valid_choice(status, INVOICE_STATUSES)
    if status:
        query = query.filter(Invoice.status == status)
    party_type = valid_choice(party_type, PARTY_TYPES)
    if party_type:
        query = query.filter(Invoice.party_type == party_type)
    if party_id:
        query = query.filter(Invoice.party_id == party_id)

    rows, total = paginate(query.order_by(Invoice.created_at.desc()), page)
    return InvoiceListResponse(data=[InvoiceOut.model_validate(i) for i in rows], total=total)


@invoices_router.post("", response_model=InvoiceDetailOut, status_code=201)
@limiter.limit(get_rate_limit_write)
def post_invoice(
    request: Request,
    payload: InvoiceCreate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> InvoiceDetailOut:
    invoice = create_invoice(db, store.id, payload)
    return InvoiceDetailOut.model_validate(invoice)


@invoices_router.get("/{invoice_id}", response_model=InvoiceDetailOut)
def get_invoice(
    invoice_id: str,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> InvoiceDetailOut:
    return InvoiceDetailOut.model_validate(_get_invoice(db, store, invoice_id))


@invoices_router.patch("/{invoice_id}", response_model=InvoiceOut)
@limiter.limit(get_rate_limit_update)
def update_invoice(
    request: Request,
    invoice_id: str,
    payload: InvoiceUpdate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> InvoiceOut:
    invoice = _get_invoice(db, store, invoice_id)
    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No valid fields to update")

    if "metadata" in updates:
        invoice.extra_metadata = {**(invoice.extra_metadata or {}), **(updates.pop("metadata") or {})}
    for field, value in updates.items():
        setattr(invoice, field, value)

    db.commit()
    db.refresh(invoice)
    logger.info("Updated invoice: %s (id=%s, status=%s)", invoice.invoice_number, invoice.id, invoice.status)
    return InvoiceOut.model_validate(invoice)


@invoices_router.delete("/{invoice_id}", response_model=SuccessResponse)
def delete_invoice(
    invoice_id: str,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> SuccessResponse:
    invoice = _get_invoice(db, store, invoice_id)
    if invoice.status != "draft":
        raise HTTPException(status_code=400, detail="Only draft invoices can be deleted")
    logger.info("Deleting invoice: %s (id=%s)", invoice.invoice_number, invoice.id)
    db.delete(invoice)
    db.commit()
    return SuccessResponse()


@invoices_router.post("/{invoice_id}/payments", response_model=PaymentResult, status_code=201)
@limiter.limit(get_rate_limit_write)
def create_payment(
    request: Request,
    invoice_id: str,
    payload: PaymentCreate,
    db: Session = Depends(get_db),
    store: Store = Depends(get_current_store),
) -> PaymentResult:
    invoice = _get_invoice(db, store, invoice_id)
    payment = record_payment(db, store.id, invoice, payload)
    return PaymentResult(
        payment=PaymentOut.model_validate(payment),
        invoice=InvoiceOut.model_validate(invoice),
    )
