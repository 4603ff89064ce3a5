"""
Billing Service for StoreDesk
=============================

Invoice creation and payment recording. Route handlers validate the body
with the schemas in storedesk.schemas.invoices and delegate here.

Key Functions:
--------------
- generate_invoice_number: INV-{YYYYMMDD}-{5 random A-Z0-9}
- calculate_line_total: Discounted, taxed total for one line
- create_invoice: Insert an invoice with its items and computed totals
- record_payment: Insert a payment and roll it into the invoice balance

Totals:
-------
    line_total = round2((qty * unit_price - discount) * (1 + tax_rate / 100))
    subtotal   = sum(qty * unit_price)
    tax        = round2((subtotal - discount_amount) * tax_rate / 100)   # invoice-level rate
               | sum((qty * unit_price - discount) * item.tax_rate / 100)  # otherwise
    total      = round2(subtotal - discount_amount + tax)

Payment Status:
---------------
After each payment amount_due is clamped at 0. The invoice becomes "paid"
when nothing is due and "partial" otherwise.
"""

import logging
import random
import string

from sqlalchemy.orm import Session

from ..models import BillingPayment, Invoice, InvoiceItem
from ..schemas.invoices import InvoiceCreate, InvoiceItemIn, PaymentCreate
from .helpers import generate_number, round2, utcnow

logger = logging.getLogger(__name__)

_INVOICE_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits


def generate_invoice_number() -> str:
    suffix = "".join(random.choices(_INVOICE_SUFFIX_ALPHABET, k=5))
    return f"INV-{utcnow():%Y%m%d}-{suffix}"


def calculate_line_total(item: InvoiceItemIn) -> float:
    after_discount = item.quantity * item.unit_price - (item.discount or 0)
    tax = after_discount * ((item.tax_rate or 0) / 100)
    return round2(after_discount + tax)


def create_invoice(db: Session, store_id: str, payload: InvoiceCreate) -> Invoice:
    """
    Create a draft invoice with its line items.

    Items keep the order they were sent in (sort_order = index).
    """
    subtotal = 0.0
    items = []
    for index, line in enumerate(payload.items):
        subtotal += line.quantity * line.unit_price
        items.append(InvoiceItem(
            description=line.description,
            quantity=line.quantity,
            unit_price=line.unit_price,
            discount=line.discount or 0,
            tax_rate=line.tax_rate or 0,
            line_total=calculate_line_total(line),
            item_type=line.item_type,
            item_id=line.item_id,
            sort_order=index,
        ))

    discount_amount = payload.discount_amount or 0
    if payload.tax_rate:
        tax_amount = round2((subtotal - discount_amount) * (payload.tax_rate / 100))
    else:
        tax_amount = round2(sum(
            (item.quantity * item.unit_price - item.discount) * (item.tax_rate / 100)
            for item in items
        ))
    total_amount = round2(subtotal - discount_amount + tax_amount)

    invoice = Invoice(
        store_id=store_id,
        invoice_number=generate_invoice_number(),
        party_type=payload.party_type,
        party_id=payload.party_id,
        source_type=payload.source_type,
        source_id=payload.source_id,
        status="draft",
        subtotal=subtotal,
        tax_amount=tax_amount,
        discount_amount=discount_amount,
        total_amount=total_amount,
        amount_paid=0,
        amount_due=total_amount,
        due_date=payload.due_date,
        notes=payload.notes,
        extra_metadata={},
        items=items,
    )
    db.add(invoice)
    db.commit()
    db.refresh(invoice)
    logger.info("Created invoice: %s (id=%s, total=%s)", invoice.invoice_number, invoice.id, total_amount)
    return invoice


def record_payment(db: Session, store_id: str, invoice: Invoice, payload: PaymentCreate) -> BillingPayment:
    """Record a completed payment and update the invoice balance and status."""
    payment = BillingPayment(
        store_id=store_id,
        invoice_id=invoice.id,
        payment_number=generate_number("PAY"),
        amount=payload.amount,
        method=payload.method,
        status="completed",
        gateway_ref=payload.gateway_ref,
        notes=payload.notes,
        paid_at=utcnow(),
    )
    db.add(payment)

    invoice.amount_paid = round2((invoice.amount_paid or 0) + payload.amount)
    invoice.amount_due = max(0, round2(invoice.total_amount - invoice.amount_paid))
    invoice.status = "paid" if invoice.amount_due <= 0 else "partial"

    db.commit()
    db.refresh(payment)
    db.refresh(invoice)
    logger.info(
        "Recorded payment %s on invoice %s: %s (%s), due=%s",
        payment.payment_number, invoice.invoice_number, payload.amount, invoice.status, invoice.amount_due,
    )
    return payment
