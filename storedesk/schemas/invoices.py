"""
Invoice Schemas for StoreDesk
=============================

Pydantic models for invoices, their line items and the payments recorded
against them.

Invoice Lifecycle:
------------------
- **draft**: Created, editable and deletable
- **sent**: Delivered to the party
- **partial**: At least one payment, money still due
- **paid**: Nothing left to pay
- **overdue / cancelled / refunded**: Set manually by the owner

Parties:
--------
An invoice is billed to a customer, supplier, staff member or driver.
party_id is optional so a walk-in customer can be invoiced by name alone
(in notes).

Totals:
-------
Totals are never sent by the client; they are computed server-side by
storedesk.services.billing from the items, the optional invoice-level
tax_rate and the invoice-level discount_amount.

Usage:
------
    invoice = create_invoice(db, store.id, InvoiceCreate(**body))
    detail = InvoiceDetailOut.model_validate(invoice)
"""

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


InvoiceStatus = Literal["draft", "sent", "paid", "partial", "overdue", "cancelled", "refunded"]
PartyType = Literal["customer", "supplier", "staff", "driver"]
SourceType = Literal["order", "appointment", "reservation", "manual", "subscription"]
InvoiceItemType = Literal["product", "service", "fee", "discount", "tax", "custom"]
PaymentMethod = Literal["cash", "bank", "qpay", "card", "online", "credit"]


class InvoiceItemIn(BaseModel):
    """A single invoice line as sent by the client."""
    description: str = Field(..., min_length=1, max_length=500)
    quantity: float = Field(1, ge=0)
    unit_price: float = Field(..., ge=0)
    discount: float = Field(0, ge=0)
    tax_rate: float = Field(0, ge=0, le=100)
    item_type: InvoiceItemType = "custom"
    item_id: Optional[str] = None


class InvoiceCreate(BaseModel):
    party_type: PartyType
    party_id: Optional[str] = None
    source_type: SourceType = "manual"
    source_id: Optional[str] = None
    items: List[InvoiceItemIn] = Field(..., min_length=1)
    due_date: Optional[date] = Field(None, description="YYYY-MM-DD")
    notes: Optional[str] = Field(None, max_length=5000)
    tax_rate: Optional[float] = Field(None, ge=0, le=100, description="Invoice-level tax rate; overrides item taxes")
    discount_amount: Optional[float] = Field(None, ge=0)


class InvoiceUpdate(BaseModel):
    status: Optional[InvoiceStatus] = None
    due_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=5000)
    metadata: Optional[Dict[str, Any]] = None


class PaymentCreate(BaseModel):
    amount: float = Field(..., ge=0.01)
    method: PaymentMethod
    gateway_ref: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = Field(None, max_length=1000)


class InvoiceItemOut(BaseModel):
    id: str
    description: str
    quantity: float
    unit_price: float
    discount: float
    tax_rate: float
    line_total: float
    item_type: str
    item_id: Optional[str] = None
    sort_order: int

    model_config = ConfigDict(from_attributes=True)


class PaymentOut(BaseModel):
    id: str
    invoice_id: Optional[str] = None
    payment_number: str
    amount: float
    method: str
    status: str
    gateway_ref: Optional[str] = None
    notes: Optional[str] = None
    paid_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InvoiceOut(BaseModel):
    id: str
    invoice_number: str
    party_type: str
    party_id: Optional[str] = None
    source_type: str
    source_id: Optional[str] = None
    status: str
    subtotal: float
    tax_amount: float
    discount_amount: float
    total_amount: float
    amount_paid: float
    amount_due: float
    due_date: Optional[date] = None
    notes: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="extra_metadata")
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class InvoiceDetailOut(InvoiceOut):
    """Invoice with its items (in sort_order) and payments."""
    items: List[InvoiceItemOut] = []
    payments: List[PaymentOut] = []


class InvoiceListResponse(BaseModel):
    data: List[InvoiceOut]
    total: int


class PaymentResult(BaseModel):
    """Response of POST /invoices/{id}/payments."""
    payment: PaymentOut
    invoice: InvoiceOut
