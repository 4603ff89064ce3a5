"""
Point-of-Sale Schemas for StoreDesk
===================================

A POS session is a cash-register shift opened by a staff member. Every
checkout during the shift creates a completed, paid order linked to the
session and bumps the session totals. Closing the session reconciles the
drawer:

    expected_cash   = opening_cash + cash sales during the session
    cash_difference = closing_cash - expected_cash
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


PosPaymentMethod = Literal["cash", "card", "qpay", "bank"]
PosOrderType = Literal["dine_in", "pickup", "delivery", "catering"]


class PosSessionOpen(BaseModel):
    register_name: Optional[str] = Field(None, max_length=100)
    opening_cash: float = Field(0, ge=0)


class PosSessionClose(BaseModel):
    closing_cash: float = Field(..., ge=0)


class PosSessionOut(BaseModel):
    id: str
    opened_by: str
    register_name: Optional[str] = None
    status: str
    opening_cash: float
    closing_cash: Optional[float] = None
    expected_cash: Optional[float] = None
    cash_difference: Optional[float] = None
    total_sales: float
    total_transactions: int
    opened_at: datetime
    closed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PosSessionListResponse(BaseModel):
    data: List[PosSessionOut]
    total: int


class CheckoutItem(BaseModel):
    product_id: str = Field(..., min_length=1)
    variant_id: Optional[str] = None
    quantity: int = Field(..., ge=1)
    unit_price: float = Field(..., ge=0)


class CheckoutRequest(BaseModel):
    session_id: str = Field(..., min_length=1)
    customer_id: Optional[str] = None
    items: List[CheckoutItem] = Field(..., min_length=1)
    payment_method: PosPaymentMethod
    amount_paid: float = Field(..., ge=0)
    notes: Optional[str] = Field(None, max_length=2000)
    order_type: PosOrderType = "dine_in"


class CheckoutResponse(BaseModel):
    order_id: str
    order_number: str
    total_amount: float
    change_amount: float
