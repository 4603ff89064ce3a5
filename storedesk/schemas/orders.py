"""
Order Schemas for StoreDesk
===========================

Storefront orders placed from the widget or the public checkout page, plus
the owner-side status update.

Endpoint Coverage:
------------------
- POST /orders: Public checkout (no auth, rate limited)
- GET /orders: Owner list with status filter
- PATCH /orders/status: Owner status change (validated transitions)

Order Lifecycle:
----------------
    pending -> confirmed -> processing -> shipped -> delivered
    (pending, confirmed and processing may also be cancelled;
     processing may skip straight to delivered)

Shipping:
---------
Shipping is only charged for delivery orders. The amount comes from the
named zone in store.shipping_settings["zones"]; free shipping applies when
enabled and the subtotal reaches free_shipping_minimum.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


OrderStatus = Literal["pending", "confirmed", "processing", "shipped", "delivered", "cancelled"]
OrderType = Literal["delivery", "pickup", "dine_in", "catering"]


class OrderItemIn(BaseModel):
    product_id: Optional[str] = None
    variant_id: Optional[str] = None
    quantity: int = Field(1, ge=1)
    unit_price: float = Field(..., ge=0)
    variant_label: Optional[str] = Field(None, max_length=200)


class OrderCreate(BaseModel):
    store_id: str = Field(..., min_length=1)
    customer_id: Optional[str] = None
    items: List[OrderItemIn] = Field(..., min_length=1)
    shipping_zone: Optional[str] = None
    shipping_address: Optional[str] = Field(None, max_length=1000)
    notes: Optional[str] = Field(None, max_length=2000)
    order_type: OrderType = "delivery"


class OrderCreatedResponse(BaseModel):
    order_id: str
    order_number: str
    order_type: str
    subtotal: float
    shipping_amount: float
    total_amount: float
    status: str
    payment_status: str
    created_at: datetime


class OrderStatusUpdate(BaseModel):
    order_id: str = Field(..., min_length=1)
    status: OrderStatus
    tracking_number: Optional[str] = Field(None, max_length=200)


class OrderItemOut(BaseModel):
    id: str
    product_id: Optional[str] = None
    variant_id: Optional[str] = None
    quantity: int
    unit_price: float
    variant_label: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    id: str
    order_number: str
    customer_id: Optional[str] = None
    status: str
    payment_status: str
    payment_method: Optional[str] = None
    order_type: str
    subtotal: float
    shipping_amount: float
    total_amount: float
    shipping_address: Optional[str] = None
    tracking_number: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    items: List[OrderItemOut] = []

    model_config = ConfigDict(from_attributes=True)


class OrderListResponse(BaseModel):
    data: List[OrderOut]
    total: int
