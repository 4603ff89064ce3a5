"""
Laundry order schemas.

The processing stages (processing, washing, drying, ironing, ready) are a
subset of the full laundry status list; GET/POST /processing work only on
orders in those stages.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


LaundryStatus = Literal[
    "received", "processing", "washing", "drying", "ironing", "ready", "delivered", "cancelled",
]
ProcessingStatus = Literal["processing", "washing", "drying", "ironing", "ready"]
ServiceType = Literal["wash_fold", "dry_clean", "press_only", "stain_removal", "alterations"]


class LaundryItemIn(BaseModel):
    item_type: str = Field(..., min_length=1, max_length=100)
    service_type: ServiceType = "wash_fold"
    quantity: int = Field(1, ge=1)
    unit_price: float = Field(..., ge=0)
    notes: Optional[str] = Field(None, max_length=500)


class LaundryOrderCreate(BaseModel):
    customer_id: Optional[str] = None
    order_number: str = Field(..., min_length=1, max_length=50)
    rush_order: bool = False
    pickup_date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=2000)
    items: List[LaundryItemIn] = Field(..., min_length=1)


class LaundryOrderUpdate(BaseModel):
    status: Optional[LaundryStatus] = None
    paid_amount: Optional[float] = Field(None, ge=0)
    pickup_date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=2000)


class ProcessingUpdate(BaseModel):
    order_id: str = Field(..., min_length=1)
    status: ProcessingStatus


class LaundryItemOut(BaseModel):
    id: str
    item_type: str
    service_type: str
    quantity: int
    unit_price: float
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class LaundryOrderOut(BaseModel):
    id: str
    customer_id: Optional[str] = None
    order_number: str
    status: str
    total_items: int
    total_amount: float
    paid_amount: float
    rush_order: bool
    pickup_date: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None
    items: List[LaundryItemOut] = []

    model_config = ConfigDict(from_attributes=True)


class LaundryOrderListResponse(BaseModel):
    data: List[LaundryOrderOut]
    total: int
