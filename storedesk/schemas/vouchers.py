"""
Voucher and Compensation Policy Schemas
=======================================

Compensation policies tell the escalation engine what to offer for each
complaint category. When a classified complaint matches an active policy,
a voucher is issued to the customer:

- auto_approve policies create the voucher as "approved" and message the
  customer immediately
- otherwise the voucher waits in "pending_approval" until the owner
  approves or rejects it with PATCH /vouchers/{id}

Compensation Types:
-------------------
- percent_discount: compensation_value is a percentage (capped by
  max_discount_amount when set)
- fixed_discount: compensation_value is an amount in tugrik
- free_shipping / free_item: compensation_value is ignored
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


ComplaintCategory = Literal[
    "food_quality",
    "wrong_item",
    "delivery_delay",
    "service_quality",
    "damaged_item",
    "pricing_error",
    "staff_behavior",
    "other",
]
CompensationType = Literal["percent_discount", "fixed_discount", "free_shipping", "free_item"]
VoucherStatus = Literal["pending_approval", "approved", "rejected", "redeemed", "expired"]


class CompensationPolicyCreate(BaseModel):
    complaint_category: ComplaintCategory
    compensation_type: CompensationType
    compensation_value: float = Field(0, ge=0)
    max_discount_amount: Optional[float] = Field(None, ge=0)
    valid_days: int = Field(30, ge=1, le=365)
    auto_approve: bool = False
    is_active: bool = True


class CompensationPolicyOut(BaseModel):
    id: str
    complaint_category: str
    compensation_type: str
    compensation_value: float
    max_discount_amount: Optional[float] = None
    valid_days: int
    auto_approve: bool
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CompensationPolicyListResponse(BaseModel):
    data: List[CompensationPolicyOut]
    total: int


class VoucherUpdate(BaseModel):
    status: Literal["approved", "rejected", "redeemed"]


class VoucherOut(BaseModel):
    id: str
    customer_id: Optional[str] = None
    policy_id: Optional[str] = None
    conversation_id: Optional[str] = None
    voucher_code: str
    compensation_type: str
    compensation_value: float
    max_discount_amount: Optional[float] = None
    complaint_category: Optional[str] = None
    complaint_summary: Optional[str] = None
    status: str
    valid_until: Optional[datetime] = None
    approved_at: Optional[datetime] = None
    redeemed_at: Optional[datetime] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class VoucherListResponse(BaseModel):
    data: List[VoucherOut]
    total: int
