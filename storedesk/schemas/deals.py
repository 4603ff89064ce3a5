"""
Deal Schemas for StoreDesk
==========================

Pydantic models for the real-estate deal pipeline. A deal links a property
(a product row), an optional customer and an optional agent (a staff row)
and moves through a fixed status pipeline:

    lead -> viewing -> offer -> contract -> closed
      \\________\\________\\-> lost     contract -> withdrawn

Commission:
-----------
When a deal closes, the commission is computed from the final price:

    commission   = final_price * commission_rate / 100
    agent_share  = commission * agent_share_rate / 100
    company_share = commission - agent_share

Rates are percentages in [0, 100]; defaults are 5% commission and a 50%
agent share.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


DealStatus = Literal["lead", "viewing", "offer", "contract", "closed", "withdrawn", "lost"]
DealType = Literal["sale", "rent", "lease"]


class DealCreate(BaseModel):
    """Request model for opening a new deal (always starts as a lead)."""
    property_id: Optional[str] = None
    customer_id: Optional[str] = None
    agent_id: Optional[str] = None
    deal_type: DealType = "sale"
    asking_price: Optional[float] = Field(None, ge=0)
    commission_rate: float = Field(5, ge=0, le=100)
    agent_share_rate: float = Field(50, ge=0, le=100)
    notes: Optional[str] = Field(None, max_length=5000)


class DealUpdate(BaseModel):
    """
    Request model for updating a deal.

    All fields are optional; only provided fields are written. A status
    change is checked against the deal pipeline.
    """
    property_id: Optional[str] = None
    customer_id: Optional[str] = None
    agent_id: Optional[str] = None
    status: Optional[DealStatus] = None
    deal_type: Optional[DealType] = None
    asking_price: Optional[float] = Field(None, ge=0)
    offer_price: Optional[float] = Field(None, ge=0)
    final_price: Optional[float] = Field(None, ge=0)
    commission_rate: Optional[float] = Field(None, ge=0, le=100)
    agent_share_rate: Optional[float] = Field(None, ge=0, le=100)
    viewing_date: Optional[datetime] = None
    offer_date: Optional[datetime] = None
    contract_date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=5000)
    metadata: Optional[Dict[str, Any]] = None


class DealOut(BaseModel):
    """Response model for a deal."""
    id: str
    deal_number: str
    property_id: Optional[str] = None
    customer_id: Optional[str] = None
    agent_id: Optional[str] = None
    status: str
    deal_type: str
    asking_price: Optional[float] = None
    offer_price: Optional[float] = None
    final_price: Optional[float] = None
    commission_rate: Optional[float] = None
    agent_share_rate: Optional[float] = None
    commission_amount: Optional[float] = None
    agent_share_amount: Optional[float] = None
    company_share_amount: Optional[float] = None
    viewing_date: Optional[datetime] = None
    offer_date: Optional[datetime] = None
    contract_date: Optional[datetime] = None
    closed_date: Optional[datetime] = None
    withdrawn_date: Optional[datetime] = None
    notes: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="extra_metadata")
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class DealListResponse(BaseModel):
    data: List[DealOut]
    total: int
