"""
Construction project and permit schemas.

Permits always hang off a project owned by the same store. New permits
start as `applied`; the owner later marks them approved, rejected or
expired.
"""

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


PermitStatus = Literal["applied", "approved", "expired", "rejected"]
PermitType = Literal["building", "electrical", "plumbing", "demolition", "environmental", "other"]
ProjectStatus = Literal["planning", "in_progress", "on_hold", "completed", "cancelled"]


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    status: ProjectStatus = "planning"


class ProjectOut(BaseModel):
    id: str
    name: str
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProjectListResponse(BaseModel):
    data: List[ProjectOut]
    total: int


class PermitCreate(BaseModel):
    project_id: str = Field(..., min_length=1)
    permit_type: PermitType = "building"
    permit_number: Optional[str] = Field(None, max_length=200)
    issued_date: Optional[date] = None
    expiry_date: Optional[date] = None
    cost: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=5000)


class PermitUpdate(BaseModel):
    permit_type: Optional[PermitType] = None
    permit_number: Optional[str] = Field(None, max_length=200)
    status: Optional[PermitStatus] = None
    issued_date: Optional[date] = None
    expiry_date: Optional[date] = None
    cost: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=5000)


class PermitOut(BaseModel):
    id: str
    project_id: str
    permit_type: str
    permit_number: Optional[str] = None
    status: str
    issued_date: Optional[date] = None
    expiry_date: Optional[date] = None
    cost: Optional[float] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PermitListResponse(BaseModel):
    data: List[PermitOut]
    total: int
