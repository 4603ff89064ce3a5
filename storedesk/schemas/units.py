"""
Hospitality unit schemas (rooms, suites, cabins, ...).

base_rate is the nightly rate in tugrik and must be positive.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


UnitStatus = Literal["available", "occupied", "maintenance", "blocked"]
UnitType = Literal["standard", "deluxe", "suite", "penthouse", "dormitory", "cabin", "apartment"]


class UnitCreate(BaseModel):
    unit_number: str = Field(..., min_length=1, max_length=50)
    unit_type: UnitType = "standard"
    floor: Optional[str] = Field(None, max_length=20)
    max_occupancy: Optional[int] = Field(None, ge=1, le=100)
    base_rate: float = Field(..., gt=0)
    amenities: Optional[List[str]] = None
    images: Optional[List[str]] = None
    status: UnitStatus = "available"


class UnitUpdate(BaseModel):
    unit_number: Optional[str] = Field(None, min_length=1, max_length=50)
    unit_type: Optional[UnitType] = None
    floor: Optional[str] = Field(None, max_length=20)
    max_occupancy: Optional[int] = Field(None, ge=1, le=100)
    base_rate: Optional[float] = Field(None, gt=0)
    amenities: Optional[List[str]] = None
    images: Optional[List[str]] = None
    status: Optional[UnitStatus] = None


class UnitOut(BaseModel):
    id: str
    unit_number: str
    unit_type: str
    floor: Optional[str] = None
    max_occupancy: Optional[int] = None
    base_rate: float
    amenities: Optional[List[str]] = None
    images: Optional[List[str]] = None
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class UnitListResponse(BaseModel):
    data: List[UnitOut]
    total: int
