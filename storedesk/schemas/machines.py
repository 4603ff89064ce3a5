"""Laundry machine schemas."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


MachineType = Literal["washer", "dryer", "iron_press", "steam"]
MachineStatus = Literal["available", "in_use", "maintenance", "out_of_order"]


class MachineCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    machine_type: MachineType = "washer"
    capacity_kg: Optional[float] = Field(None, gt=0)


class MachineUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    machine_type: Optional[MachineType] = None
    status: Optional[MachineStatus] = None
    capacity_kg: Optional[float] = Field(None, gt=0)


class MachineOut(BaseModel):
    id: str
    name: str
    machine_type: str
    status: str
    capacity_kg: Optional[float] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MachineListResponse(BaseModel):
    data: List[MachineOut]
    total: int
