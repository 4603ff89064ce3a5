"""
Housekeeping Schemas for StoreDesk
==================================

Cleaning and inspection tasks attached to a hospitality unit. A task is
created as `pending`, may be assigned to a staff member, and moves through
in_progress to completed (or is skipped).

Endpoint Coverage:
------------------
- GET /housekeeping: List tasks (filters: status, unit_id, assigned_to)
- POST /housekeeping: Create a task for a unit
- PATCH /housekeeping/{id}: Reassign, reprioritise or complete a task
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


HousekeepingStatus = Literal["pending", "in_progress", "completed", "skipped"]
HousekeepingTaskType = Literal["cleaning", "deep_cleaning", "turnover", "inspection", "restocking"]
HousekeepingPriority = Literal["low", "normal", "high", "urgent"]


class HousekeepingCreate(BaseModel):
    unit_id: str = Field(..., min_length=1, description="Unit the task belongs to")
    assigned_to: Optional[str] = Field(None, description="Staff ID")
    task_type: HousekeepingTaskType = "cleaning"
    priority: HousekeepingPriority = "normal"
    scheduled_at: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=2000)


class HousekeepingUpdate(BaseModel):
    assigned_to: Optional[str] = None
    status: Optional[HousekeepingStatus] = None
    priority: Optional[HousekeepingPriority] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=2000)


class HousekeepingOut(BaseModel):
    id: str
    unit_id: str
    assigned_to: Optional[str] = None
    task_type: str
    priority: str
    status: str
    scheduled_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class HousekeepingListResponse(BaseModel):
    data: List[HousekeepingOut]
    total: int
