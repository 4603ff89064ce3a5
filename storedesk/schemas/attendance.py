"""Attendance schemas. One record per (course session, student)."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


AttendanceStatus = Literal["present", "absent", "late", "excused"]


class AttendanceCreate(BaseModel):
    session_id: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)
    status: AttendanceStatus = "present"
    notes: Optional[str] = Field(None, max_length=500)


class AttendanceOut(BaseModel):
    id: str
    session_id: str
    student_id: str
    status: str
    notes: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AttendanceListResponse(BaseModel):
    data: List[AttendanceOut]
    total: int
