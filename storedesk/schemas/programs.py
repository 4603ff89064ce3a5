"""
Education Schemas for StoreDesk
===============================

Programs (courses, workshops, ...), their scheduled class sessions and the
enrollment of students into programs.

Enrollment Rules:
-----------------
- Student and program must both belong to the caller's store
- A student can hold only one active enrollment per program (409)
- A program with max_students set stops accepting enrollments once that
  many active enrollments exist ("Program is full")
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


ProgramType = Literal["course", "workshop", "seminar", "certification", "tutoring"]
SessionStatus = Literal["scheduled", "in_progress", "completed", "cancelled"]
EnrollmentStatus = Literal["active", "completed", "withdrawn", "suspended"]


class ProgramCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    program_type: ProgramType = "course"
    duration_weeks: Optional[int] = Field(None, ge=1)
    price: Optional[float] = Field(None, ge=0)
    max_students: Optional[int] = Field(None, ge=1)
    is_active: bool = True


class ProgramUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=5000)
    program_type: Optional[ProgramType] = None
    duration_weeks: Optional[int] = Field(None, ge=1)
    price: Optional[float] = Field(None, ge=0)
    max_students: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None


class ProgramOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    program_type: str
    duration_weeks: Optional[int] = None
    price: Optional[float] = None
    max_students: Optional[int] = None
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProgramListResponse(BaseModel):
    data: List[ProgramOut]
    total: int


class CourseSessionCreate(BaseModel):
    program_id: str = Field(..., min_length=1)
    title: Optional[str] = Field(None, max_length=200)
    scheduled_at: datetime
    duration_minutes: int = Field(60, ge=1)
    location: Optional[str] = Field(None, max_length=200)
    status: SessionStatus = "scheduled"


class CourseSessionOut(BaseModel):
    id: str
    program_id: str
    title: Optional[str] = None
    scheduled_at: datetime
    duration_minutes: int
    location: Optional[str] = None
    status: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CourseSessionListResponse(BaseModel):
    data: List[CourseSessionOut]
    total: int


class EnrollmentCreate(BaseModel):
    student_id: str = Field(..., min_length=1)
    program_id: str = Field(..., min_length=1)


class EnrollmentOut(BaseModel):
    id: str
    student_id: str
    program_id: str
    status: str
    enrolled_at: datetime

    model_config = ConfigDict(from_attributes=True)


class EnrollmentListResponse(BaseModel):
    data: List[EnrollmentOut]
    total: int
