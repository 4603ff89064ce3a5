"""Patient record schemas for medical stores."""

from datetime import date, datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


Gender = Literal["male", "female", "other"]
BloodType = Literal["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-"]


class PatientCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    customer_id: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    blood_type: Optional[BloodType] = None
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[EmailStr] = None
    emergency_contact: Optional[Dict[str, Any]] = None
    allergies: Optional[List[str]] = None
    insurance_info: Optional[Dict[str, Any]] = None


class PatientUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    customer_id: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    blood_type: Optional[BloodType] = None
    phone: Optional[str] = Field(None, max_length=30)
    email: Optional[EmailStr] = None
    emergency_contact: Optional[Dict[str, Any]] = None
    allergies: Optional[List[str]] = None
    insurance_info: Optional[Dict[str, Any]] = None


class PatientOut(BaseModel):
    id: str
    customer_id: Optional[str] = None
    first_name: str
    last_name: str
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    blood_type: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    emergency_contact: Optional[Dict[str, Any]] = None
    allergies: Optional[List[str]] = None
    insurance_info: Optional[Dict[str, Any]] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class PatientListResponse(BaseModel):
    data: List[PatientOut]
    total: int
