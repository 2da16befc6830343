"""Request and response schemas for doctor profiles."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.appointment import AppointmentStatus
from .common import ORMModel

# Submitted fields that may repeat in a multipart form
LIST_FIELDS = ("qualifications", "languages")

class DoctorProfileBase(BaseModel):
    # Unknown fields are dropped, never stored
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    specialization: Optional[str] = Field(None, min_length=1, max_length=100)
    qualifications: Optional[List[str]] = None
    license_number: Optional[str] = Field(None, max_length=50)
    years_of_experience: Optional[int] = Field(None, ge=0, le=80)
    bio: Optional[str] = Field(None, max_length=2000)
    languages: Optional[List[str]] = None
    consultation_fee: Optional[float] = Field(None, ge=0)
    phone_number: Optional[str] = Field(None, max_length=20)
    clinic_id: Optional[int] = None
    is_available: Optional[bool] = None
    profile_picture: Optional[str] = Field(None, max_length=500)

class DoctorProfileCreate(DoctorProfileBase):
    specialization: str = Field(..., min_length=1, max_length=100)
    qualifications: List[str] = Field(..., min_length=1)

class DoctorProfileUpdate(DoctorProfileBase):
    pass

class ClinicSummary(ORMModel):
    id: int
    name: str
    address: Optional[str] = None
    location: Optional[str] = None
    contact_info: Optional[Dict[str, Any]] = None

class ClinicLocation(ORMModel):
    id: int
    name: str
    location: Optional[str] = None

class AppointmentPatient(ORMModel):
    id: int
    name: str
    profile_picture: Optional[str] = None

class DoctorAppointment(ORMModel):
    id: int
    appointment_date: datetime
    end_time: Optional[datetime] = None
    status: Optional[AppointmentStatus] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    prescription_id: Optional[int] = None
    patient: Optional[AppointmentPatient] = None

class DoctorResponse(ORMModel):
    id: int
    user_id: int
    name: str
    clinic_id: Optional[int] = None
    specialization: str
    qualifications: List[str] = []
    license_number: Optional[str] = None
    years_of_experience: Optional[int] = None
    bio: Optional[str] = None
    languages: Optional[List[str]] = None
    consultation_fee: Optional[float] = None
    phone_number: Optional[str] = None
    profile_picture: Optional[str] = None
    is_available: Optional[bool] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class DoctorDetailResponse(DoctorResponse):
    """Own profile, with clinic and appointments resolved when present."""
    ratings: List[Dict[str, Any]] = []
    clinic: Optional[ClinicSummary] = None
    appointments: List[DoctorAppointment] = []

class ClinicDoctor(DoctorResponse):
    clinic: Optional[ClinicLocation] = None
