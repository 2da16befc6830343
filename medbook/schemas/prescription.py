"""Request and response schemas for prescriptions."""
from datetime import date, datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .common import ORMModel

class MedicationCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, coerce_numbers_to_str=True)

    name: str = Field(..., min_length=1, max_length=200)
    dosage: str = Field(..., min_length=1, max_length=100)
    frequency: str = Field(..., min_length=1, max_length=100)
    duration: str = Field(..., min_length=1, max_length=100)
    instructions: Optional[str] = Field(None, max_length=1000)

class PrescriptionCreate(BaseModel):
    # Entries are checked individually so every bad medication can be reported
    medications: Optional[List[Any]] = None
    diagnosis: Optional[str] = Field(None, max_length=2000)
    tests: Optional[List[str]] = None
    notes: Optional[str] = Field(None, max_length=4000)
    follow_up_date: Optional[date] = None

class MedicationResponse(ORMModel):
    name: str
    dosage: str
    frequency: str
    duration: str
    instructions: Optional[str] = None

class PrescriptionResponse(ORMModel):
    id: int
    appointment_id: int
    doctor_id: int
    patient_id: int
    diagnosis: Optional[str] = None
    medications: List[MedicationResponse] = []
    tests: Optional[List[str]] = None
    notes: Optional[str] = None
    follow_up_date: Optional[date] = None
    issued_at: datetime

# Populated references, narrowest first
class DoctorSummary(ORMModel):
    id: int
    name: str
    specialization: str

class DoctorCredentials(DoctorSummary):
    license_number: Optional[str] = None

class PatientSummary(ORMModel):
    id: int
    name: str

class PatientDetails(PatientSummary):
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None

class AppointmentSummary(ORMModel):
    id: int
    appointment_date: datetime

class AppointmentDetails(AppointmentSummary):
    reason: Optional[str] = None

class PatientPrescription(PrescriptionResponse):
    doctor: Optional[DoctorSummary] = None
    appointment: Optional[AppointmentSummary] = None

class DoctorPrescription(PrescriptionResponse):
    patient: Optional[PatientSummary] = None
    appointment: Optional[AppointmentSummary] = None

class PrescriptionDetail(PrescriptionResponse):
    doctor: Optional[DoctorCredentials] = None
    patient: Optional[PatientDetails] = None
    appointment: Optional[AppointmentDetails] = None

