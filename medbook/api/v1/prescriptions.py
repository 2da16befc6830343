from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.orm import Session
from typing import Optional

from ...core.database import get_db
from ...core.errors import APIError, ServerError
from ...api.deps import (
    CurrentIdentity, get_any_identity, get_doctor_identity,
    get_patient_identity
)
from ...schemas.prescription import PrescriptionCreate, PrescriptionResponse
from ...services.prescription_service import PrescriptionService

router = APIRouter(prefix="/prescriptions", tags=["Prescriptions"])

@router.post("/appointments/{appointment_id}", status_code=status.HTTP_201_CREATED)
async def create_prescription(
    appointment_id: int,
    payload: Optional[PrescriptionCreate] = Body(None),
    identity: CurrentIdentity = Depends(get_doctor_identity),
    db: Session = Depends(get_db)
):
    """Issue a prescription for one of the caller's appointments."""
    try:
        prescription = PrescriptionService(db).create_prescription(
            identity.profile, appointment_id, payload
        )
    except APIError:
        raise
    except Exception as e:
        raise ServerError("Failed to create prescription", e)

    return {
        "message": "Prescription created successfully",
        "prescription": PrescriptionResponse.model_validate(prescription)
    }

@router.get("/patient")
async def get_patient_prescriptions(
    identity: CurrentIdentity = Depends(get_patient_identity),
    db: Session = Depends(get_db)
):
    """Prescriptions issued to the caller, newest first."""
    try:
        prescriptions = PrescriptionService(db).get_patient_prescriptions(identity.profile)
    except APIError:
        raise
    except Exception as e:
        raise ServerError("Failed to fetch prescriptions", e)

    return {
        "count": len(prescriptions),
        "prescriptions": prescriptions
    }

@router.get("/doctor")
async def get_doctor_prescriptions(
    patient_id: Optional[int] = None,
    identity: CurrentIdentity = Depends(get_doctor_identity),
    db: Session = Depends(get_db)
):
    """Prescriptions the caller issued, optionally for one patient."""
    try:
        prescriptions = PrescriptionService(db).get_doctor_prescriptions(
            identity.profile, patient_id
        )
    except APIError:
        raise
    except Exception as e:
        raise ServerError("Failed to fetch prescriptions", e)

    return {
        "count": len(prescriptions),
        "prescriptions": prescriptions
    }

@router.get("/{prescription_id}")
async def get_prescription(
    prescription_id: int,
    identity: CurrentIdentity = Depends(get_any_identity),
    db: Session = Depends(get_db)
):
    try:
        return PrescriptionService(db).get_prescription(
            prescription_id, identity.role, identity.profile_id
        )
    except APIError:
        raise
    except Exception as e:
        raise ServerError("Failed to fetch prescription", e)
