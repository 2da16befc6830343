from typing import Any, Dict, List, Optional, Sequence
import logging

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..core.errors import (
    BadRequestError, ConflictError, NotFoundError,
    SchemaValidationError, field_messages
)
from ..core.security import UserRole
from ..models.appointment import Appointment
from ..models.doctor import Doctor
from ..models.patient import Patient
from ..models.prescription import Medication, Prescription
from ..schemas.prescription import (
    DoctorPrescription, MedicationCreate, PatientPrescription,
    PrescriptionCreate, PrescriptionDetail
)

logger = logging.getLogger(__name__)

MEDICATION_FIELDS = ("name", "dosage", "frequency", "duration")

def find_medication_errors(medications: Sequence[Any]) -> List[str]:
    """Report every entry missing a required field, not just the first."""
    errors = []
    for index, medication in enumerate(medications, start=1):
        if not isinstance(medication, dict):
            errors.append(f"Medication {index} must be an object")
            continue
        missing = [field for field in MEDICATION_FIELDS if not medication.get(field)]
        if missing:
            errors.append(
                f"Medication {index} is missing required fields: {', '.join(missing)}"
            )
    return errors

class PrescriptionService:
    def __init__(self, db: Session):
        self.db = db

    def create_prescription(
        self, doctor: Doctor, appointment_id: int, payload: Optional[PrescriptionCreate]
    ) -> Prescription:
        """Issue a prescription for one of ``doctor``'s appointments."""
        medications = (payload.medications if payload else None) or []
        if not medications:
            raise BadRequestError(
                "Appointment ID and medications are required",
                errors={"medications": "At least one medication is required"},
            )

        # Another doctor's appointment looks exactly like a missing one
        appointment = self.db.query(Appointment).filter(
            Appointment.id == appointment_id,
            Appointment.doctor_id == doctor.id,
        ).first()
        if not appointment:
            raise NotFoundError("Appointment not found or not authorized")

        medication_errors = find_medication_errors(medications)
        if medication_errors:
            raise BadRequestError("Medication validation failed", errors=medication_errors)

        if appointment.prescription_id is not None:
            raise ConflictError("A prescription already exists for this appointment")

        entries = self._validate_medications(medications)

        prescription = Prescription(
            appointment_id=appointment.id,
            doctor_id=doctor.id,
            patient_id=appointment.patient_id,
            diagnosis=payload.diagnosis,
            tests=payload.tests or [],
            notes=payload.notes,
            follow_up_date=payload.follow_up_date,
            medications=[Medication(**entry.model_dump()) for entry in entries],
        )

        # Prescription row and appointment back-reference commit together
        try:
            self.db.add(prescription)
            self.db.flush()
            appointment.prescription_id = prescription.id
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Prescription conflict for appointment {appointment_id}: {e.orig}")
            raise ConflictError("A prescription already exists for this appointment")
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(prescription)
        logger.info(
            f"Doctor {doctor.id} issued prescription {prescription.id} "
            f"for appointment {appointment.id}"
        )
        return prescription

    def get_patient_prescriptions(self, patient: Patient) -> List[PatientPrescription]:
        prescriptions = (
            self.db.query(Prescription)
            .options(
                joinedload(Prescription.doctor).joinedload(Doctor.user),
                joinedload(Prescription.appointment),
            )
            .filter(Prescription.patient_id == patient.id)
            .order_by(Prescription.issued_at.desc(), Prescription.id.desc())
            .all()
        )
        return [PatientPrescription.model_validate(p) for p in prescriptions]

    def get_doctor_prescriptions(
        self, doctor: Doctor, patient_id: Optional[int] = None
    ) -> List[DoctorPrescription]:
        query = (
            self.db.query(Prescription)
            .options(
                joinedload(Prescription.patient).joinedload(Patient.user),
                joinedload(Prescription.appointment),
            )
            .filter(Prescription.doctor_id == doctor.id)
        )
        if patient_id is not None:
            query = query.filter(Prescription.patient_id == patient_id)

        prescriptions = query.order_by(
            Prescription.issued_at.desc(), Prescription.id.desc()
        ).all()
        return [DoctorPrescription.model_validate(p) for p in prescriptions]

    def get_prescription(
        self, prescription_id: int, role: UserRole, profile_id: int
    ) -> PrescriptionDetail:
        """Single prescription. Doctors and patients only see their own."""
        prescription = (
            self.db.query(Prescription)
            .options(
                joinedload(Prescription.doctor).joinedload(Doctor.user),
                joinedload(Prescription.patient).joinedload(Patient.user),
                joinedload(Prescription.appointment),
            )
            .filter(Prescription.id == prescription_id)
            .first()
        )
        if not prescription or not _is_party(prescription, role, profile_id):
            raise NotFoundError("Prescription not found")

        return PrescriptionDetail.model_validate(prescription)

    def _validate_medications(self, medications: Sequence[Dict[str, Any]]) -> List[MedicationCreate]:
        entries = []
        errors: Dict[str, str] = {}
        for index, medication in enumerate(medications):
            try:
                entries.append(MedicationCreate.model_validate(medication))
            except ValidationError as e:
                errors.update(field_messages(e.errors(), prefix=f"medications.{index}"))
        if errors:
            raise SchemaValidationError(errors)
        return entries

def _is_party(prescription: Prescription, role: UserRole, profile_id: int) -> bool:
    if role == UserRole.ADMIN:
        return True
    if role == UserRole.DOCTOR:
        return prescription.doctor_id == profile_id
    return prescription.patient_id == profile_id
