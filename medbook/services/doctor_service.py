from typing import Any, Dict, List, Optional, Type, TypeVar
import logging

from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload, selectinload
from starlette.datastructures import UploadFile

from ..core.errors import (
    BadRequestError, ConflictError, NotFoundError,
    SchemaValidationError, ServerError
)
from ..models.appointment import Appointment
from ..models.clinic import Clinic
from ..models.doctor import Doctor
from ..models.patient import Patient
from ..models.user import User
from ..schemas.doctor import (
    ClinicDoctor, ClinicSummary, DoctorAppointment, DoctorDetailResponse,
    DoctorProfileCreate, DoctorProfileUpdate, DoctorResponse
)
from .upload_service import MediaUploader, UploadError

logger = logging.getLogger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)

REQUIRED_FIELDS = {
    "specialization": "Specialization is required",
    "qualifications": "Qualifications are required",
}

CLEARED_FIELDS = {
    "specialization": "Specialization cannot be empty",
    "qualifications": "Qualifications cannot be empty",
}

class DoctorService:
    def __init__(self, db: Session, uploader: Optional[MediaUploader] = None):
        self.db = db
        self.uploader = uploader

    async def create_profile(
        self, user: User, data: Dict[str, Any], upload: Optional[UploadFile] = None
    ) -> Doctor:
        """Create the doctor profile for ``user``."""
        if self._find_by_user(user.id) is not None:
            raise ConflictError("Doctor profile already exists")

        missing = {field: message for field, message in REQUIRED_FIELDS.items() if not data.get(field)}
        if missing:
            raise BadRequestError("Specialization and qualifications are required", errors=missing)

        profile = _validate(DoctorProfileCreate, data)
        self._ensure_clinic_exists(profile.clinic_id)
        self._ensure_license_available(profile.license_number)

        values = profile.model_dump(exclude_none=True)
        if upload is not None:
            values["profile_picture"] = await self._upload_picture(upload)

        doctor = Doctor(user_id=user.id, **values)
        self.db.add(doctor)
        self._commit()
        self.db.refresh(doctor)

        logger.info(f"Created doctor profile {doctor.id} for user {user.id}")
        return doctor

    async def update_profile(
        self, user: User, data: Dict[str, Any], upload: Optional[UploadFile] = None
    ) -> Doctor:
        """Merge submitted fields into the existing profile."""
        if not data and upload is None:
            raise BadRequestError("No updates provided")

        doctor = self._find_by_user(user.id)
        if doctor is None:
            raise NotFoundError("Doctor profile not found")

        updates = _validate(DoctorProfileUpdate, data).model_dump(exclude_unset=True)

        cleared = {
            field: message
            for field, message in CLEARED_FIELDS.items()
            if field in updates and not updates[field]
        }
        if cleared:
            raise SchemaValidationError(cleared)
        if updates.get("clinic_id") is not None:
            self._ensure_clinic_exists(updates["clinic_id"])
        if updates.get("license_number"):
            self._ensure_license_available(updates["license_number"], doctor.id)
        if not updates and upload is None:
            raise BadRequestError("No updates provided")

        if upload is not None:
            updates["profile_picture"] = await self._upload_picture(upload)

        for field, value in updates.items():
            setattr(doctor, field, value)
        self._commit()
        self.db.refresh(doctor)

        logger.info(f"Updated doctor profile {doctor.id}: {sorted(updates)}")
        return doctor

    def get_profile(self, user_id: int) -> DoctorDetailResponse:
        """Own profile; clinic and appointments are only joined when present."""
        doctor = self._find_by_user(user_id)
        if doctor is None:
            raise NotFoundError("Doctor profile not found")

        has_appointments = self.db.query(Appointment.id).filter(
            Appointment.doctor_id == doctor.id
        ).first() is not None

        options = []
        if doctor.clinic_id:
            options.append(joinedload(Doctor.clinic))
        if has_appointments:
            options.append(
                selectinload(Doctor.appointments)
                .joinedload(Appointment.patient)
                .joinedload(Patient.user)
            )
        if options:
            doctor = (
                self.db.query(Doctor)
                .options(*options)
                .filter(Doctor.id == doctor.id)
                .populate_existing()
                .first()
            )

        profile = DoctorResponse.model_validate(doctor).model_dump()
        return DoctorDetailResponse(
            **profile,
            ratings=doctor.ratings or [],
            clinic=ClinicSummary.model_validate(doctor.clinic) if doctor.clinic_id else None,
            appointments=(
                [DoctorAppointment.model_validate(a) for a in doctor.appointments]
                if has_appointments else []
            ),
        )

    def list_by_clinic(self, clinic_id: int) -> List[ClinicDoctor]:
        doctors = (
            self.db.query(Doctor)
            .options(joinedload(Doctor.clinic), joinedload(Doctor.user))
            .filter(Doctor.clinic_id == clinic_id)
            .order_by(Doctor.id)
            .all()
        )
        if not doctors:
            raise NotFoundError(
                "No doctors found for this clinic",
                suggestions="Check if the clinic ID is correct",
            )
        return [ClinicDoctor.model_validate(doctor) for doctor in doctors]

    def _find_by_user(self, user_id: int) -> Optional[Doctor]:
        return self.db.query(Doctor).filter(Doctor.user_id == user_id).first()

    def _ensure_clinic_exists(self, clinic_id: Optional[int]) -> None:
        if clinic_id is None:
            return
        if self.db.get(Clinic, clinic_id) is None:
            raise SchemaValidationError({"clinic_id": f"Clinic {clinic_id} does not exist"})

    def _ensure_license_available(self, license_number: Optional[str], doctor_id: Optional[int] = None) -> None:
        # Runs before the picture upload
        if not license_number:
            return
        query = self.db.query(Doctor.id).filter(Doctor.license_number == license_number)
        if doctor_id is not None:
            query = query.filter(Doctor.id != doctor_id)
        if query.first() is not None:
            raise ConflictError("License number is already registered")

    async def _upload_picture(self, upload: UploadFile) -> str:
        if self.uploader is None:
            raise ServerError("Failed to upload profile picture")
        try:
            return await self.uploader.upload(upload)
        except UploadError as e:
            logger.error(f"Upload error: {e}")
            raise ServerError("Failed to upload profile picture", e)

    def _commit(self) -> None:
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Doctor profile conflict: {e.orig}")
            raise ConflictError("Doctor profile conflicts with an existing record")

def _validate(schema: Type[SchemaT], data: Dict[str, Any]) -> SchemaT:
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise SchemaValidationError.from_pydantic(e)
