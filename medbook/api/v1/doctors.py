from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session
from starlette.datastructures import UploadFile
from typing import Any, Dict, Optional, Tuple
import json

from ...core.database import get_db
from ...core.errors import APIError, BadRequestError, ServerError
from ...api.deps import (
    CurrentIdentity, get_any_identity, get_doctor_account,
    get_doctor_identity, get_uploader
)
from ...models.user import User
from ...schemas.doctor import LIST_FIELDS, DoctorResponse
from ...services.doctor_service import DoctorService
from ...services.upload_service import MediaUploader

router = APIRouter(prefix="/doctors", tags=["Doctors"])

# Multipart field carrying the profile picture
PICTURE_FIELD = "profile_picture"

async def read_profile_submission(request: Request) -> Tuple[Dict[str, Any], Optional[UploadFile]]:
    """Read a JSON or multipart profile body; returns the fields and any uploaded picture."""
    content_type = request.headers.get("content-type", "")

    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        data: Dict[str, Any] = {}
        upload = None
        for key in form.keys():
            if key == PICTURE_FIELD:
                value = form.get(key)
                if isinstance(value, UploadFile):
                    if value.filename:
                        upload = value
                    continue
            values = form.getlist(key)
            data[key] = values if key in LIST_FIELDS else values[-1]
        return data, upload

    body = await request.body()
    if not body:
        return {}, None
    try:
        data = json.loads(body)
    except ValueError:
        raise BadRequestError("Request body must be valid JSON")
    if not isinstance(data, dict):
        raise BadRequestError("Request body must be a JSON object")
    return data, None

@router.post("/profile", status_code=status.HTTP_201_CREATED)
async def create_doctor_profile(
    request: Request,
    current_user: User = Depends(get_doctor_account),
    db: Session = Depends(get_db),
    uploader: MediaUploader = Depends(get_uploader)
):
    """Create the caller's doctor profile."""
    data, upload = await read_profile_submission(request)
    try:
        doctor = await DoctorService(db, uploader).create_profile(current_user, data, upload)
    except APIError:
        raise
    except Exception as e:
        raise ServerError("Failed to create doctor profile", e)

    return {
        "message": "Doctor profile created successfully",
        "doctor": DoctorResponse.model_validate(doctor)
    }

@router.put("/profile")
async def update_doctor_profile(
    request: Request,
    identity: CurrentIdentity = Depends(get_doctor_identity),
    db: Session = Depends(get_db),
    uploader: MediaUploader = Depends(get_uploader)
):
    """Merge submitted fields into the caller's doctor profile."""
    data, upload = await read_profile_submission(request)
    try:
        doctor = await DoctorService(db, uploader).update_profile(identity.user, data, upload)
    except APIError:
        raise
    except Exception as e:
        raise ServerError("Failed to update doctor profile", e)

    return {
        "message": "Doctor profile updated successfully",
        "doctor": DoctorResponse.model_validate(doctor)
    }

@router.get("/profile")
async def get_doctor_profile(
    identity: CurrentIdentity = Depends(get_doctor_identity),
    db: Session = Depends(get_db)
):
    """Get the caller's doctor profile."""
    try:
        return DoctorService(db).get_profile(identity.user_id)
    except APIError:
        raise
    except Exception as e:
        raise ServerError("Failed to fetch doctor profile", e)

@router.get("/clinic/{clinic_id}")
async def get_doctors_by_clinic(
    clinic_id: int,
    identity: CurrentIdentity = Depends(get_any_identity),
    db: Session = Depends(get_db)
):
    """List doctors practising at a clinic."""
    try:
        doctors = DoctorService(db).list_by_clinic(clinic_id)
    except APIError:
        raise
    except Exception as e:
        raise ServerError("Failed to fetch doctors", e)

    return {
        "count": len(doctors),
        "doctors": doctors
    }
