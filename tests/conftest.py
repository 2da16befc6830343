import os
from datetime import date, datetime
from typing import Optional

import pytest

# Set testing environment before the application reads its settings
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"
os.environ["ENVIRONMENT"] = "test"

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from medbook.main import app
from medbook.api.deps import get_uploader
from medbook.core.database import Base, get_db, get_redis
from medbook.core.security import UserRole, create_access_token
from medbook.models.admin import Admin
from medbook.models.appointment import Appointment
from medbook.models.clinic import Clinic
from medbook.models.doctor import Doctor
from medbook.models.patient import Patient
from medbook.models.user import User
from medbook.services.upload_service import UploadError

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

class FakeRedis:
    """In-memory stand-in for the handful of redis commands the rate limiter uses."""

    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def setex(self, key, ttl, value):
        self.data[key] = str(value)
        return True

    def incr(self, key):
        self.data[key] = str(int(self.data.get(key, 0)) + 1)
        return int(self.data[key])

class FakeUploader:
    def __init__(self):
        self.uploaded = []
        self.fail = False

    async def upload(self, file, folder=None):
        content = await file.read()
        if self.fail:
            raise UploadError("media service unavailable")
        self.uploaded.append((file.filename, content))
        return f"https://media.example.com/{file.filename}"

@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def fake_redis():
    return FakeRedis()

@pytest.fixture
def uploader():
    return FakeUploader()

@pytest.fixture
def client(db_session, fake_redis, uploader):
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_redis] = lambda: fake_redis
    app.dependency_overrides[get_uploader] = lambda: uploader
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client
    app.dependency_overrides.clear()

# Factories
def make_user(db, role: UserRole, email: str, first_name="Test", last_name="User") -> User:
    user = User(
        email=email,
        role=role,
        first_name=first_name,
        last_name=last_name,
        is_active=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

def make_doctor(db, email: str, clinic: Optional[Clinic] = None, **fields) -> Doctor:
    user = make_user(db, UserRole.DOCTOR, email, first_name="Gregory", last_name=email.split("@")[0])
    values = {
        "specialization": "Cardiology",
        "qualifications": ["MBBS", "MD"],
    }
    values.update(fields)
    doctor = Doctor(user_id=user.id, clinic_id=clinic.id if clinic else None, **values)
    db.add(doctor)
    db.commit()
    db.refresh(doctor)
    return doctor

def make_patient(db, email: str, **fields) -> Patient:
    user = make_user(db, UserRole.PATIENT, email, first_name="Pat", last_name=email.split("@")[0])
    patient = Patient(user_id=user.id, **fields)
    db.add(patient)
    db.commit()
    db.refresh(patient)
    return patient

def make_appointment(db, doctor: Doctor, patient: Patient, when: Optional[datetime] = None, **fields) -> Appointment:
    appointment = Appointment(
        doctor_id=doctor.id,
        patient_id=patient.id,
        appointment_date=when or datetime(2026, 3, 14, 9, 30),
        **fields
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment

def auth_headers(user: User) -> dict:
    token = create_access_token({
        "sub": str(user.id),
        "email": user.email,
        "role": UserRole(user.role).value,
    })
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
def clinic(db_session):
    clinic = Clinic(
        name="Riverside Clinic",
        address="12 River Road",
        location="Riverside",
        contact_info={"phone": "555-0100"},
    )
    db_session.add(clinic)
    db_session.commit()
    db_session.refresh(clinic)
    return clinic

@pytest.fixture
def doctor(db_session):
    return make_doctor(db_session, "house@example.com", license_number="LIC-1001")

@pytest.fixture
def other_doctor(db_session):
    return make_doctor(db_session, "wilson@example.com", specialization="Oncology")

@pytest.fixture
def patient(db_session):
    return make_patient(db_session, "jones@example.com", date_of_birth=date(1990, 5, 17), gender="female")

@pytest.fixture
def other_patient(db_session):
    return make_patient(db_session, "smith@example.com")

@pytest.fixture
def admin(db_session):
    user = make_user(db_session, UserRole.ADMIN, "admin@example.com")
    profile = Admin(user_id=user.id, department="Operations")
    db_session.add(profile)
    db_session.commit()
    db_session.refresh(profile)
    return profile

@pytest.fixture
def appointment(db_session, doctor, patient):
    return make_appointment(db_session, doctor, patient, reason="Chest pain")
