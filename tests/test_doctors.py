from medbook.core.config import settings
from medbook.core.security import UserRole
from medbook.models.doctor import Doctor

from .conftest import auth_headers, make_appointment, make_doctor, make_user

PROFILE_URL = "/api/v1/doctors/profile"

profile_data = {
    "specialization": "Neurology",
    "qualifications": ["MBBS", "DM Neurology"],
    "license_number": "NEU-2001",
    "years_of_experience": 12,
    "bio": "Movement disorders",
}

def new_doctor_account(db_session, email="newdoc@example.com"):
    return make_user(db_session, UserRole.DOCTOR, email, first_name="Ada", last_name="Lovelace")

class TestCreateDoctorProfile:

    def test_create_profile(self, client, db_session):
        user = new_doctor_account(db_session)

        response = client.post(PROFILE_URL, json=profile_data, headers=auth_headers(user))
        assert response.status_code == 201

        data = response.json()
        assert data["message"] == "Doctor profile created successfully"
        assert data["doctor"]["specialization"] == "Neurology"
        assert data["doctor"]["qualifications"] == ["MBBS", "DM Neurology"]
        assert data["doctor"]["user_id"] == user.id
        assert data["doctor"]["name"] == "Ada Lovelace"
        assert data["doctor"]["profile_picture"] is None

    def test_create_profile_with_picture(self, client, db_session, uploader):
        user = new_doctor_account(db_session)

        response = client.post(
            PROFILE_URL,
            data={"specialization": "Neurology", "qualifications": ["MBBS", "MD"], "years_of_experience": "4"},
            files={"profile_picture": ("ada.png", b"\x89PNG-data", "image/png")},
            headers=auth_headers(user)
        )
        assert response.status_code == 201

        doctor = response.json()["doctor"]
        assert doctor["profile_picture"] == "https://media.example.com/ada.png"
        assert doctor["qualifications"] == ["MBBS", "MD"]
        assert doctor["years_of_experience"] == 4
        assert uploader.uploaded == [("ada.png", b"\x89PNG-data")]

    def test_second_profile_conflicts(self, client, doctor):
        response = client.post(PROFILE_URL, json=profile_data, headers=auth_headers(doctor.user))
        assert response.status_code == 409
        assert response.json()["message"] == "Doctor profile already exists"

    def test_missing_required_fields(self, client, db_session):
        user = new_doctor_account(db_session)

        response = client.post(
            PROFILE_URL,
            json={"specialization": "Neurology"},
            headers=auth_headers(user)
        )
        assert response.status_code == 400

        data = response.json()
        assert data["message"] == "Specialization and qualifications are required"
        assert data["errors"] == {"qualifications": "Qualifications are required"}

    def test_schema_validation_error(self, client, db_session):
        user = new_doctor_account(db_session)
        payload = dict(profile_data, years_of_experience="plenty")

        response = client.post(PROFILE_URL, json=payload, headers=auth_headers(user))
        assert response.status_code == 400

        data = response.json()
        assert data["message"] == "Validation error"
        assert "years_of_experience" in data["errors"]

    def test_unknown_clinic_rejected(self, client, db_session):
        user = new_doctor_account(db_session)
        payload = dict(profile_data, clinic_id=424242)

        response = client.post(PROFILE_URL, json=payload, headers=auth_headers(user))
        assert response.status_code == 400
        assert "clinic_id" in response.json()["errors"]

    def test_duplicate_license_number(self, client, db_session, doctor):
        user = new_doctor_account(db_session)
        payload = dict(profile_data, license_number="LIC-1001")

        response = client.post(PROFILE_URL, json=payload, headers=auth_headers(user))
        assert response.status_code == 409

    def test_duplicate_license_skips_upload(self, client, db_session, doctor, uploader):
        user = new_doctor_account(db_session)

        response = client.post(
            PROFILE_URL,
            data={"specialization": "Neurology", "qualifications": "MBBS", "license_number": "LIC-1001"},
            files={"profile_picture": ("ada.png", b"png", "image/png")},
            headers=auth_headers(user)
        )
        assert response.status_code == 409
        assert response.json()["message"] == "License number is already registered"
        assert uploader.uploaded == []

    def test_patient_cannot_create(self, client, patient):
        response = client.post(PROFILE_URL, json=profile_data, headers=auth_headers(patient.user))
        assert response.status_code == 403

    def test_upload_failure(self, client, db_session, uploader):
        user = new_doctor_account(db_session)
        uploader.fail = True

        response = client.post(
            PROFILE_URL,
            data={"specialization": "Neurology", "qualifications": "MBBS"},
            files={"profile_picture": ("ada.png", b"png", "image/png")},
            headers=auth_headers(user)
        )
        assert response.status_code == 500

        data = response.json()
        assert data["message"] == "Failed to upload profile picture"
        assert "error" not in data
        assert db_session.query(Doctor).filter(Doctor.user_id == user.id).count() == 0

    def test_upload_failure_echoed_in_development(self, client, db_session, uploader, monkeypatch):
        monkeypatch.setattr(settings, "ENVIRONMENT", "development")
        user = new_doctor_account(db_session)
        uploader.fail = True

        response = client.post(
            PROFILE_URL,
            data={"specialization": "Neurology", "qualifications": "MBBS"},
            files={"profile_picture": ("ada.png", b"png", "image/png")},
            headers=auth_headers(user)
        )
        assert response.status_code == 500
        assert response.json()["error"] == "media service unavailable"

class TestUpdateDoctorProfile:

    def test_empty_update_rejected(self, client, doctor):
        response = client.put(PROFILE_URL, headers=auth_headers(doctor.user))
        assert response.status_code == 400
        assert response.json()["message"] == "No updates provided"

    def test_empty_json_object_rejected(self, client, doctor):
        response = client.put(PROFILE_URL, json={}, headers=auth_headers(doctor.user))
        assert response.status_code == 400

    def test_partial_update_merges(self, client, db_session, doctor):
        response = client.put(
            PROFILE_URL,
            json={"bio": "Diagnostics", "years_of_experience": 20},
            headers=auth_headers(doctor.user)
        )
        assert response.status_code == 200

        updated = response.json()["doctor"]
        assert updated["bio"] == "Diagnostics"
        assert updated["years_of_experience"] == 20
        assert updated["specialization"] == "Cardiology"
        assert updated["license_number"] == "LIC-1001"

    def test_picture_only_update(self, client, doctor):
        response = client.put(
            PROFILE_URL,
            files={"profile_picture": ("house.jpg", b"jpeg", "image/jpeg")},
            headers=auth_headers(doctor.user)
        )
        assert response.status_code == 200
        assert response.json()["doctor"]["profile_picture"] == "https://media.example.com/house.jpg"

    def test_update_to_taken_license_skips_upload(self, client, db_session, doctor, uploader):
        make_doctor(db_session, "wilson@example.com", license_number="LIC-2002")

        response = client.put(
            PROFILE_URL,
            data={"license_number": "LIC-2002"},
            files={"profile_picture": ("house.jpg", b"jpeg", "image/jpeg")},
            headers=auth_headers(doctor.user)
        )
        assert response.status_code == 409
        assert uploader.uploaded == []

    def test_keeping_own_license_is_allowed(self, client, doctor):
        response = client.put(
            PROFILE_URL,
            json={"license_number": "LIC-1001", "bio": "Diagnostics"},
            headers=auth_headers(doctor.user)
        )
        assert response.status_code == 200

    def test_required_field_cannot_be_cleared(self, client, doctor):
        response = client.put(
            PROFILE_URL,
            json={"specialization": None},
            headers=auth_headers(doctor.user)
        )
        assert response.status_code == 400
        assert response.json()["errors"] == {"specialization": "Specialization cannot be empty"}

    def test_invalid_update_value(self, client, doctor):
        response = client.put(
            PROFILE_URL,
            json={"consultation_fee": -10},
            headers=auth_headers(doctor.user)
        )
        assert response.status_code == 400
        assert "consultation_fee" in response.json()["errors"]

    def test_update_without_profile(self, client, db_session):
        user = new_doctor_account(db_session)

        response = client.put(PROFILE_URL, json={"bio": "x"}, headers=auth_headers(user))
        assert response.status_code == 404

class TestReadDoctorProfile:

    def test_profile_without_relations(self, client, doctor):
        response = client.get(PROFILE_URL, headers=auth_headers(doctor.user))
        assert response.status_code == 200

        data = response.json()
        assert data["id"] == doctor.id
        assert data["clinic"] is None
        assert data["appointments"] == []
        assert data["ratings"] == []

    def test_profile_populates_clinic_and_appointments(self, client, db_session, clinic, patient):
        doctor = make_doctor(db_session, "cuddy@example.com", clinic=clinic)
        make_appointment(db_session, doctor, patient, reason="Headache")

        response = client.get(PROFILE_URL, headers=auth_headers(doctor.user))
        assert response.status_code == 200

        data = response.json()
        assert data["clinic"]["name"] == "Riverside Clinic"
        assert data["clinic"]["address"] == "12 River Road"
        assert len(data["appointments"]) == 1
        assert data["appointments"][0]["reason"] == "Headache"
        assert data["appointments"][0]["patient"]["name"] == "Pat jones"

class TestDoctorsByClinic:

    def test_lists_clinic_doctors(self, client, db_session, clinic, patient):
        make_doctor(db_session, "cuddy@example.com", clinic=clinic, ratings=[{"score": 5}])
        make_doctor(db_session, "chase@example.com", clinic=clinic, specialization="Surgery")
        make_doctor(db_session, "elsewhere@example.com")

        response = client.get(f"/api/v1/doctors/clinic/{clinic.id}", headers=auth_headers(patient.user))
        assert response.status_code == 200

        data = response.json()
        assert data["count"] == 2
        for entry in data["doctors"]:
            assert entry["clinic"] == {"id": clinic.id, "name": "Riverside Clinic", "location": "Riverside"}
            assert "appointments" not in entry
            assert "ratings" not in entry

    def test_empty_clinic_is_not_found(self, client, clinic, patient):
        response = client.get(f"/api/v1/doctors/clinic/{clinic.id}", headers=auth_headers(patient.user))
        assert response.status_code == 404

        data = response.json()
        assert data["message"] == "No doctors found for this clinic"
        assert data["suggestions"] == "Check if the clinic ID is correct"

    def test_malformed_clinic_id(self, client, patient):
        response = client.get("/api/v1/doctors/clinic/not-an-id", headers=auth_headers(patient.user))
        assert response.status_code == 400
        assert "clinic_id" in response.json()["errors"]
