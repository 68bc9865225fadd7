from app.core.config import settings
from app.core.security import UserRole, verify_password
from app.models import AppointmentStatus, Doctor, User
from app.schemas.review import ReviewCreate
from app.services.review_service import ReviewService
from tests.conftest import TEST_PASSWORD, auth_headers, create_appointment, create_doctor

def doctor_payload(**overrides):
    payload = {
        "name": "Dr. Meredith Grey",
        "email": "grey@example.com",
        "password": "SurgeonPass1",
        "specialty": "General Surgery",
        "experience": 12,
        "education": "MBBS, MS",
        "bio": "Attending surgeon",
        "consultation_fee": 800,
        "location": "Seattle",
        "languages": ["English", "Spanish", "English"],
        "gender": "Female",
    }
    payload.update(overrides)
    return payload

class TestDoctorOnboarding:

    def test_admin_creates_doctor(self, client, db, admin):
        response = client.post("/api/v1/admin/doctors", json=doctor_payload(), headers=auth_headers(admin))
        assert response.status_code == 201

        data = response.json()["data"]
        assert data["name"] == "Dr. Meredith Grey"
        assert data["email"] == "grey@example.com"
        assert data["gender"] == "female"
        assert data["languages"] == ["English", "Spanish"]
        assert data["average_rating"] == 0
        assert data["photo_path"] == settings.DEFAULT_DOCTOR_IMAGE

        user = db.query(User).filter(User.email == "grey@example.com").first()
        assert user.role == UserRole.DOCTOR
        assert verify_password("SurgeonPass1", user.password_hash)

    def test_password_is_optional(self, client, db, admin):
        payload = doctor_payload(photo_url="https://cdn.example.com/grey.png")
        del payload["password"]

        response = client.post("/api/v1/admin/doctors", json=payload, headers=auth_headers(admin))
        assert response.status_code == 201
        assert response.json()["data"]["photo_path"] == "https://cdn.example.com/grey.png"

        user = db.query(User).filter(User.email == "grey@example.com").first()
        assert user.password_hash is None

    def test_duplicate_email(self, client, db, admin, patient):
        response = client.post(
            "/api/v1/admin/doctors",
            json=doctor_payload(email=patient.email),
            headers=auth_headers(admin)
        )
        assert response.status_code == 409
        assert response.json()["message"] == "Email already exists"
        assert db.query(Doctor).count() == 0

    def test_invalid_payload(self, client, admin):
        response = client.post(
            "/api/v1/admin/doctors",
            json=doctor_payload(gender="unknown", consultation_fee=-5),
            headers=auth_headers(admin)
        )
        assert response.status_code == 400
        fields = {error["field"] for error in response.json()["errors"]}
        assert fields == {"gender", "consultation_fee"}

    def test_admin_only(self, client, patient):
        response = client.post("/api/v1/admin/doctors", json=doctor_payload(), headers=auth_headers(patient))
        assert response.status_code == 403

        response = client.post("/api/v1/admin/doctors", json=doctor_payload())
        assert response.status_code == 401

class TestDoctorDirectory:

    def _seed(self, db):
        return [
            create_doctor(db, "a@example.com", "Dr. Ada Lovelace", "Cardiology", 5, "female", 4.5),
            create_doctor(db, "b@example.com", "Dr. Ben Carson", "Neurosurgery", 30, "male", 4.0),
            create_doctor(db, "c@example.com", "Dr. Cara Adams", "Cardiology", 15, "female", 3.99),
            create_doctor(db, "d@example.com", "Dr. Dan Brown", "Dermatology", 8, "male", 0),
        ]

    def _names(self, response):
        assert response.status_code == 200
        return [d["name"] for d in response.json()["data"]]

    def test_most_experienced_first(self, client, db):
        self._seed(db)
        names = self._names(client.get("/api/v1/doctors/filter"))
        assert names == ["Dr. Ben Carson", "Dr. Cara Adams", "Dr. Dan Brown", "Dr. Ada Lovelace"]

    def test_filters(self, client, db):
        self._seed(db)

        assert self._names(client.get("/api/v1/doctors/filter", params={"name": "ada"})) == [
            "Dr. Cara Adams", "Dr. Ada Lovelace"
        ]
        assert self._names(client.get("/api/v1/doctors/filter", params={"specialty": "cardio"})) == [
            "Dr. Cara Adams", "Dr. Ada Lovelace"
        ]
        assert self._names(client.get("/api/v1/doctors/filter", params={"gender": "Male"})) == [
            "Dr. Ben Carson", "Dr. Dan Brown"
        ]
        assert self._names(client.get(
            "/api/v1/doctors/filter", params={"experience": 8, "max_experience": 20}
        )) == ["Dr. Cara Adams", "Dr. Dan Brown"]

    def test_rating_bucket_is_half_open(self, client, db):
        self._seed(db)

        assert self._names(client.get("/api/v1/doctors/filter", params={"rating": 4})) == [
            "Dr. Ben Carson", "Dr. Ada Lovelace"
        ]
        assert self._names(client.get("/api/v1/doctors/filter", params={"rating": 3})) == [
            "Dr. Cara Adams"
        ]

    def test_pagination(self, client, db):
        self._seed(db)

        response = client.get("/api/v1/doctors/filter", params={"page": 2, "limit": 3})
        assert self._names(response) == ["Dr. Ada Lovelace"]
        assert response.json()["pagination"] == {"total": 4, "page": 2, "pages": 2, "limit": 3}

    def test_default_page_size(self, client, db):
        for i in range(8):
            create_doctor(db, f"doc{i}@example.com", f"Dr. {i}", experience=i)

        response = client.get("/api/v1/doctors/filter")
        assert len(response.json()["data"]) == 6
        assert response.json()["pagination"]["pages"] == 2

    def test_no_matches(self, client, db):
        self._seed(db)
        response = client.get("/api/v1/doctors/filter", params={"name": "nobody"})
        assert self._names(response) == []
        assert response.json()["pagination"]["total"] == 0

class TestDoctorDetail:

    def test_detail_counts_reviews(self, client, db, patient, doctor, slots, future_date):
        service = ReviewService(db)
        for slot, rating in ((slots[0], 4), (slots[1], 5)):
            appointment = create_appointment(db, patient, doctor, slot, future_date,
                                             status=AppointmentStatus.APPROVED)
            service.submit(patient, ReviewCreate(appointment_id=appointment.id, rating=rating))

        response = client.get(f"/api/v1/doctors/{doctor.id}")
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["name"] == "Dr. House"
        assert data["specialty"] == "Diagnostics"
        assert data["total_reviews"] == 2
        assert data["average_rating"] == 4.5

    def test_unknown_doctor(self, client):
        response = client.get("/api/v1/doctors/999")
        assert response.status_code == 404
        assert response.json()["message"] == "Doctor not found"

class TestUserStatus:

    def test_deactivate_and_reactivate(self, client, db, admin, patient):
        response = client.patch(
            f"/api/v1/admin/users/{patient.id}/status",
            json={"is_active": False},
            headers=auth_headers(admin)
        )
        assert response.status_code == 200
        assert response.json()["data"]["is_active"] is False

        login = client.post("/api/v1/auth/login", json={"email": patient.email, "password": TEST_PASSWORD})
        assert login.status_code == 401

        response = client.patch(
            f"/api/v1/admin/users/{patient.id}/status",
            json={"is_active": True},
            headers=auth_headers(admin)
        )
        assert response.json()["message"] == "User activated successfully"

    def test_unknown_user(self, client, admin):
        response = client.patch("/api/v1/admin/users/999/status", json={"is_active": False},
                                headers=auth_headers(admin))
        assert response.status_code == 404

    def test_admin_only(self, client, patient, other_patient):
        response = client.patch(
            f"/api/v1/admin/users/{other_patient.id}/status",
            json={"is_active": False},
            headers=auth_headers(patient)
        )
        assert response.status_code == 403
