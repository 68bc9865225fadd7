from datetime import date, timedelta

from app.main import app
from app.models import Appointment, AppointmentStatus
from app.services.notification_service import NotificationKind, get_notifier
from tests.conftest import FailingNotifier, auth_headers, create_appointment, create_doctor

def booking_payload(doctor, slot, on_date, **overrides):
    payload = {
        "doctor_id": doctor.id,
        "appointment_date": on_date.isoformat(),
        "time_slot_id": slot.id,
        "consultation_type": "online",
        "patient_age": 34,
        "patient_gender": "female",
        "health_info": "Recurring headaches",
    }
    payload.update(overrides)
    return payload

class TestBooking:

    def test_create_appointment(self, client, db, patient, doctor, slots, future_date, notifier):
        response = client.post(
            "/api/v1/appointments",
            json=booking_payload(doctor, slots[0], future_date),
            headers=auth_headers(patient)
        )
        assert response.status_code == 201

        body = response.json()
        assert body["status"] == "success"
        assert "Waiting for admin approval" in body["message"]
        data = body["data"]
        assert data["status"] == "pending"
        assert data["is_reviewed"] is False
        assert data["patient_id"] == patient.id
        assert data["appointment_date"] == future_date.isoformat()

        assert notifier.recipients(NotificationKind.BOOKED) == [patient.email]
        _, _, context = notifier.sent[0]
        assert context["doctor_name"] == "Dr. House"
        assert context["start_time"] == "09:00"

    def test_booking_does_not_check_availability(self, client, db, patient, doctor, other_patient, slots, future_date):
        """A slot that is already approved can still be requested."""
        create_appointment(db, other_patient, doctor, slots[0], future_date, status=AppointmentStatus.APPROVED)

        response = client.post(
            "/api/v1/appointments",
            json=booking_payload(doctor, slots[0], future_date),
            headers=auth_headers(patient)
        )
        assert response.status_code == 201
        assert response.json()["data"]["status"] == "pending"

    def test_past_date_rejected(self, client, db, patient, doctor, slots):
        yesterday = date.today() - timedelta(days=1)
        response = client.post(
            "/api/v1/appointments",
            json=booking_payload(doctor, slots[0], yesterday),
            headers=auth_headers(patient)
        )
        assert response.status_code == 400
        body = response.json()
        assert body["kind"] == "validation_error"
        assert "past" in body["errors"][0]["message"]
        assert db.query(Appointment).count() == 0

    def test_today_is_allowed(self, client, patient, doctor, slots):
        response = client.post(
            "/api/v1/appointments",
            json=booking_payload(doctor, slots[0], date.today()),
            headers=auth_headers(patient)
        )
        assert response.status_code == 201

    def test_all_violations_reported(self, client, patient, doctor, slots, future_date):
        payload = booking_payload(
            doctor, slots[0], future_date,
            doctor_id="abc",
            consultation_type="phone",
            patient_gender="unknown",
            patient_age="old",
        )
        response = client.post("/api/v1/appointments", json=payload, headers=auth_headers(patient))
        assert response.status_code == 400

        fields = {error["field"] for error in response.json()["errors"]}
        assert {"doctor_id", "consultation_type", "patient_gender", "patient_age"} <= fields

    def test_unknown_doctor_or_slot(self, client, patient, doctor, slots, future_date):
        headers = auth_headers(patient)
        missing_doctor = booking_payload(doctor, slots[0], future_date, doctor_id=999)
        missing_slot = booking_payload(doctor, slots[0], future_date, time_slot_id=999)

        for payload in (missing_doctor, missing_slot):
            response = client.post("/api/v1/appointments", json=payload, headers=headers)
            assert response.status_code == 404
            assert response.json()["message"] == "Doctor or time slot not found"

    def test_only_patients_can_book(self, client, admin, doctor, slots, future_date):
        response = client.post(
            "/api/v1/appointments",
            json=booking_payload(doctor, slots[0], future_date),
            headers=auth_headers(admin)
        )
        assert response.status_code == 403
        assert response.json()["kind"] == "forbidden"

    def test_booking_requires_login(self, client, doctor, slots, future_date):
        response = client.post("/api/v1/appointments", json=booking_payload(doctor, slots[0], future_date))
        assert response.status_code == 401

    def test_notification_failure_keeps_booking(self, client, db, patient, doctor, slots, future_date):
        app.dependency_overrides[get_notifier] = lambda: FailingNotifier()

        response = client.post(
            "/api/v1/appointments",
            json=booking_payload(doctor, slots[0], future_date),
            headers=auth_headers(patient)
        )
        assert response.status_code == 201
        assert db.query(Appointment).count() == 1

class TestPatientAppointments:

    def test_list_own_appointments(self, client, db, patient, other_patient, doctor, slots, future_date):
        create_appointment(db, patient, doctor, slots[0], future_date)
        create_appointment(db, patient, doctor, slots[3], future_date, status=AppointmentStatus.APPROVED)
        create_appointment(db, patient, doctor, slots[1], future_date + timedelta(days=1))
        create_appointment(db, other_patient, doctor, slots[2], future_date)

        response = client.get("/api/v1/appointments/patient", headers=auth_headers(patient))
        assert response.status_code == 200

        body = response.json()
        assert body["pagination"] == {"total": 3, "page": 1, "pages": 1, "limit": 10}
        data = body["data"]
        # Latest date first, then latest slot
        assert [a["time_slot_id"] for a in data] == [slots[1].id, slots[3].id, slots[0].id]
        assert data[0]["doctor_name"] == "Dr. House"
        assert data[0]["specialty"] == "Diagnostics"
        assert [a["can_review"] for a in data] == [False, True, False]

    def test_filter_by_status_and_paginate(self, client, db, patient, doctor, slots, future_date):
        for slot in slots[:5]:
            create_appointment(db, patient, doctor, slot, future_date)
        create_appointment(db, patient, doctor, slots[5], future_date, status=AppointmentStatus.REJECTED)

        response = client.get(
            "/api/v1/appointments/patient",
            params={"status": "pending", "page": 2, "limit": 2},
            headers=auth_headers(patient)
        )
        body = response.json()
        assert body["pagination"] == {"total": 5, "page": 2, "pages": 3, "limit": 2}
        assert len(body["data"]) == 2
        assert all(a["status"] == "pending" for a in body["data"])

    def test_invalid_status_filter(self, client, patient):
        response = client.get(
            "/api/v1/appointments/patient",
            params={"status": "done"},
            headers=auth_headers(patient)
        )
        assert response.status_code == 400

class TestAppointmentDetail:

    def test_visible_to_owner_doctor_and_admin(self, client, db, patient, doctor, admin, slots, future_date):
        appointment = create_appointment(db, patient, doctor, slots[0], future_date)
        doctor_user = doctor.user

        for viewer in (patient, doctor_user, admin):
            response = client.get(f"/api/v1/appointments/{appointment.id}", headers=auth_headers(viewer))
            assert response.status_code == 200
            data = response.json()["data"]
            assert data["patient_name"] == "Alice"
            assert data["doctor_email"] == "house@example.com"
            assert data["start_time"] == "09:00:00"

    def test_hidden_from_others(self, client, db, patient, other_patient, doctor, slots, future_date):
        appointment = create_appointment(db, patient, doctor, slots[0], future_date)
        other_doctor = create_doctor(db, email="grey@example.com", name="Dr. Grey")

        for viewer in (other_patient, other_doctor.user):
            response = client.get(f"/api/v1/appointments/{appointment.id}", headers=auth_headers(viewer))
            assert response.status_code == 404
            assert response.json()["message"] == "Appointment not found or unauthorized"

class TestCancellation:

    def test_patient_cancels_approved(self, client, db, patient, doctor, slots, future_date):
        appointment = create_appointment(db, patient, doctor, slots[0], future_date,
                                         status=AppointmentStatus.APPROVED)

        response = client.patch(f"/api/v1/appointments/{appointment.id}/cancel", headers=auth_headers(patient))
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "cancelled"

        slots_response = client.get(
            f"/api/v1/appointments/available-slots/{doctor.id}",
            params={"date": future_date.isoformat()}
        )
        assert slots[0].id in [s["id"] for s in slots_response.json()["data"]]

    def test_only_approved_can_be_cancelled(self, client, db, patient, doctor, slots, future_date):
        appointment = create_appointment(db, patient, doctor, slots[0], future_date)

        response = client.patch(f"/api/v1/appointments/{appointment.id}/cancel", headers=auth_headers(patient))
        assert response.status_code == 409

    def test_cannot_cancel_someone_elses(self, client, db, patient, other_patient, doctor, slots, future_date):
        appointment = create_appointment(db, patient, doctor, slots[0], future_date,
                                         status=AppointmentStatus.APPROVED)

        response = client.patch(f"/api/v1/appointments/{appointment.id}/cancel", headers=auth_headers(other_patient))
        assert response.status_code == 404

    def test_admin_can_cancel(self, client, db, patient, admin, doctor, slots, future_date):
        appointment = create_appointment(db, patient, doctor, slots[0], future_date,
                                         status=AppointmentStatus.APPROVED)

        response = client.patch(f"/api/v1/appointments/{appointment.id}/cancel", headers=auth_headers(admin))
        assert response.status_code == 200
