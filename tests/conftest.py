import os
from datetime import date, timedelta

import pytest

# Must be set before the application modules are imported
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"

from fastapi.testclient import TestClient

from app.main import app
from app.core.database import Base, SessionLocal, engine, get_db, redis_client
from app.core.security import UserRole, create_user_token, get_password_hash
from app.models import Appointment, AppointmentStatus, Doctor, TimeSlot, User
from app.services.notification_service import NotificationKind, Notifier, get_notifier
from app.services.slot_catalog import seed_time_slots

TEST_PASSWORD = "TestPassword123"

class RecordingNotifier(Notifier):
    """Keeps notifications in memory instead of sending them."""

    def __init__(self):
        self.sent = []

    def notify(self, kind, recipient_email, context):
        self.sent.append((NotificationKind(kind), recipient_email, dict(context)))

    def recipients(self, kind=None):
        return [email for k, email, _ in self.sent if kind is None or k == kind]

class FailingNotifier(Notifier):
    def notify(self, kind, recipient_email, context):
        raise ConnectionError("SMTP server unreachable")

def override_get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

app.dependency_overrides[get_db] = override_get_db

@pytest.fixture(scope="function")
def test_db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        seed_time_slots(session)
    finally:
        session.close()
    redis_client.flushall()
    yield
    Base.metadata.drop_all(bind=engine)

@pytest.fixture
def db(test_db):
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()

@pytest.fixture
def notifier():
    recorder = RecordingNotifier()
    app.dependency_overrides[get_notifier] = lambda: recorder
    yield recorder
    app.dependency_overrides.pop(get_notifier, None)

@pytest.fixture
def client(test_db, notifier):
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client

@pytest.fixture
def future_date():
    return date.today() + timedelta(days=7)

@pytest.fixture
def slots(db):
    return db.query(TimeSlot).order_by(TimeSlot.start_time).all()

def create_user(db, email, name, role=UserRole.PATIENT, password=TEST_PASSWORD, is_active=True):
    user = User(
        email=email,
        name=name,
        role=role,
        password_hash=get_password_hash(password) if password else None,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user

def create_doctor(db, email="house@example.com", name="Dr. House", specialty="Diagnostics",
                  experience=10, gender="male", average_rating=0):
    user = create_user(db, email, name, role=UserRole.DOCTOR)
    doctor = Doctor(
        user_id=user.id,
        specialty=specialty,
        experience=experience,
        consultation_fee=500,
        gender=gender,
        languages=["English"],
        average_rating=average_rating,
    )
    db.add(doctor)
    db.commit()
    db.refresh(doctor)
    return doctor

def create_appointment(db, patient, doctor, slot, on_date, status=AppointmentStatus.PENDING):
    appointment = Appointment(
        doctor_id=doctor.id,
        patient_id=patient.id,
        appointment_date=on_date,
        time_slot_id=slot.id,
        consultation_type="online",
        patient_age=30,
        patient_gender="female",
        status=status,
        is_reviewed=False,
    )
    db.add(appointment)
    db.commit()
    db.refresh(appointment)
    return appointment

def auth_headers(user):
    token = create_user_token(user.id, user.email, user.role)
    return {"Authorization": f"Bearer {token.access_token}"}

@pytest.fixture
def admin(db):
    return create_user(db, "admin@example.com", "Admin", role=UserRole.ADMIN)

@pytest.fixture
def patient(db):
    return create_user(db, "alice@gmail.com", "Alice")

@pytest.fixture
def other_patient(db):
    return create_user(db, "bob@gmail.com", "Bob")

@pytest.fixture
def doctor(db):
    return create_doctor(db)
