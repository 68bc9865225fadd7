from sqlalchemy import (
    Column, Integer, String, ForeignKey, Date, DateTime, Boolean, Text,
    Enum as SQLEnum, Index, text
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
import enum

from ..core.database import Base

class AppointmentStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

class ConsultationType(str, enum.Enum):
    ONLINE = "online"
    OFFLINE = "offline"

class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"

def _enum_values(enum_cls):
    return [member.value for member in enum_cls]

class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_slot_tuple", "doctor_id", "appointment_date", "time_slot_id"),
        # At most one approved appointment per (doctor, date, slot)
        Index(
            "uq_appointments_approved_slot",
            "doctor_id", "appointment_date", "time_slot_id",
            unique=True,
            postgresql_where=text("status = 'approved'"),
            sqlite_where=text("status = 'approved'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)

    # Relationships
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    time_slot_id = Column(Integer, ForeignKey("time_slots.id"), nullable=False)

    # Appointment details
    appointment_date = Column(Date, nullable=False)
    consultation_type = Column(
        SQLEnum(ConsultationType, name="consultation_type", values_callable=_enum_values),
        nullable=False,
    )
    patient_age = Column(Integer, nullable=False)
    patient_gender = Column(
        SQLEnum(Gender, name="patient_gender", values_callable=_enum_values),
        nullable=False,
    )
    health_info = Column(Text, nullable=True)

    # Lifecycle: pending -> approved | rejected, approved -> cancelled
    status = Column(
        SQLEnum(AppointmentStatus, name="appointment_status", values_callable=_enum_values),
        nullable=False,
        default=AppointmentStatus.PENDING,
        index=True,
    )
    is_reviewed = Column(Boolean, nullable=False, default=False)

    # Tracking
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    patient = relationship("User", back_populates="appointments")
    doctor = relationship("Doctor", back_populates="appointments")
    time_slot = relationship("TimeSlot")
    review = relationship("Review", back_populates="appointment", uselist=False)

    @property
    def can_review(self):
        return self.status == AppointmentStatus.APPROVED and not self.is_reviewed

    def __repr__(self):
        return f"<Appointment(id={self.id}, patient_id={self.patient_id}, doctor_id={self.doctor_id}, date='{self.appointment_date}', status='{self.status}')>"
