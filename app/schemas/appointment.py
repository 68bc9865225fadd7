from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from datetime import date, datetime, time

from ..models.appointment import AppointmentStatus, ConsultationType, Gender

class TimeSlotResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    start_time: time
    end_time: time

class AppointmentCreate(BaseModel):
    doctor_id: int
    appointment_date: date
    time_slot_id: int
    consultation_type: ConsultationType
    patient_age: int = Field(..., ge=0, le=150)
    patient_gender: Gender
    health_info: Optional[str] = None

    @field_validator("appointment_date")
    @classmethod
    def not_in_past(cls, value: date) -> date:
        if value < date.today():
            raise ValueError("Appointment date cannot be in the past")
        return value

class RequestStatusUpdate(BaseModel):
    status: AppointmentStatus

    @field_validator("status")
    @classmethod
    def approval_decision(cls, value: AppointmentStatus) -> AppointmentStatus:
        if value not in (AppointmentStatus.APPROVED, AppointmentStatus.REJECTED):
            raise ValueError('Invalid status. Must be either "approved" or "rejected"')
        return value

class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_id: int
    patient_id: int
    appointment_date: date
    time_slot_id: int
    consultation_type: ConsultationType
    patient_age: int
    patient_gender: Gender
    health_info: Optional[str] = None
    status: AppointmentStatus
    is_reviewed: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

class AppointmentDetailResponse(AppointmentResponse):
    """Appointment joined with doctor, patient and slot details."""
    doctor_name: Optional[str] = None
    doctor_email: Optional[str] = None
    specialty: Optional[str] = None
    location: Optional[str] = None
    consultation_fee: Optional[float] = None
    patient_name: Optional[str] = None
    patient_email: Optional[str] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    can_review: bool = False

    @classmethod
    def from_appointment(cls, appointment) -> "AppointmentDetailResponse":
        doctor = appointment.doctor
        patient = appointment.patient
        slot = appointment.time_slot
        base = AppointmentResponse.model_validate(appointment).model_dump()
        return cls(
            **base,
            doctor_name=doctor.name if doctor else None,
            doctor_email=doctor.email if doctor else None,
            specialty=doctor.specialty if doctor else None,
            location=doctor.location if doctor else None,
            consultation_fee=doctor.consultation_fee if doctor else None,
            patient_name=patient.name if patient else None,
            patient_email=patient.email if patient else None,
            start_time=slot.start_time if slot else None,
            end_time=slot.end_time if slot else None,
            can_review=appointment.can_review,
        )

class DecisionResponse(BaseModel):
    appointment: AppointmentResponse
    rejected_appointment_ids: List[int] = []
