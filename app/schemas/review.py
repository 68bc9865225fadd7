from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import date, datetime, time

class ReviewCreate(BaseModel):
    appointment_id: int
    rating: int = Field(..., ge=1, le=5, strict=True)
    comment: Optional[str] = Field(None, max_length=2000)

class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_id: int
    patient_id: int
    appointment_id: int
    rating: int
    comment: Optional[str] = None
    created_at: Optional[datetime] = None

class ReviewDetailResponse(ReviewResponse):
    patient_name: Optional[str] = None
    doctor_name: Optional[str] = None
    specialty: Optional[str] = None
    appointment_date: Optional[date] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None

    @classmethod
    def from_review(cls, review) -> "ReviewDetailResponse":
        appointment = review.appointment
        slot = appointment.time_slot if appointment else None
        return cls(
            **ReviewResponse.model_validate(review).model_dump(),
            patient_name=review.patient.name if review.patient else None,
            doctor_name=review.doctor.name if review.doctor else None,
            specialty=review.doctor.specialty if review.doctor else None,
            appointment_date=appointment.appointment_date if appointment else None,
            start_time=slot.start_time if slot else None,
            end_time=slot.end_time if slot else None,
        )
