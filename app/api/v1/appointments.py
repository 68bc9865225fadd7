from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...api.deps import (
    get_admin_user, get_current_user, get_patient_or_admin_user, get_patient_user
)
from ...core.database import get_db
from ...models.appointment import AppointmentStatus
from ...models.user import User
from ...schemas.appointment import (
    AppointmentCreate, AppointmentDetailResponse, AppointmentResponse,
    DecisionResponse, RequestStatusUpdate, TimeSlotResponse
)
from ...schemas.common import ApiResponse
from ...services.appointment_service import AppointmentService
from ...services.approval_service import ApprovalService
from ...services.notification_service import Notifier, get_notifier

router = APIRouter(prefix="/appointments", tags=["Appointments"])

@router.get("/available-slots/{doctor_id}", response_model=ApiResponse[List[TimeSlotResponse]])
def available_slots(
    doctor_id: int,
    on_date: date = Query(..., alias="date"),
    db: Session = Depends(get_db)
):
    """Free slots for a doctor on a date. A snapshot; booking may still race."""
    slots = AppointmentService(db).get_available_slots(doctor_id, on_date)
    return ApiResponse(data=[TimeSlotResponse.model_validate(slot) for slot in slots])

@router.post("", response_model=ApiResponse[AppointmentResponse], status_code=201)
def create_appointment(
    appointment_data: AppointmentCreate,
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """Submit an appointment request for admin approval."""
    appointment = AppointmentService(db, notifier).create_appointment(current_user, appointment_data)
    return ApiResponse(
        message="Appointment request submitted successfully. Waiting for admin approval.",
        data=AppointmentResponse.model_validate(appointment)
    )

@router.get("/patient", response_model=ApiResponse[List[AppointmentDetailResponse]])
def list_patient_appointments(
    status: Optional[AppointmentStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db)
):
    """The caller's own appointments, newest first."""
    result = AppointmentService(db).list_patient_appointments(current_user, status, page, limit)
    return ApiResponse(
        data=[AppointmentDetailResponse.from_appointment(a) for a in result.items],
        pagination=result.pagination()
    )

@router.get("/{appointment_id}", response_model=ApiResponse[AppointmentDetailResponse])
def get_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    appointment = AppointmentService(db).get_appointment(current_user, appointment_id)
    return ApiResponse(data=AppointmentDetailResponse.from_appointment(appointment))

@router.patch("/{appointment_id}/request-status", response_model=ApiResponse[DecisionResponse])
def update_request_status(
    appointment_id: int,
    status_data: RequestStatusUpdate,
    _: User = Depends(get_admin_user),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier)
):
    """Approve or reject a pending request (admin only).

    Approving rejects every other pending request for the same doctor, date and slot.
    """
    result = ApprovalService(db, notifier).decide(appointment_id, status_data.status)
    return ApiResponse(
        message=f"Appointment {status_data.status.value} successfully",
        data=DecisionResponse(
            appointment=AppointmentResponse.model_validate(result.appointment),
            rejected_appointment_ids=result.rejected_ids
        )
    )

@router.patch("/{appointment_id}/cancel", response_model=ApiResponse[AppointmentResponse])
def cancel_appointment(
    appointment_id: int,
    current_user: User = Depends(get_patient_or_admin_user),
    db: Session = Depends(get_db)
):
    appointment = AppointmentService(db).cancel_appointment(current_user, appointment_id)
    return ApiResponse(
        message="Appointment cancelled successfully",
        data=AppointmentResponse.model_validate(appointment)
    )
