from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...api.deps import get_admin_user
from ...core.database import get_db
from ...schemas.appointment import AppointmentDetailResponse, DecisionResponse
from ...schemas.auth import UserResponse, UserStatusUpdate
from ...schemas.common import ApiResponse
from ...schemas.doctor import DoctorCreate, DoctorResponse
from ...services.appointment_service import AppointmentService
from ...services.doctor_service import DoctorService
from .appointments import update_request_status

# Every admin route requires an admin token
router = APIRouter(
    prefix="/admin",
    tags=["Admin"],
    dependencies=[Depends(get_admin_user)]
)

@router.post("/doctors", response_model=ApiResponse[DoctorResponse], status_code=201)
def create_doctor(
    doctor_data: DoctorCreate,
    db: Session = Depends(get_db)
):
    """Onboard a doctor with a login account."""
    doctor = DoctorService(db).create_doctor(doctor_data)
    return ApiResponse(
        message="Doctor created successfully",
        data=DoctorResponse.model_validate(doctor)
    )

@router.get("/appointments/pending", response_model=ApiResponse[List[AppointmentDetailResponse]])
def list_pending_appointments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """Pending requests, oldest first."""
    result = AppointmentService(db).list_pending(page, limit)
    return ApiResponse(
        data=[AppointmentDetailResponse.from_appointment(a) for a in result.items],
        pagination=result.pagination()
    )

@router.patch("/users/{user_id}/status", response_model=ApiResponse[UserResponse])
def update_user_status(
    user_id: int,
    status_data: UserStatusUpdate,
    db: Session = Depends(get_db)
):
    """Activate or deactivate an account."""
    user = DoctorService(db).set_user_active(user_id, status_data.is_active)
    return ApiResponse(
        message=f"User {'activated' if status_data.is_active else 'deactivated'} successfully",
        data=UserResponse.model_validate(user)
    )

# Same decision endpoint as /appointments/{id}/request-status, under the admin prefix
router.add_api_route(
    "/appointments/{appointment_id}/request-status",
    update_request_status,
    methods=["PATCH"],
    response_model=ApiResponse[DecisionResponse],
)
