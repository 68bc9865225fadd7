from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...schemas.common import ApiResponse
from ...schemas.doctor import DoctorDetailResponse, DoctorResponse
from ...services.doctor_service import DoctorService

router = APIRouter(prefix="/doctors", tags=["Doctors"])

@router.get("/filter", response_model=ApiResponse[List[DoctorResponse]])
def filter_doctors(
    name: Optional[str] = None,
    gender: Optional[str] = None,
    specialty: Optional[str] = None,
    experience: Optional[int] = Query(None, ge=0),
    max_experience: Optional[int] = Query(None, ge=0),
    rating: Optional[float] = Query(None, ge=0, le=5),
    page: int = Query(1, ge=1),
    limit: int = Query(6, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """Search doctors, most experienced first."""
    result = DoctorService(db).filter_doctors(
        name=name,
        gender=gender,
        specialty=specialty,
        experience=experience,
        max_experience=max_experience,
        rating=rating,
        page=page,
        limit=limit,
    )
    return ApiResponse(
        data=[DoctorResponse.model_validate(d) for d in result.items],
        pagination=result.pagination()
    )

@router.get("/{doctor_id}", response_model=ApiResponse[DoctorDetailResponse])
def get_doctor(doctor_id: int, db: Session = Depends(get_db)):
    doctor, total_reviews = DoctorService(db).get_doctor(doctor_id)
    return ApiResponse(data=DoctorDetailResponse(
        **DoctorResponse.model_validate(doctor).model_dump(),
        total_reviews=total_reviews
    ))
