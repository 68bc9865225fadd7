from typing import List

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...api.deps import get_patient_user
from ...core.database import get_db
from ...models.user import User
from ...schemas.common import ApiResponse
from ...schemas.review import ReviewCreate, ReviewDetailResponse, ReviewResponse
from ...services.review_service import ReviewService

router = APIRouter(prefix="/reviews", tags=["Reviews"])

@router.post("", response_model=ApiResponse[ReviewResponse], status_code=201)
def create_review(
    review_data: ReviewCreate,
    current_user: User = Depends(get_patient_user),
    db: Session = Depends(get_db)
):
    """Review an approved appointment; one review per appointment."""
    review = ReviewService(db).submit(current_user, review_data)
    return ApiResponse(data=ReviewResponse.model_validate(review))

@router.get("", response_model=ApiResponse[List[ReviewDetailResponse]])
def list_reviews(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    result = ReviewService(db).list_reviews(page, limit)
    return ApiResponse(
        data=[ReviewDetailResponse.from_review(r) for r in result.items],
        pagination=result.pagination()
    )

@router.get("/doctor/{doctor_id}", response_model=ApiResponse[List[ReviewDetailResponse]])
def list_doctor_reviews(
    doctor_id: int,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    result = ReviewService(db).list_doctor_reviews(doctor_id, page, limit)
    return ApiResponse(
        data=[ReviewDetailResponse.from_review(r) for r in result.items],
        pagination=result.pagination()
    )
