import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..models.appointment import Appointment, AppointmentStatus
from ..models.doctor import Doctor
from ..models.review import Review
from ..models.user import User
from ..schemas.common import Page, paginate
from ..schemas.review import ReviewCreate

logger = logging.getLogger(__name__)

def _with_details(query):
    return query.options(
        joinedload(Review.patient),
        joinedload(Review.doctor).joinedload(Doctor.user),
        joinedload(Review.appointment).joinedload(Appointment.time_slot),
    )

class ReviewService:
    def __init__(self, db: Session):
        self.db = db

    def submit(self, patient: User, data: ReviewCreate) -> Review:
        """Record the single review allowed for an approved appointment."""
        if not 1 <= data.rating <= 5:
            raise ValidationError("Invalid input. Rating must be between 1 and 5.")

        try:
            appointment = self.db.query(Appointment).filter(
                Appointment.id == data.appointment_id
            ).with_for_update().first()

            if appointment is None or appointment.patient_id != patient.id:
                raise NotFoundError("Appointment not found")

            if appointment.status != AppointmentStatus.APPROVED:
                raise ValidationError("Only approved appointments can be reviewed")

            existing = self.db.query(Review.id).filter(
                Review.appointment_id == appointment.id
            ).first()
            if appointment.is_reviewed or existing is not None:
                raise ConflictError("Review already exists for this appointment")

            review = Review(
                doctor_id=appointment.doctor_id,
                patient_id=patient.id,
                appointment_id=appointment.id,
                rating=data.rating,
                comment=data.comment,
            )
            self.db.add(review)
            self.db.flush()

            self._refresh_average_rating(appointment.doctor_id)
            appointment.is_reviewed = True
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("Review already exists for this appointment")
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(review)
        logger.info(
            f"Review {review.id} ({review.rating}/5) recorded for doctor {review.doctor_id} "
            f"from appointment {review.appointment_id}"
        )
        return review

    def _refresh_average_rating(self, doctor_id: int) -> float:
        mean = self.db.query(func.avg(Review.rating)).filter(
            Review.doctor_id == doctor_id
        ).scalar()
        average = round(float(mean), 2) if mean is not None else 0.0

        self.db.query(Doctor).filter(Doctor.id == doctor_id).update(
            {"average_rating": average}, synchronize_session="fetch"
        )
        return average

    def list_reviews(self, page: int = 1, limit: int = 10) -> Page:
        query = _with_details(self.db.query(Review)).order_by(
            Review.rating.desc(), Review.created_at.desc(), Review.id.desc()
        )
        return paginate(query, page, limit)

    def list_doctor_reviews(self, doctor_id: int, page: int = 1, limit: int = 10) -> Page:
        if self.db.get(Doctor, doctor_id) is None:
            raise NotFoundError("Doctor not found")

        query = _with_details(self.db.query(Review)).filter(
            Review.doctor_id == doctor_id
        ).order_by(Review.created_at.desc(), Review.id.desc())
        return paginate(query, page, limit)
