import logging
from typing import Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ..core.config import settings
from ..core.exceptions import ConflictError, NotFoundError
from ..core.security import UserRole, get_password_hash
from ..models.doctor import Doctor
from ..models.review import Review
from ..models.user import User
from ..schemas.common import Page, paginate
from ..schemas.doctor import DoctorCreate

logger = logging.getLogger(__name__)

class DoctorService:
    def __init__(self, db: Session):
        self.db = db

    def create_doctor(self, data: DoctorCreate) -> Doctor:
        """Onboard a doctor: the login account and the profile in one transaction."""
        try:
            existing_user = self.db.query(User.id).filter(
                User.email == data.email
            ).first()
            if existing_user:
                raise ConflictError("Email already exists")

            user = User(
                email=data.email,
                name=data.name,
                password_hash=get_password_hash(data.password) if data.password else None,
                role=UserRole.DOCTOR,
                is_active=True,
            )
            self.db.add(user)
            self.db.flush()

            doctor = Doctor(
                user_id=user.id,
                specialty=data.specialty,
                experience=data.experience,
                education=data.education,
                bio=data.bio,
                consultation_fee=data.consultation_fee,
                location=data.location,
                languages=data.languages,
                photo_path=data.photo_url or settings.DEFAULT_DOCTOR_IMAGE,
                gender=data.gender.value,
                average_rating=0,
            )
            self.db.add(doctor)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(doctor)
        logger.info(f"Doctor {doctor.id} onboarded for user {user.id} ({data.specialty})")
        return doctor

    def get_doctor(self, doctor_id: int) -> Tuple[Doctor, int]:
        """Doctor profile with the number of reviews received."""
        doctor = self.db.query(Doctor).options(
            joinedload(Doctor.user)
        ).filter(Doctor.id == doctor_id).first()
        if doctor is None:
            raise NotFoundError("Doctor not found")

        total_reviews = self.db.query(func.count(Review.id)).filter(
            Review.doctor_id == doctor_id
        ).scalar()
        return doctor, total_reviews

    def filter_doctors(
        self,
        name: Optional[str] = None,
        gender: Optional[str] = None,
        specialty: Optional[str] = None,
        experience: Optional[int] = None,
        max_experience: Optional[int] = None,
        rating: Optional[float] = None,
        page: int = 1,
        limit: int = 6,
    ) -> Page:
        query = self.db.query(Doctor).join(User, Doctor.user_id == User.id).options(
            joinedload(Doctor.user)
        )

        if name:
            query = query.filter(User.name.ilike(f"%{name}%"))
        if gender:
            query = query.filter(Doctor.gender == gender.lower())
        if specialty:
            query = query.filter(Doctor.specialty.ilike(f"%{specialty}%"))
        if experience is not None:
            query = query.filter(Doctor.experience >= experience)
        if max_experience is not None:
            query = query.filter(Doctor.experience <= max_experience)
        if rating is not None:
            # Rating buckets are half-open: 4 matches 4.00 up to but excluding 5.00
            query = query.filter(
                Doctor.average_rating >= rating,
                Doctor.average_rating < rating + 1,
            )

        query = query.order_by(Doctor.experience.desc(), Doctor.id.asc())
        return paginate(query, page, limit)

    def set_user_active(self, user_id: int, is_active: bool) -> User:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")

        user.is_active = is_active
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"User {user_id} {'activated' if is_active else 'deactivated'}")
        return user
