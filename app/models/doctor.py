from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Float, Numeric, Text, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base

class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=False)

    # Professional information
    specialty = Column(String(100), nullable=False, index=True)
    experience = Column(Integer, nullable=True)  # years
    education = Column(String(255), nullable=True)
    bio = Column(Text, nullable=True)
    consultation_fee = Column(Numeric(10, 2), nullable=False)
    location = Column(String(255), nullable=True)
    languages = Column(JSON, nullable=True)
    photo_path = Column(String(512), nullable=True)
    gender = Column(String(20), nullable=False)

    # Cached from reviews; rewritten on every new review
    average_rating = Column(Float, nullable=False, default=0)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="doctor")
    appointments = relationship("Appointment", back_populates="doctor")
    reviews = relationship("Review", back_populates="doctor")

    @property
    def name(self):
        return self.user.name if self.user else None

    @property
    def email(self):
        return self.user.email if self.user else None

    def __repr__(self):
        return f"<Doctor(id={self.id}, user_id={self.user_id}, specialty='{self.specialty}')>"
