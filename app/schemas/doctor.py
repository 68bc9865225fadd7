from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from typing import List, Optional
from datetime import datetime

from ..models.appointment import Gender

class DoctorCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: Optional[str] = Field(None, min_length=8, max_length=72)
    specialty: str = Field(..., min_length=1, max_length=100)
    experience: Optional[int] = Field(None, ge=0, le=80)
    education: Optional[str] = None
    bio: Optional[str] = None
    consultation_fee: float = Field(..., ge=0)
    location: Optional[str] = None
    languages: Optional[List[str]] = None
    gender: Gender
    photo_url: Optional[str] = None

    @field_validator("gender", mode="before")
    @classmethod
    def normalise_gender(cls, value):
        return value.lower() if isinstance(value, str) else value

    @field_validator("languages")
    @classmethod
    def dedupe_languages(cls, value):
        if value is None:
            return value
        # Languages are a set; keep first-seen order
        return list(dict.fromkeys(lang.strip() for lang in value if lang.strip()))

class DoctorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    name: Optional[str] = None
    email: Optional[str] = None
    specialty: str
    experience: Optional[int] = None
    education: Optional[str] = None
    bio: Optional[str] = None
    consultation_fee: float
    location: Optional[str] = None
    languages: Optional[List[str]] = None
    photo_path: Optional[str] = None
    gender: str
    average_rating: float
    created_at: Optional[datetime] = None

class DoctorDetailResponse(DoctorResponse):
    total_reviews: int = 0
