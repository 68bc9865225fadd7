from .user import User
from .doctor import Doctor
from .time_slot import TimeSlot
from .appointment import Appointment, AppointmentStatus, ConsultationType, Gender
from .review import Review

__all__ = [
    "User",
    "Doctor",
    "TimeSlot",
    "Appointment",
    "AppointmentStatus",
    "ConsultationType",
    "Gender",
    "Review",
]
