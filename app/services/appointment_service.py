import logging
from datetime import date
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import ConflictError, NotFoundError
from ..core.security import UserRole
from ..models.appointment import Appointment, AppointmentStatus
from ..models.doctor import Doctor
from ..models.time_slot import TimeSlot
from ..models.user import User
from ..schemas.appointment import AppointmentCreate
from ..schemas.common import Page, paginate
from .notification_service import (
    NotificationKind, Notifier, appointment_context, send_safely
)
from .slot_catalog import list_time_slots

logger = logging.getLogger(__name__)

def _with_details(query):
    return query.options(
        joinedload(Appointment.doctor).joinedload(Doctor.user),
        joinedload(Appointment.patient),
        joinedload(Appointment.time_slot),
    )

class AppointmentService:
    def __init__(self, db: Session, notifier: Optional[Notifier] = None):
        self.db = db
        self.notifier = notifier

    def get_available_slots(self, doctor_id: int, on_date: date) -> List[TimeSlot]:
        """Slot catalog minus slots already approved for this doctor and date.

        The result is a snapshot; nothing is locked.
        """
        if self.db.get(Doctor, doctor_id) is None:
            raise NotFoundError("Doctor not found")

        taken = {
            slot_id for (slot_id,) in self.db.query(Appointment.time_slot_id).filter(
                Appointment.doctor_id == doctor_id,
                Appointment.appointment_date == on_date,
                Appointment.status == AppointmentStatus.APPROVED,
            )
        }
        return [slot for slot in list_time_slots(self.db) if slot.id not in taken]

    def create_appointment(self, patient: User, data: AppointmentCreate) -> Appointment:
        """Record a pending appointment request.

        Availability is not checked here; exclusivity is enforced when an
        admin approves the request.
        """
        try:
            doctor = self.db.get(Doctor, data.doctor_id)
            slot = self.db.get(TimeSlot, data.time_slot_id)
            if doctor is None or slot is None:
                raise NotFoundError("Doctor or time slot not found")

            appointment = Appointment(
                doctor_id=doctor.id,
                patient_id=patient.id,
                appointment_date=data.appointment_date,
                time_slot_id=slot.id,
                consultation_type=data.consultation_type,
                patient_age=data.patient_age,
                patient_gender=data.patient_gender,
                health_info=data.health_info,
                status=AppointmentStatus.PENDING,
                is_reviewed=False,
            )
            self.db.add(appointment)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(appointment)
        logger.info(
            f"Appointment {appointment.id} requested by patient {patient.id} "
            f"for doctor {doctor.id} on {appointment.appointment_date} slot {slot.id}"
        )

        if self.notifier is not None:
            send_safely(
                self.notifier,
                NotificationKind.BOOKED,
                patient.email,
                appointment_context(appointment),
            )
        return appointment

    def list_patient_appointments(
        self,
        patient: User,
        status: Optional[AppointmentStatus] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Page:
        query = _with_details(self.db.query(Appointment)).join(
            TimeSlot, Appointment.time_slot_id == TimeSlot.id
        ).filter(Appointment.patient_id == patient.id)

        if status is not None:
            query = query.filter(Appointment.status == status)

        query = query.order_by(
            Appointment.appointment_date.desc(), TimeSlot.start_time.desc()
        )
        return paginate(query, page, limit)

    def list_pending(self, page: int = 1, limit: int = 10) -> Page:
        query = _with_details(self.db.query(Appointment)).filter(
            Appointment.status == AppointmentStatus.PENDING
        ).order_by(Appointment.id.asc())
        return paginate(query, page, limit)

    def get_appointment(self, user: User, appointment_id: int) -> Appointment:
        appointment = _with_details(self.db.query(Appointment)).filter(
            Appointment.id == appointment_id
        ).first()

        if appointment is None or not self._can_view(user, appointment):
            raise NotFoundError("Appointment not found or unauthorized")
        return appointment

    @staticmethod
    def _can_view(user: User, appointment: Appointment) -> bool:
        role = UserRole(user.role)
        if role is UserRole.ADMIN:
            return True
        if role is UserRole.PATIENT:
            return appointment.patient_id == user.id
        if role is UserRole.DOCTOR:
            return appointment.doctor is not None and appointment.doctor.user_id == user.id
        raise ValueError(f"Unhandled role: {role}")

    def cancel_appointment(self, user: User, appointment_id: int) -> Appointment:
        """Cancel an approved appointment, releasing its slot."""
        try:
            appointment = self.db.query(Appointment).filter(
                Appointment.id == appointment_id
            ).with_for_update().first()

            if appointment is None:
                raise NotFoundError("Appointment not found")

            role = UserRole(user.role)
            if role is not UserRole.ADMIN and appointment.patient_id != user.id:
                raise NotFoundError("Appointment not found or unauthorized")

            if appointment.status != AppointmentStatus.APPROVED:
                raise ConflictError(
                    f"Only approved appointments can be cancelled (current status: {appointment.status.value})"
                )

            appointment.status = AppointmentStatus.CANCELLED
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(appointment)
        logger.info(f"Appointment {appointment.id} cancelled by user {user.id}")
        return appointment
