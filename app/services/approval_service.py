"""
Admin decisions on appointment requests.

An approval locks every appointment row of the slot tuple
(doctor, date, time slot) before checking for an existing approval, so two
concurrent approvals for the same tuple are serialized: the second one to get
the lock sees the first one's committed approval and fails with a conflict.
The partial unique index on approved appointments backs this up at the store
level; a violation there is reported as the same conflict.

The decision itself is written with a conditional UPDATE that only matches a
row still pending, so a rejection can never overwrite a concurrent approval.

Competing pending requests are rejected by a single bulk UPDATE in the same
transaction. Patients are notified only after commit.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy import func, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..models.appointment import Appointment, AppointmentStatus
from ..models.doctor import Doctor
from .notification_service import (
    NotificationKind, Notifier, appointment_context, send_safely
)

logger = logging.getLogger(__name__)

DECISIONS = (AppointmentStatus.APPROVED, AppointmentStatus.REJECTED)

@dataclass
class DecisionResult:
    appointment: Appointment
    rejected_ids: List[int] = field(default_factory=list)

@dataclass
class _Outbound:
    kind: NotificationKind
    email: Optional[str]
    context: Dict

class ApprovalService:
    def __init__(self, db: Session, notifier: Optional[Notifier] = None):
        self.db = db
        self.notifier = notifier

    def decide(self, appointment_id: int, decision: AppointmentStatus) -> DecisionResult:
        """Move a pending request to approved or rejected."""
        if decision not in DECISIONS:
            raise ValidationError('Invalid status. Must be either "approved" or "rejected"')
        decision = AppointmentStatus(decision)

        try:
            target = self._load(appointment_id)

            if decision == AppointmentStatus.APPROVED:
                self._lock_slot_tuple(target)
                winner = self._approved_peer(target)
                if winner is not None:
                    raise self._slot_taken(winner)

            if target.status != AppointmentStatus.PENDING:
                raise ConflictError(
                    f"Appointment request has already been {target.status.value}"
                )

            self._write_decision(target, decision)

            rejected_ids = []
            if decision == AppointmentStatus.APPROVED:
                rejected_ids = self._reject_competitors(target)

            outbound = self._outbound(target, decision, rejected_ids)
            self.db.commit()
        except IntegrityError:
            # Another approval for the same tuple committed first
            self.db.rollback()
            winner = self._committed_winner(appointment_id)
            logger.warning(f"Approval of appointment {appointment_id} lost a race")
            if winner is not None:
                raise self._slot_taken(winner)
            raise ConflictError("This time slot is already booked.")
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(target)
        logger.info(
            f"Appointment {target.id} {decision.value}"
            + (f"; cascaded rejection to {rejected_ids}" if rejected_ids else "")
        )

        if self.notifier is not None:
            for message in outbound:
                send_safely(self.notifier, message.kind, message.email, message.context)

        return DecisionResult(appointment=target, rejected_ids=rejected_ids)

    def _load(self, appointment_id: int) -> Appointment:
        target = self.db.query(Appointment).options(
            joinedload(Appointment.patient),
            joinedload(Appointment.time_slot),
            joinedload(Appointment.doctor).joinedload(Doctor.user),
        ).filter(Appointment.id == appointment_id).first()
        if target is None:
            raise NotFoundError("Appointment not found")
        return target

    def _write_decision(self, target: Appointment, decision: AppointmentStatus) -> None:
        """Apply the decision only if the row is still pending in the store."""
        result = self.db.execute(
            update(Appointment)
            .where(
                Appointment.id == target.id,
                Appointment.status == AppointmentStatus.PENDING,
            )
            .values(status=decision, updated_at=func.now()),
            execution_options={"synchronize_session": False},
        )
        self.db.expire(target)
        if result.rowcount == 0:
            # Decided by a concurrent request after we loaded it
            raise ConflictError(
                f"Appointment request has already been {target.status.value}"
            )

    def _tuple_filter(self, appointment: Appointment):
        return (
            Appointment.doctor_id == appointment.doctor_id,
            Appointment.appointment_date == appointment.appointment_date,
            Appointment.time_slot_id == appointment.time_slot_id,
        )

    def _lock_slot_tuple(self, target: Appointment) -> None:
        # Ordered by id so concurrent lockers acquire rows in the same order
        self.db.query(Appointment.id).filter(
            *self._tuple_filter(target)
        ).order_by(Appointment.id).with_for_update().all()
        # Re-read the target now that it is locked
        self.db.refresh(target)

    def _approved_peer(self, target: Appointment) -> Optional[Appointment]:
        return self.db.query(Appointment).options(
            joinedload(Appointment.patient)
        ).filter(
            *self._tuple_filter(target),
            Appointment.id != target.id,
            Appointment.status == AppointmentStatus.APPROVED,
        ).first()

    def _committed_winner(self, appointment_id: int) -> Optional[Appointment]:
        target = self.db.get(Appointment, appointment_id)
        if target is None:
            return None
        return self._approved_peer(target)

    @staticmethod
    def _slot_taken(winner: Appointment) -> ConflictError:
        name = winner.patient.name if winner.patient else "another patient"
        return ConflictError(f"This time slot is already booked by {name}")

    def _reject_competitors(self, target: Appointment) -> List[int]:
        """Reject every other pending request on the tuple in one statement."""
        result = self.db.execute(
            update(Appointment)
            .where(
                *self._tuple_filter(target),
                Appointment.id != target.id,
                Appointment.status == AppointmentStatus.PENDING,
            )
            .values(status=AppointmentStatus.REJECTED, updated_at=func.now())
            .returning(Appointment.id),
            execution_options={"synchronize_session": False},
        )
        return sorted(row[0] for row in result)

    def _outbound(self, target: Appointment, decision: AppointmentStatus, rejected_ids: List[int]) -> List[_Outbound]:
        """Collect notification payloads while the rows are still readable."""
        kind = NotificationKind(decision.value)
        messages = [_Outbound(kind, target.patient.email if target.patient else None, appointment_context(target))]

        if rejected_ids:
            rejected = self.db.query(Appointment).options(
                joinedload(Appointment.patient),
                joinedload(Appointment.time_slot),
                joinedload(Appointment.doctor).joinedload(Doctor.user),
            ).filter(Appointment.id.in_(rejected_ids)).populate_existing().all()
            for appointment in rejected:
                messages.append(_Outbound(
                    NotificationKind.REJECTED,
                    appointment.patient.email if appointment.patient else None,
                    appointment_context(appointment),
                ))
        return messages
