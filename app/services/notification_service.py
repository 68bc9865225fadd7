"""
Outbound appointment notifications.

``notify`` never blocks the caller: messages are handed to a small thread pool
and delivery errors are logged there. Callers still guard the call itself,
since enqueueing can fail too.
"""
import logging
import smtplib
from concurrent.futures import Future, ThreadPoolExecutor
from email.message import EmailMessage
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from ..core.config import settings

logger = logging.getLogger(__name__)

class NotificationKind(str, Enum):
    BOOKED = "booked"
    APPROVED = "approved"
    REJECTED = "rejected"

_SUBJECTS = {
    NotificationKind.BOOKED: "Appointment Request Confirmation",
    NotificationKind.APPROVED: "Appointment Approved - Confirmation",
    NotificationKind.REJECTED: "Appointment Request Rejected",
}

_BODIES = {
    NotificationKind.BOOKED: (
        "Your appointment request has been submitted successfully.\n"
        "Your request is pending approval from our admin team. "
        "You will receive another email once your appointment is approved."
    ),
    NotificationKind.APPROVED: (
        "Great news! Your appointment has been approved.\n"
        "Please arrive 15 minutes before your scheduled appointment time. "
        "If you need to reschedule or cancel, contact us at least 24 hours in advance."
    ),
    NotificationKind.REJECTED: (
        "We regret to inform you that your appointment request has been rejected.\n"
        "This may be due to the doctor's unavailability or the time slot already being booked. "
        "Please feel free to book another time or another doctor."
    ),
}

def render_message(kind: NotificationKind, context: Dict[str, Any]) -> Tuple[str, str]:
    """Subject and plain-text body for a notification."""
    kind = NotificationKind(kind)
    lines = [
        f"Dear {context.get('patient_name') or 'patient'},",
        "",
        _BODIES[kind],
        "",
        "Appointment details:",
        f"  Doctor: {context.get('doctor_name', '-')}",
        f"  Date: {context.get('appointment_date', '-')}",
        f"  Time: {context.get('start_time', '-')} - {context.get('end_time', '-')}",
    ]
    if context.get("consultation_type"):
        lines.append(f"  Consultation type: {context['consultation_type']}")
    lines += ["", "Best regards,", "MedCare Team"]
    return _SUBJECTS[kind], "\n".join(lines)

class Notifier:
    """Interface for the notification side channel."""

    def notify(self, kind: NotificationKind, recipient_email: str, context: Dict[str, Any]) -> None:
        raise NotImplementedError

class EmailNotifier(Notifier):
    def __init__(self, max_workers: int = 2):
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="notify")

    def notify(self, kind: NotificationKind, recipient_email: str, context: Dict[str, Any]) -> None:
        if not settings.NOTIFICATIONS_ENABLED or not recipient_email:
            return
        subject, body = render_message(kind, context)
        future = self._executor.submit(self._deliver, recipient_email, subject, body)
        future.add_done_callback(self._log_failure)

    def _deliver(self, recipient_email: str, subject: str, body: str) -> None:
        if not settings.SMTP_HOST:
            logger.info(f"SMTP not configured; skipping '{subject}' to {recipient_email}")
            return

        message = EmailMessage()
        message["From"] = settings.SMTP_FROM or settings.SMTP_USER
        message["To"] = recipient_email
        message["Subject"] = subject
        message.set_content(body)

        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
            smtp.starttls()
            if settings.SMTP_USER and settings.SMTP_PASSWORD:
                smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            smtp.send_message(message)
        logger.info(f"Sent '{subject}' to {recipient_email}")

    @staticmethod
    def _log_failure(future: Future) -> None:
        error = future.exception()
        if error is not None:
            logger.error(f"Error sending notification email: {error}")

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)

def send_safely(notifier: Notifier, kind: NotificationKind, recipient_email: Optional[str], context: Dict[str, Any]) -> None:
    """Fire-and-forget: failures are logged and never reach the caller."""
    if not recipient_email:
        return
    try:
        notifier.notify(kind, recipient_email, context)
    except Exception:
        logger.exception(f"Error queueing {NotificationKind(kind).value} notification for {recipient_email}")

def appointment_context(appointment) -> Dict[str, Any]:
    """Template values for an appointment; read while the row is still loaded."""
    slot = appointment.time_slot
    doctor = appointment.doctor
    return {
        "appointment_id": appointment.id,
        "patient_name": appointment.patient.name if appointment.patient else None,
        "doctor_name": doctor.name if doctor else None,
        "appointment_date": appointment.appointment_date.isoformat(),
        "start_time": slot.start_time.strftime("%H:%M") if slot else None,
        "end_time": slot.end_time.strftime("%H:%M") if slot else None,
        "consultation_type": appointment.consultation_type.value if appointment.consultation_type else None,
    }

_default_notifier: Optional[EmailNotifier] = None

def get_notifier() -> Notifier:
    """Process-wide email notifier (FastAPI dependency)."""
    global _default_notifier
    if _default_notifier is None:
        _default_notifier = EmailNotifier()
    return _default_notifier

def shutdown_notifier() -> None:
    global _default_notifier
    if _default_notifier is not None:
        _default_notifier.shutdown()
        _default_notifier = None
