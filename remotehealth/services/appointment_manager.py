"""
Appointment lifecycle: request, approve, reject, reschedule.

Every appointment occupies a fixed window of `duration_minutes` starting at
`scheduled_at`. Two appointments of the same doctor conflict when their windows
overlap and the existing one is still Pending or Approved. Windows are
half-open, so back-to-back slots never conflict.
"""
from datetime import datetime, timedelta
import logging

from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from remotehealth.errors import Conflict, NotFound, TransientIOError, ValidationError
from remotehealth.models import Appointment
from remotehealth.models.appointments_db import ACTIVE_STATUSES, APPROVED, PENDING, REJECTED
from remotehealth.services.clinic_service import require_doctor, require_patient
from remotehealth.services.db_context import db_context


logger = logging.getLogger("appointments")

POLICY_LOG = "log"
POLICY_RAISE = "raise"
DEFAULT_DURATION_MINUTES = 30


def windows_overlap(start_a: datetime, start_b: datetime, duration_minutes: int = DEFAULT_DURATION_MINUTES) -> bool:
    length = timedelta(minutes=duration_minutes)
    return start_a < start_b + length and start_a + length > start_b


def find_conflict(candidate, existing, excluded=None, duration_minutes: int = DEFAULT_DURATION_MINUTES):
    """Return the first appointment in `existing` that blocks `candidate`, or None."""
    if candidate.doctor_id is None or candidate.scheduled_at is None:
        return None
    excluded_id = getattr(excluded, "id", None)
    for appt in existing:
        if excluded_id is not None and appt.id == excluded_id:
            continue
        if appt.status not in ACTIVE_STATUSES or appt.scheduled_at is None:
            continue
        if windows_overlap(candidate.scheduled_at, appt.scheduled_at, duration_minutes):
            return appt
    return None


class AppointmentManager:
    """
    `conflict_policy` decides what request/reschedule do on a conflict:
    "log" drops the change with a log line and returns None, "raise" raises
    Conflict. Approve always raises.
    """

    def __init__(self, reminders=None, duration_minutes: int = DEFAULT_DURATION_MINUTES,
                 conflict_policy: str = POLICY_LOG):
        if conflict_policy not in (POLICY_LOG, POLICY_RAISE):
            raise ValueError(f"Unknown conflict policy: {conflict_policy}")
        self.reminders = reminders
        self.duration_minutes = duration_minutes
        self.conflict_policy = conflict_policy

    # -------------------------------
    # 🔍 QUERIES
    # -------------------------------

    def get(self, appointment_id: int) -> Appointment:
        with db_context():
            appt = db.session.get(Appointment, appointment_id)
        if appt is None:
            raise NotFound(f"Appointment {appointment_id} not found", appointment_id=appointment_id)
        return appt

    def for_doctor(self, doctor_id: str, status: str | None = None):
        try:
            with db_context():
                query = Appointment.query.filter(Appointment.doctor_id == doctor_id)
                if status:
                    query = query.filter(Appointment.status == status)
                return query.order_by(Appointment.scheduled_at.asc()).all()
        except Exception as e:
            logger.exception(f"[for_doctor] Failed for doctor_id={doctor_id}: {e}")
            return []

    def for_patient(self, patient_id: str):
        try:
            with db_context():
                return (
                    Appointment.query
                    .filter(Appointment.patient_id == patient_id)
                    .order_by(Appointment.scheduled_at.asc())
                    .all()
                )
        except Exception as e:
            logger.exception(f"[for_patient] Failed for patient_id={patient_id}: {e}")
            return []

    def has_conflict(self, candidate, excluded=None) -> bool:
        if candidate.doctor_id is None:
            return False
        existing = self.for_doctor(candidate.doctor_id)
        return find_conflict(candidate, existing, excluded, self.duration_minutes) is not None

    # -------------------------------
    # 📅 LIFECYCLE
    # -------------------------------

    def request(self, patient_id: str | None, doctor_id: str | None, scheduled_at: datetime):
        """Book a Pending appointment. Returns None when dropped on conflict under the log policy."""
        if not doctor_id or not patient_id:
            raise ValidationError("Appointment must have both doctor and patient")
        patient = require_patient(patient_id)
        doctor = require_doctor(doctor_id)

        candidate = Appointment(patient_id=patient.id, doctor_id=doctor.id, scheduled_at=scheduled_at)
        if self.has_conflict(candidate):
            return self._on_conflict("request", candidate)

        candidate.status = PENDING
        self._save(candidate, "request")
        logger.info(f"[request] Appointment requested for {patient.name} with Dr. {doctor.name} at {scheduled_at}")
        return candidate

    def approve(self, appointment_id: int, scheduled_at: datetime):
        appt = self.get(appointment_id)
        candidate = Appointment(patient_id=appt.patient_id, doctor_id=appt.doctor_id, scheduled_at=scheduled_at)
        if self.has_conflict(candidate, excluded=appt):
            logger.error(f"[approve] Time slot not available for appointment {appt.id} at {scheduled_at}")
            raise Conflict("Time slot not available", appointment_id=appt.id, scheduled_at=scheduled_at.isoformat())

        appt.scheduled_at = scheduled_at
        appt.status = APPROVED
        self._save(appt, "approve")
        logger.info(f"[approve] Appointment {appt.id} approved for {appt.patient.name}")

        if self.reminders is not None:
            self.reminders.send_appointment_approval_notification(appt)
            self.reminders.send_appointment_reminders(appt.patient)
        return appt

    def reject(self, appointment_id: int):
        appt = self.get(appointment_id)
        appt.status = REJECTED
        self._save(appt, "reject")
        logger.info(f"[reject] Appointment {appt.id} rejected for {appt.patient.name}")
        return appt

    def reschedule(self, appointment_id: int, scheduled_at: datetime):
        """Move an appointment; its status is left as it was."""
        appt = self.get(appointment_id)
        candidate = Appointment(patient_id=appt.patient_id, doctor_id=appt.doctor_id, scheduled_at=scheduled_at)
        if self.has_conflict(candidate, excluded=appt):
            return self._on_conflict("reschedule", candidate)

        appt.scheduled_at = scheduled_at
        self._save(appt, "reschedule")
        logger.info(f"[reschedule] Appointment {appt.id} rescheduled to {scheduled_at}")
        return appt

    def clean_invalid(self) -> int:
        """Delete rows that lost their doctor or time. Run at start-up."""
        try:
            with db_context():
                removed = (
                    Appointment.query
                    .filter((Appointment.doctor_id.is_(None)) | (Appointment.scheduled_at.is_(None)))
                    .delete(synchronize_session=False)
                )
                db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.exception(f"[clean_invalid] Failed: {e}")
            return 0
        if removed:
            logger.info(f"[clean_invalid] Removed {removed} invalid appointments")
        return removed

    # -------------------------------
    # helpers
    # -------------------------------

    def _on_conflict(self, action: str, candidate: Appointment):
        logger.error(
            f"[{action}] Appointment conflict detected for doctor={candidate.doctor_id} at {candidate.scheduled_at}"
        )
        if self.conflict_policy == POLICY_RAISE:
            raise Conflict(
                "Appointment conflict detected",
                doctor_id=candidate.doctor_id,
                scheduled_at=candidate.scheduled_at.isoformat(),
            )
        return None

    def _save(self, appt: Appointment, action: str):
        try:
            with db_context():
                db.session.add(appt)
                db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.exception(f"[{action}] Failed to persist appointment: {e}")
            raise TransientIOError(f"Could not save appointment ({action})") from e
