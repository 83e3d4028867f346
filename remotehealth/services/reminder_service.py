from datetime import datetime, timedelta
import logging

import pytz

from remotehealth.errors import ClinicError
from remotehealth.models.appointments_db import APPROVED
from remotehealth.services.records_service import get_prescriptions


logger = logging.getLogger("reminders")


class ReminderService:
    """
    Patient-facing notifications. Every method logs and swallows delivery
    failures; a reminder that cannot be sent must not undo the action that
    triggered it.
    """

    def __init__(self, notifier, appointments=None, timezone: str = "UTC", reminder_hour: int = 9):
        self.notifier = notifier
        # Set after construction: the appointment manager and this service reference each other
        self.appointments = appointments
        try:
            self.tz = pytz.timezone(timezone)
        except pytz.UnknownTimeZoneError:
            logger.warning(f"Unknown clinic timezone {timezone!r}, falling back to UTC")
            self.tz = pytz.UTC
        self.reminder_hour = reminder_hour

    def now(self) -> datetime:
        """Clinic wall-clock time (naive, like stored appointment times)."""
        return datetime.now(self.tz).replace(tzinfo=None)

    def send_appointment_approval_notification(self, appointment):
        try:
            body = (
                "\n\nYour appointment has been approved:\n\n"
                f"Doctor: Dr. {appointment.doctor.name}\n"
                f"Date: {appointment.scheduled_at:%Y-%m-%d}\n"
                f"Time: {appointment.scheduled_at:%H:%M}\n\n"
                "You will receive reminders as the appointment date approaches."
            )
            self.notifier.send_notification(appointment.patient.email, "Appointment Approved\n" + body)
        except (ClinicError, AttributeError) as e:
            logger.error(f"[approval_notification] Error sending approval notification: {e}")

    def send_appointment_reminders(self, patient) -> int:
        """Email the patient about Approved appointments today or tomorrow. Returns how many were listed."""
        try:
            today = self.now().date()
            window = (today, today + timedelta(days=1))
            upcoming = [
                a for a in self.appointments.for_patient(patient.id)
                if a.status == APPROVED and a.scheduled_at and a.scheduled_at.date() in window
            ]
            if not upcoming:
                return 0
            self.notifier.send_notification(
                patient.email,
                "Upcoming Appointment Reminder\n" + self._appointment_body(patient, upcoming),
            )
            return len(upcoming)
        except (ClinicError, AttributeError) as e:
            logger.error(f"[appointment_reminders] Error sending appointment reminders: {e}")
            return 0

    def send_prescription_reminders(self, patient) -> int:
        """Only sends during the configured reminder hour."""
        try:
            if self.now().hour != self.reminder_hour:
                return 0
            prescriptions = get_prescriptions(patient.id)
            if not prescriptions:
                return 0
            self.notifier.send_notification(
                patient.email,
                "Medication Reminder\n" + self._prescription_body(patient, prescriptions),
            )
            return len(prescriptions)
        except (ClinicError, AttributeError) as e:
            logger.error(f"[prescription_reminders] Error sending prescription reminders: {e}")
            return 0

    def send_all_automatic_reminders(self, patient):
        self.send_prescription_reminders(patient)
        self.send_appointment_reminders(patient)

    def _appointment_body(self, patient, appointments) -> str:
        lines = [f"\n\nHello {patient.name},\n", "You have the following upcoming appointments:\n"]
        for appt in appointments:
            when = appt.scheduled_at.strftime("%A, %B %d at %I:%M %p")
            lines.append(f"- {when} with Dr. {appt.doctor.name}\n")
        lines.append("\nPlease arrive 15 minutes early.\n")
        return "\n".join(lines)

    def _prescription_body(self, patient, prescriptions) -> str:
        lines = [f"Hello {patient.name},\n", f"Medication Reminders for {self.now():%Y-%m-%d}:\n"]
        for p in prescriptions:
            lines.append(
                f"➔ {p.medication}\n"
                f"   Dosage: {p.dosage}\n"
                f"   Time: {p.schedule}\n"
                f"   Prescribed by: Dr. {p.prescribing_doctor}\n"
            )
        lines.append("\nHave a healthy day!")
        return "\n".join(lines)
