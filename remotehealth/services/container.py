"""The services each handler needs, built once per app instead of living in module globals."""
from dataclasses import dataclass

from flask import current_app

from remotehealth.services.appointment_manager import AppointmentManager
from remotehealth.services.email_service import EmailNotifier
from remotehealth.services.emergency_service import EmergencyMonitor
from remotehealth.services.reminder_service import ReminderService
from remotehealth.services.session_store import SessionStore, connect


@dataclass
class ClinicServices:
    appointments: AppointmentManager
    reminders: ReminderService
    emergencies: EmergencyMonitor
    email: EmailNotifier
    sessions: SessionStore
    video_call_base_url: str
    report_lines_per_page: int


def build_services(config, redis_client=None) -> ClinicServices:
    email = EmailNotifier.from_config(config)
    reminders = ReminderService(
        email,
        timezone=config["CLINIC_TIMEZONE"],
        reminder_hour=config["PRESCRIPTION_REMINDER_HOUR"],
    )
    appointments = AppointmentManager(
        reminders=reminders,
        duration_minutes=config["APPOINTMENT_DURATION_MINUTES"],
        conflict_policy=config["CONFLICT_POLICY"],
    )
    reminders.appointments = appointments

    sessions = SessionStore(
        redis_client if redis_client is not None else connect(config),
        ttl_sec=config["SESSION_TTL_SEC"],
    )
    return ClinicServices(
        appointments=appointments,
        reminders=reminders,
        emergencies=EmergencyMonitor(),
        email=email,
        sessions=sessions,
        video_call_base_url=config["VIDEO_CALL_BASE_URL"],
        report_lines_per_page=config["REPORT_LINES_PER_PAGE"],
    )


def get_services() -> ClinicServices:
    return current_app.extensions["clinic"]
