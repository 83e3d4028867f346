import smtplib
from datetime import datetime, timedelta

import pytest

from remotehealth.errors import EmailSendingError, ValidationError
from remotehealth.services.email_service import DEFAULT_SUBJECT, EmailNotifier
from remotehealth.services.reminder_service import ReminderService
from remotehealth.services.video_call import build_call_url, start_call


class FlakySMTP:
    """Fails `failures` times, then delivers."""
    failures = 0
    attempts = 0
    sent = []

    def __init__(self, host, port, timeout=None):
        FlakySMTP.attempts += 1
        if FlakySMTP.attempts <= FlakySMTP.failures:
            raise smtplib.SMTPConnectError(421, "try later")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, user, password):
        pass

    def sendmail(self, sender, recipients, message):
        FlakySMTP.sent.append((sender, recipients, message))


@pytest.fixture
def smtp(monkeypatch):
    FlakySMTP.failures = 0
    FlakySMTP.attempts = 0
    FlakySMTP.sent = []
    sleeps = []
    monkeypatch.setattr("remotehealth.services.email_service.smtplib.SMTP", FlakySMTP)
    monkeypatch.setattr("remotehealth.services.email_service.time.sleep", sleeps.append)
    FlakySMTP.sleeps = sleeps
    return FlakySMTP


def _notifier(**kwargs):
    return EmailNotifier("smtp.test", 587, "clinic@example.com", "pw", retry_delay=2, **kwargs)


def test_email_sent_first_try(smtp):
    _notifier().send_email("p@example.com", "Hello", "Body")
    assert smtp.attempts == 1
    assert smtp.sleeps == []
    assert smtp.sent[0][1] == ["p@example.com"]


def test_email_retries_with_fixed_delay(smtp):
    smtp.failures = 2
    _notifier().send_email("p@example.com", "Hello", "Body")
    assert smtp.attempts == 3
    assert smtp.sleeps == [2, 2]


def test_email_gives_up_after_three_attempts(smtp):
    smtp.failures = 5
    with pytest.raises(EmailSendingError):
        _notifier().send_email("p@example.com", "Hello", "Body")
    assert smtp.attempts == 3


def test_email_validates_recipient_and_subject(smtp):
    with pytest.raises(ValidationError):
        _notifier().send_email(" ", "Hello", "Body")
    with pytest.raises(ValidationError):
        _notifier().send_email("p@example.com", "", "Body")
    assert smtp.attempts == 0


def test_send_notification_uses_default_subject(smtp):
    _notifier().send_notification("p@example.com", "Ping")
    assert f"Subject: {DEFAULT_SUBJECT}" in smtp.sent[0][2]


class RecordingNotifier:
    def __init__(self):
        self.messages = []

    def send_notification(self, to, message):
        self.messages.append((to, message))


def test_appointment_reminders_only_cover_today_and_tomorrow(clinic, services):
    notifier = RecordingNotifier()
    reminders = ReminderService(notifier, appointments=services.appointments)
    now = reminders.now().replace(second=0, microsecond=0)

    soon = services.appointments.request("P001", "D001", now + timedelta(hours=1))
    services.appointments.approve(soon.id, soon.scheduled_at)
    later = services.appointments.request("P001", "D002", now + timedelta(days=5))
    services.appointments.approve(later.id, later.scheduled_at)
    services.appointments.request("P001", "D002", now + timedelta(hours=2))  # still Pending

    patient = soon.patient
    assert reminders.send_appointment_reminders(patient) == 1
    to, message = notifier.messages[-1]
    assert to == "zaynaqasim@gmail.com"
    assert message.startswith("Upcoming Appointment Reminder")
    assert "Dr. Naeem Ahmed" in message
    assert "Please arrive 15 minutes early." in message


def test_prescription_reminders_wait_for_reminder_hour(clinic, services):
    from remotehealth.services.clinic_service import get_patient_by_id
    from remotehealth.services.records_service import prescribe

    prescribe("P001", "Naeem Ahmed", "Metformin", "500mg", "Morning")
    notifier = RecordingNotifier()
    reminders = ReminderService(notifier, appointments=services.appointments)

    reminders.reminder_hour = (reminders.now().hour + 1) % 24
    patient = get_patient_by_id("P001")
    assert reminders.send_prescription_reminders(patient) == 0

    reminders.reminder_hour = reminders.now().hour
    assert reminders.send_prescription_reminders(patient) == 1
    assert "➔ Metformin" in notifier.messages[0][1]


def test_approval_notification_failure_is_swallowed(clinic, services):
    class Broken:
        def send_notification(self, to, message):
            raise EmailSendingError("down")

    reminders = ReminderService(Broken(), appointments=services.appointments)
    appt = services.appointments.request("P001", "D001", datetime(2030, 1, 1, 9))
    reminders.send_appointment_approval_notification(appt)


def test_unknown_timezone_falls_back_to_utc():
    import pytz
    assert ReminderService(RecordingNotifier(), timezone="Mars/Olympus").tz is pytz.UTC


# -------------------------------
# video call links
# -------------------------------

def test_call_url_is_deterministic():
    url = build_call_url("Dr. Naeem Ahmed", "Zayna Qasim")
    assert url == "https://meet.jit.si/health-drnaeemahmed-zaynaqasim"
    assert build_call_url("Dr. Naeem Ahmed", "Zayna Qasim") == url


def test_call_url_with_password():
    assert build_call_url("A", "B", "s3cret") == "https://meet.jit.si/health-a-b?password=s3cret"


def test_start_call_opens_browser(monkeypatch):
    opened = []
    monkeypatch.setattr("remotehealth.services.video_call.webbrowser.open", lambda url: opened.append(url) or True)

    url = start_call("Zayna Qasim", "Emergency Doctor")
    assert opened == [url]
    assert url.endswith("health-zaynaqasim-emergencydoctor")
