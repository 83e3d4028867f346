from datetime import datetime, timedelta

import pytest

from extensions import db
from remotehealth.errors import Conflict, NotFound, ValidationError
from remotehealth.models import Appointment
from remotehealth.models.appointments_db import APPROVED, PENDING, REJECTED
from remotehealth.services.appointment_manager import (
    POLICY_RAISE,
    AppointmentManager,
    find_conflict,
    windows_overlap,
)

TEN = datetime(2025, 6, 1, 10, 0)


def _appt(start, status=PENDING, appt_id=None, doctor_id="D001"):
    return Appointment(id=appt_id, doctor_id=doctor_id, patient_id="P001", scheduled_at=start, status=status)


# -------------------------------
# pure overlap rules
# -------------------------------

@pytest.mark.parametrize("minutes, expected", [
    (0, True),
    (15, True),
    (29, True),
    (30, False),
    (45, False),
    (-29, True),
    (-30, False),
])
def test_windows_overlap_is_half_open(minutes, expected):
    assert windows_overlap(TEN, TEN + timedelta(minutes=minutes)) is expected
    # symmetric
    assert windows_overlap(TEN + timedelta(minutes=minutes), TEN) is expected


def test_rejected_appointments_never_block():
    existing = [_appt(TEN, status=REJECTED, appt_id=1)]
    assert find_conflict(_appt(TEN), existing) is None


def test_approved_and_pending_block():
    assert find_conflict(_appt(TEN + timedelta(minutes=10)), [_appt(TEN, APPROVED, 1)]) is not None
    assert find_conflict(_appt(TEN + timedelta(minutes=10)), [_appt(TEN, PENDING, 1)]) is not None


def test_excluded_appointment_is_skipped():
    own = _appt(TEN, APPROVED, appt_id=7)
    assert find_conflict(_appt(TEN + timedelta(minutes=5)), [own], excluded=own) is None


def test_candidate_without_doctor_never_conflicts():
    assert find_conflict(_appt(TEN, doctor_id=None), [_appt(TEN, APPROVED, 1)]) is None


# -------------------------------
# manager against the database
# -------------------------------

def test_scenario_request_conflicts_and_back_to_back(clinic, services):
    manager = services.appointments
    first = manager.request("P001", "D001", TEN)
    assert first is not None and first.status == PENDING

    overlapping = Appointment(patient_id="P002", doctor_id="D001", scheduled_at=TEN + timedelta(minutes=15))
    assert manager.has_conflict(overlapping) is True

    back_to_back = Appointment(patient_id="P002", doctor_id="D001", scheduled_at=TEN + timedelta(minutes=30))
    assert manager.has_conflict(back_to_back) is False


def test_request_conflict_is_dropped_under_log_policy(clinic, services):
    manager = services.appointments
    manager.request("P001", "D001", TEN)

    # current behaviour: the conflicting request is silently dropped
    assert manager.request("P002", "D001", TEN + timedelta(minutes=15)) is None
    assert Appointment.query.count() == 1


def test_request_conflict_raises_under_raise_policy(clinic, services):
    manager = AppointmentManager(conflict_policy=POLICY_RAISE)
    manager.request("P001", "D001", TEN)

    with pytest.raises(Conflict):
        manager.request("P002", "D001", TEN + timedelta(minutes=15))


def test_other_doctor_is_free_at_same_time(clinic, services):
    manager = services.appointments
    manager.request("P001", "D001", TEN)
    assert manager.request("P002", "D002", TEN) is not None


def test_request_requires_doctor_and_patient(clinic, services):
    with pytest.raises(ValidationError):
        services.appointments.request("P001", None, TEN)
    with pytest.raises(ValidationError):
        services.appointments.request(None, "D001", TEN)
    with pytest.raises(NotFound):
        services.appointments.request("P999", "D001", TEN)


def test_approve_excludes_own_slot(clinic, services):
    manager = services.appointments
    appt = manager.request("P001", "D001", TEN)

    approved = manager.approve(appt.id, TEN + timedelta(minutes=10))
    assert approved.status == APPROVED
    assert approved.scheduled_at == TEN + timedelta(minutes=10)


def test_approve_conflict_raises(clinic, services):
    manager = services.appointments
    manager.request("P001", "D001", TEN)
    other = manager.request("P002", "D001", TEN + timedelta(hours=2))

    # unlike request/reschedule, approve always fails loudly
    with pytest.raises(Conflict):
        manager.approve(other.id, TEN + timedelta(minutes=20))
    assert db.session.get(Appointment, other.id).status == PENDING


def test_approve_sends_notifications(clinic, services, monkeypatch):
    sent = []
    monkeypatch.setattr(services.reminders, "send_appointment_approval_notification", lambda a: sent.append(("approval", a.id)))
    monkeypatch.setattr(services.reminders, "send_appointment_reminders", lambda p: sent.append(("reminders", p.id)))

    appt = services.appointments.request("P001", "D001", TEN)
    services.appointments.approve(appt.id, TEN)
    assert sent == [("approval", appt.id), ("reminders", "P001")]


def test_approve_survives_notification_failure(clinic, services, monkeypatch):
    def boom(*args, **kwargs):
        raise OSError("smtp down")

    monkeypatch.setattr(services.email, "enabled", True)
    monkeypatch.setattr("remotehealth.services.email_service.smtplib.SMTP", boom)
    monkeypatch.setattr("remotehealth.services.email_service.time.sleep", lambda s: None)

    appt = services.appointments.request("P001", "D001", TEN)
    assert services.appointments.approve(appt.id, TEN).status == APPROVED


def test_reject_frees_the_slot(clinic, services):
    manager = services.appointments
    appt = manager.request("P001", "D001", TEN)
    manager.reject(appt.id)

    assert db.session.get(Appointment, appt.id).status == REJECTED
    assert manager.request("P002", "D001", TEN) is not None


def test_reschedule_updates_only_that_appointment(clinic, services):
    manager = services.appointments
    first = manager.request("P001", "D001", TEN)
    second = manager.request("P001", "D002", TEN + timedelta(days=1))

    moved = manager.reschedule(first.id, TEN + timedelta(hours=3))
    assert moved.scheduled_at == TEN + timedelta(hours=3)
    assert moved.status == PENDING
    # the patient's other appointment is untouched
    assert db.session.get(Appointment, second.id).scheduled_at == TEN + timedelta(days=1)
    assert Appointment.query.filter_by(patient_id="P001").count() == 2


def test_reschedule_within_own_window_is_allowed(clinic, services):
    manager = services.appointments
    appt = manager.request("P001", "D001", TEN)

    moved = manager.reschedule(appt.id, TEN + timedelta(minutes=10))
    assert moved is not None
    assert db.session.get(Appointment, appt.id).scheduled_at == TEN + timedelta(minutes=10)


def test_reschedule_conflict_is_logged_not_raised(clinic, services):
    manager = services.appointments
    manager.request("P001", "D001", TEN)
    other = manager.request("P002", "D001", TEN + timedelta(hours=1))

    assert manager.reschedule(other.id, TEN + timedelta(minutes=10)) is None
    assert db.session.get(Appointment, other.id).scheduled_at == TEN + timedelta(hours=1)


def test_clean_invalid_removes_rows_without_doctor(clinic, services):
    services.appointments.request("P001", "D001", TEN)
    db.session.add(Appointment(patient_id="P001", doctor_id=None, scheduled_at=TEN, status=PENDING))
    db.session.commit()

    assert services.appointments.clean_invalid() == 1
    assert Appointment.query.count() == 1
