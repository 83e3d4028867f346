import pytest

from extensions import db
from remotehealth.errors import ValidationError
from remotehealth.models import Doctor, Patient
from remotehealth.models.credentials import is_hashed
from remotehealth.services.auth_service import (
    authenticate,
    get_pending_password_reset_requests,
    resolve_password_reset_request,
    submit_password_reset_request,
)


def test_passwords_are_stored_hashed(clinic):
    doctor = db.session.get(Doctor, "D001")
    assert doctor.password != "doc1"
    assert is_hashed(doctor.password)


@pytest.mark.parametrize("role, username, password", [
    ("doctor", "D001", "doc1"),
    ("doctor", " D001 ", " doc1 "),
    ("patient", "P001", "patient12345"),
    ("patient", "p001", "patient12345"),
    ("admin", "admin", "admin123"),
    ("admin", "ADMIN", "admin123"),
])
def test_exact_credentials_succeed(clinic, role, username, password):
    assert authenticate(role, username, password) is not None


@pytest.mark.parametrize("role, username, password", [
    ("doctor", "D001", "doc2"),
    ("doctor", "D001", "Doc1"),
    ("doctor", "D001", "doc1x"),
    ("doctor", "D009", "doc1"),
    ("patient", "P001", "patient1234"),
    ("admin", "admin", "ADMIN123"),
])
def test_any_difference_fails(clinic, role, username, password):
    assert authenticate(role, username, password) is None


@pytest.mark.parametrize("username, password", [("", "doc1"), ("D001", ""), ("   ", "doc1"), ("D001", None)])
def test_empty_credentials_rejected_before_lookup(app, monkeypatch, username, password):
    import remotehealth.services.auth_service as auth

    def lookup_must_not_run(_):
        raise AssertionError("store was queried")

    monkeypatch.setitem(auth._LOOKUPS, "doctor", lookup_must_not_run)
    with pytest.raises(ValidationError):
        authenticate("doctor", username, password)


def test_legacy_plaintext_password_is_upgraded(app):
    db.session.add(Patient(id="P050", name="Legacy", email="legacy@example.com", password="plain pw "))
    db.session.commit()

    assert authenticate("patient", "P050", "plain pw") is not None
    stored = db.session.get(Patient, "P050").password
    assert is_hashed(stored)
    # still works after the upgrade
    assert authenticate("patient", "P050", "plain pw") is not None


def test_password_reset_requests(app):
    req = submit_password_reset_request("P001", "patient", "forgot it")
    assert [r.id for r in get_pending_password_reset_requests()] == [req.id]

    resolve_password_reset_request(req.id)
    assert get_pending_password_reset_requests() == []


def test_password_reset_requires_username(app):
    with pytest.raises(ValidationError):
        submit_password_reset_request("  ")
