from datetime import datetime
import logging

from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from remotehealth.errors import ValidationError, TransientIOError, NotFound
from remotehealth.models import PasswordResetRequest
from remotehealth.schemas import ROLES
from remotehealth.services.clinic_service import get_admin_by_name, get_doctor_by_id, get_patient_by_id
from remotehealth.services.db_context import db_context


logger = logging.getLogger("auth")

_LOOKUPS = {
    "admin": get_admin_by_name,
    "doctor": get_doctor_by_id,
    "patient": get_patient_by_id,
}


def authenticate(role: str, username: str | None, password: str | None):
    """
    Return the matching user or None.

    Admins are found by name (case-insensitive), doctors and patients by id.
    The password is compared on its trimmed value.
    """
    if not username or not username.strip() or not password or not password.strip():
        raise ValidationError("Username and password are required")
    role = (role or "").strip().lower()
    if role not in _LOOKUPS:
        raise ValidationError(f"Unknown role: {role}")

    user = _LOOKUPS[role](username.strip())
    if user is None or not user.check_password(password):
        logger.info(f"[authenticate] Login failed for {role} {username.strip()!r}")
        return None

    if user.needs_rehash:
        _upgrade_password(user, password)
    logger.info(f"[authenticate] {role} {user.id} logged in")
    return user


def _upgrade_password(user, password: str):
    """Replace a legacy plaintext password with a salted hash after a successful login."""
    try:
        with db_context():
            user.set_password(password)
            db.session.add(user)
            db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception(f"[_upgrade_password] Could not rehash password for {user.id}: {e}")


# -------------------------------
# 🔑 PASSWORD RESET REQUESTS
# -------------------------------

def submit_password_reset_request(username: str, role: str = "patient", message: str | None = None):
    if not username or not username.strip():
        raise ValidationError("Username is required")
    if role not in ROLES:
        raise ValidationError(f"Unknown role: {role}")
    try:
        with db_context():
            req = PasswordResetRequest(
                username=username.strip(),
                role=role,
                message=(message or "").strip() or None,
                requested_at=datetime.utcnow(),
                status="PENDING",
            )
            db.session.add(req)
            db.session.commit()
            logger.info(f"[submit_password_reset_request] Request stored for {role} {username.strip()}")
            return req
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception(f"[submit_password_reset_request] Failed for username={username}: {e}")
        raise TransientIOError("Could not submit password reset request") from e


def get_pending_password_reset_requests():
    try:
        with db_context():
            return (
                PasswordResetRequest.query
                .filter_by(status="PENDING")
                .order_by(PasswordResetRequest.requested_at.asc())
                .all()
            )
    except Exception as e:
        logger.exception(f"[get_pending_password_reset_requests] Failed: {e}")
        return []


def resolve_password_reset_request(request_id: int):
    with db_context():
        req = db.session.get(PasswordResetRequest, request_id)
        if req is None:
            raise NotFound(f"Password reset request {request_id} not found")
        req.status = "RESOLVED"
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise TransientIOError("Could not resolve password reset request") from e
        return req
