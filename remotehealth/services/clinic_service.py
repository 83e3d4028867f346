from datetime import datetime
import logging

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from remotehealth.errors import NotFound, TransientIOError
from remotehealth.models import (
    Administrator,
    Appointment,
    Doctor,
    Emergency,
    Patient,
)
from remotehealth.models.appointments_db import PENDING, STATUSES
from remotehealth.services.audit_service import log_action
from remotehealth.services.db_context import db_context


logger = logging.getLogger("clinic_service")


def _write_failed(where: str, e: Exception):
    db.session.rollback()
    logger.exception(f"[{where}] Database write failed: {e}")
    return TransientIOError(f"Could not save changes ({where})")


# -------------------------------
# 👤 USER HELPERS
# -------------------------------

def get_patient_by_id(patient_id: str):
    """Patient ids are matched case-insensitively (p001 == P001)."""
    if not patient_id:
        return None
    try:
        with db_context():
            return Patient.query.filter(func.upper(Patient.id) == patient_id.strip().upper()).first()
    except Exception as e:
        logger.exception(f"[get_patient_by_id] Failed for patient_id={patient_id}: {e}")
        return None


def get_doctor_by_id(doctor_id: str):
    if not doctor_id:
        return None
    try:
        with db_context():
            return db.session.get(Doctor, doctor_id.strip())
    except Exception as e:
        logger.exception(f"[get_doctor_by_id] Failed for doctor_id={doctor_id}: {e}")
        return None


def get_admin_by_name(name: str):
    """Administrator names are compared case-insensitively after trimming."""
    if not name:
        return None
    try:
        with db_context():
            return Administrator.query.filter(func.lower(Administrator.name) == name.strip().lower()).first()
    except Exception as e:
        logger.exception(f"[get_admin_by_name] Failed for name={name}: {e}")
        return None


def require_patient(patient_id: str) -> Patient:
    patient = get_patient_by_id(patient_id)
    if patient is None:
        raise NotFound(f"Patient {patient_id} not found", patient_id=patient_id)
    return patient


def require_doctor(doctor_id: str) -> Doctor:
    doctor = get_doctor_by_id(doctor_id)
    if doctor is None:
        raise NotFound(f"Doctor {doctor_id} not found", doctor_id=doctor_id)
    return doctor


def list_patients():
    try:
        with db_context():
            return Patient.query.order_by(Patient.id.asc()).all()
    except Exception as e:
        logger.exception(f"[list_patients] Failed: {e}")
        return []


def list_doctors():
    try:
        with db_context():
            return Doctor.query.order_by(Doctor.id.asc()).all()
    except Exception as e:
        logger.exception(f"[list_doctors] Failed: {e}")
        return []


def _upsert_user(model, user_id: str, name: str, email: str | None, password: str | None):
    target = db.session.get(model, user_id)
    if target is None:
        target = model(id=user_id)
    target.name = name.strip()
    if email is not None:
        target.email = email
    if password:
        target.set_password(password)
    db.session.add(target)
    db.session.commit()
    return target


def upsert_patient(patient_id: str, name: str, email: str | None = None, password: str | None = None):
    """Create or update a patient keyed by id."""
    try:
        with db_context():
            patient = _upsert_user(Patient, patient_id, name, email, password)
    except SQLAlchemyError as e:
        raise _write_failed("upsert_patient", e) from e
    log_action(f"Patient {patient.name} added to system.")
    return patient


def upsert_doctor(doctor_id: str, name: str, email: str | None = None, password: str | None = None):
    """Create or update a doctor keyed by id."""
    try:
        with db_context():
            doctor = _upsert_user(Doctor, doctor_id, name, email, password)
    except SQLAlchemyError as e:
        raise _write_failed("upsert_doctor", e) from e
    log_action(f"Doctor {doctor.name} added to system.")
    return doctor


def upsert_admin(admin_id: str, name: str, email: str | None = None, password: str | None = None):
    try:
        with db_context():
            return _upsert_user(Administrator, admin_id, name, email, password)
    except SQLAlchemyError as e:
        raise _write_failed("upsert_admin", e) from e


def delete_patient(patient_id: str) -> bool:
    """Delete a patient together with vitals, appointments, prescriptions, feedback and emergencies."""
    try:
        with db_context():
            p = get_patient_by_id(patient_id)
            if not p:
                return False
            name = p.name
            db.session.delete(p)
            db.session.commit()
    except SQLAlchemyError as e:
        raise _write_failed("delete_patient", e) from e
    log_action(f"Patient {name} removed from system.")
    return True


def delete_doctor(doctor_id: str) -> bool:
    """Delete a doctor; their appointments lose the doctor reference and are swept later."""
    try:
        with db_context():
            d = db.session.get(Doctor, doctor_id)
            if not d:
                return False
            name = d.name
            Appointment.query.filter_by(doctor_id=d.id).update({"doctor_id": None})
            db.session.delete(d)
            db.session.commit()
    except SQLAlchemyError as e:
        raise _write_failed("delete_doctor", e) from e
    log_action(f"Doctor {name} removed from system.")
    return True


# -------------------------------
# 📊 ADMIN DASHBOARD
# -------------------------------

def get_dashboard_snapshot():
    """
    Aggregate data for the admin dashboard:
    - user counts
    - appointment status breakdown
    - per-doctor response rate (share of appointments no longer Pending)
    - pending emergencies
    """
    try:
        with db_context():
            status_counts = {status: 0 for status in STATUSES}
            rows = (
                db.session.query(Appointment.status, func.count(Appointment.id))
                .group_by(Appointment.status)
                .all()
            )
            for status, count in rows:
                status_counts[status or "Unknown"] = count

            response_rates = []
            for doctor in Doctor.query.order_by(Doctor.id.asc()).all():
                total = Appointment.query.filter_by(doctor_id=doctor.id).count()
                answered = (
                    Appointment.query
                    .filter(Appointment.doctor_id == doctor.id)
                    .filter(Appointment.status != PENDING)
                    .count()
                )
                response_rates.append(
                    {
                        "doctor_id": doctor.id,
                        "doctor_name": doctor.name,
                        "appointments": total,
                        "response_rate": round(answered / total, 3) if total else 0.0,
                    }
                )

            stats = {
                "total_patients": Patient.query.count(),
                "total_doctors": Doctor.query.count(),
                "appointments": status_counts,
                "pending_emergencies": Emergency.query.filter_by(acknowledged=False).count(),
                "as_of": datetime.utcnow().isoformat(),
            }
            return {"stats": stats, "doctor_response_rates": response_rates}
    except Exception as e:
        logger.exception(f"[get_dashboard_snapshot] Failed: {e}")
        # In case of failure, return safe empty structures so the dashboard still loads.
        return {
            "stats": {
                "total_patients": 0,
                "total_doctors": 0,
                "appointments": {status: 0 for status in STATUSES},
                "pending_emergencies": 0,
                "as_of": "",
            },
            "doctor_response_rates": [],
        }
