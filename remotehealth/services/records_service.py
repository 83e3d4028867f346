from datetime import datetime
import logging

from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from remotehealth.errors import ClinicError, TransientIOError
from remotehealth.models import Feedback, Prescription, VitalSign
from remotehealth.services.clinic_service import require_patient
from remotehealth.services.db_context import db_context


logger = logging.getLogger("records_service")


# -------------------------------
# ❤️ VITAL SIGNS
# -------------------------------

def add_vital(
    patient_id: str,
    heart_rate: int,
    oxygen_level: int,
    temperature: float,
    blood_pressure: str | None = None,
    recorded_at: datetime | None = None,
):
    """Append a reading to the patient's history. Readings are never edited."""
    patient = require_patient(patient_id)
    try:
        with db_context():
            vital = VitalSign(
                patient_id=patient.id,
                heart_rate=heart_rate,
                oxygen_level=oxygen_level,
                blood_pressure=blood_pressure,
                temperature=temperature,
                recorded_at=recorded_at or datetime.utcnow(),
            )
            db.session.add(vital)
            db.session.commit()
            logger.info(f"[add_vital] Vital signs recorded for patient {patient.id}")
            return vital
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception(f"[add_vital] Failed for patient_id={patient_id}: {e}")
        raise TransientIOError("Could not save vital signs") from e


def get_vitals(patient_id: str):
    """Full history, oldest first."""
    try:
        with db_context():
            return (
                VitalSign.query
                .filter(VitalSign.patient_id == patient_id)
                .order_by(VitalSign.recorded_at.asc(), VitalSign.id.asc())
                .all()
            )
    except Exception as e:
        logger.exception(f"[get_vitals] Failed for patient_id={patient_id}: {e}")
        return []


# -------------------------------
# 💬 FEEDBACK
# -------------------------------

def add_feedback(patient_id: str, doctor_name: str, comments: str):
    patient = require_patient(patient_id)
    try:
        with db_context():
            fb = Feedback(
                patient_id=patient.id,
                doctor_name=doctor_name,
                comments=comments.strip(),
                created_at=datetime.utcnow(),
            )
            db.session.add(fb)
            db.session.commit()
            logger.info(f"[add_feedback] Feedback saved for {patient.name}")
            return fb
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception(f"[add_feedback] Failed for patient_id={patient_id}: {e}")
        raise TransientIOError("Could not save feedback") from e


def get_feedbacks(patient_id: str):
    try:
        with db_context():
            return (
                Feedback.query
                .filter(Feedback.patient_id == patient_id)
                .order_by(Feedback.created_at.asc(), Feedback.id.asc())
                .all()
            )
    except Exception as e:
        logger.exception(f"[get_feedbacks] Failed for patient_id={patient_id}: {e}")
        return []


def format_feedbacks(patient_id: str) -> str:
    feedbacks = get_feedbacks(patient_id)
    if not feedbacks:
        return "No feedback available"
    return "\n\n".join(str(fb) for fb in feedbacks)


# -------------------------------
# 💊 PRESCRIPTIONS
# -------------------------------

def prescribe(
    patient_id: str,
    doctor_name: str,
    medication: str,
    dosage: str,
    schedule: str,
    tests: str | None = None,
    notifier=None,
):
    """
    Save a prescription and email it to the patient.
    The prescription stays saved when the email cannot be delivered.
    """
    patient = require_patient(patient_id)
    try:
        with db_context():
            prescription = Prescription(
                patient_id=patient.id,
                medication=medication.strip(),
                dosage=dosage.strip(),
                schedule=schedule.strip(),
                prescribing_doctor=doctor_name,
                tests=(tests or "").strip() or None,
                created_at=datetime.utcnow(),
            )
            db.session.add(prescription)
            db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.exception(f"[prescribe] Failed for patient_id={patient_id}: {e}")
        raise TransientIOError("Could not save prescription") from e

    if notifier is not None and patient.email:
        body = (
            f"Dear {patient.name},\n\n"
            f"You have received a new prescription from Dr. {doctor_name}:\n\n"
            f"Medication: {prescription.medication}\n"
            f"Dosage: {prescription.dosage}\n"
            f"Schedule: {prescription.schedule}\n"
        )
        if prescription.tests:
            body += f"Recommended Tests: {prescription.tests}\n"
        body += "\nPlease follow the instructions carefully.\n\nBest,\nRemoteHealth Team"
        try:
            notifier.send_email(patient.email, f"New Prescription from Dr. {doctor_name}", body)
        except ClinicError as e:
            logger.warning(f"[prescribe] Prescription saved but email failed for {patient.id}: {e}")

    logger.info(f"[prescribe] Prescription saved for {patient.name}")
    return prescription


def get_prescriptions(patient_id: str):
    try:
        with db_context():
            return (
                Prescription.query
                .filter(Prescription.patient_id == patient_id)
                .order_by(Prescription.created_at.asc(), Prescription.id.asc())
                .all()
            )
    except Exception as e:
        logger.exception(f"[get_prescriptions] Failed for patient_id={patient_id}: {e}")
        return []


def format_medical_history(patient_id: str, notes: str | None = None) -> str:
    """Prescriptions plus the doctor's notes, as shown on the history tab."""
    parts = []
    prescriptions = get_prescriptions(patient_id)
    if prescriptions:
        parts.append("Active Prescriptions:\n" + "\n".join(f"- {p}" for p in prescriptions))
    if notes:
        parts.append(f"Doctor's Notes:\n{notes}")
    return "\n\n".join(parts) if parts else "No medical history recorded."
