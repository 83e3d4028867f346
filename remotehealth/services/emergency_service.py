"""
Threshold checks over vital-sign history, panic button, and the
acknowledge/clear lifecycle of emergency rows.
"""
from datetime import datetime
import logging

from sqlalchemy.exc import SQLAlchemyError

from extensions import db
from remotehealth.errors import NotFound, TransientIOError
from remotehealth.models import Emergency
from remotehealth.models.emergency_db import HEART_RATE, OXYGEN, PANIC, TEMPERATURE
from remotehealth.services.clinic_service import require_patient
from remotehealth.services.db_context import db_context
from remotehealth.services.records_service import get_vitals


logger = logging.getLogger("emergencies")

HEART_RATE_MIN = 40
HEART_RATE_MAX = 120
OXYGEN_MIN = 90
TEMPERATURE_MIN = 35.0
TEMPERATURE_MAX = 40.0


def evaluate(history) -> list:
    """
    One unsaved Emergency per out-of-range metric per reading, over the
    whole history. Bounds are inclusive on the safe side.
    """
    found = []
    for vital in history:
        if vital.heart_rate < HEART_RATE_MIN or vital.heart_rate > HEART_RATE_MAX:
            found.append(_from_vital(vital, HEART_RATE, f"Critical heart rate: {vital.heart_rate}"))
        if vital.oxygen_level < OXYGEN_MIN:
            found.append(_from_vital(vital, OXYGEN, f"Critical oxygen level: {vital.oxygen_level}"))
        if vital.temperature < TEMPERATURE_MIN or vital.temperature > TEMPERATURE_MAX:
            found.append(_from_vital(vital, TEMPERATURE, f"Critical temperature: {vital.temperature}"))
    return found


def _from_vital(vital, kind: str, message: str) -> Emergency:
    return Emergency(
        patient_id=vital.patient_id,
        vital_id=vital.id,
        type=kind,
        message=message,
        created_at=datetime.utcnow(),
        acknowledged=False,
    )


class EmergencyMonitor:

    def trigger_alert(self, patient_id: str) -> list:
        """
        Evaluate the patient's full history and persist the emergencies not
        raised before for the same reading and metric. Returns the new rows.
        """
        patient = require_patient(patient_id)
        candidates = evaluate(get_vitals(patient.id))
        if not candidates:
            return []

        try:
            with db_context():
                seen = {
                    (vital_id, kind)
                    for vital_id, kind in (
                        db.session.query(Emergency.vital_id, Emergency.type)
                        .filter(Emergency.patient_id == patient.id)
                        .filter(Emergency.vital_id.isnot(None))
                        .all()
                    )
                }
                fresh = [e for e in candidates if (e.vital_id, e.type) not in seen]
                db.session.add_all(fresh)
                db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.exception(f"[trigger_alert] Failed for patient_id={patient_id}: {e}")
            raise TransientIOError("Could not save emergencies") from e

        for e in fresh:
            logger.warning(f"[trigger_alert] {e.type} emergency for patient {patient.id}: {e.message}")
        return fresh

    def activate_panic_button(self, patient_id: str) -> Emergency:
        patient = require_patient(patient_id)
        emergency = Emergency(
            patient_id=patient.id,
            type=PANIC,
            message="PANIC BUTTON ACTIVATED!",
            created_at=datetime.utcnow(),
            acknowledged=False,
        )
        try:
            with db_context():
                db.session.add(emergency)
                db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.exception(f"[activate_panic_button] Failed for patient_id={patient_id}: {e}")
            raise TransientIOError("Could not save panic alert") from e
        logger.warning(f"[activate_panic_button] Panic button pressed by patient {patient.id}")
        return emergency

    def pending(self):
        try:
            with db_context():
                return (
                    Emergency.query
                    .filter_by(acknowledged=False)
                    .order_by(Emergency.created_at.desc(), Emergency.id.desc())
                    .all()
                )
        except Exception as e:
            logger.exception(f"[pending] Failed: {e}")
            return []

    def all(self):
        try:
            with db_context():
                return Emergency.query.order_by(Emergency.created_at.desc(), Emergency.id.desc()).all()
        except Exception as e:
            logger.exception(f"[all] Failed: {e}")
            return []

    def display_alerts(self) -> str:
        emergencies = self.all()
        if not emergencies:
            return "No emergency alerts"
        return "=== EMERGENCY ALERTS ===\n\n" + "\n\n".join(str(e) for e in emergencies)

    def acknowledge(self, emergency_id: int) -> Emergency:
        """Idempotent: acknowledging twice leaves the row acknowledged."""
        with db_context():
            emergency = db.session.get(Emergency, emergency_id)
            if emergency is None:
                raise NotFound(f"Emergency {emergency_id} not found", emergency_id=emergency_id)
            if emergency.acknowledged:
                return emergency
            emergency.acknowledge()
            try:
                db.session.commit()
            except SQLAlchemyError as e:
                db.session.rollback()
                logger.exception(f"[acknowledge] Failed for emergency_id={emergency_id}: {e}")
                raise TransientIOError("Could not acknowledge emergency") from e
        logger.info(f"[acknowledge] Emergency {emergency_id} acknowledged")
        return emergency

    def clear_acknowledged(self) -> int:
        """Bulk-delete acknowledged emergencies; unacknowledged ones stay."""
        try:
            with db_context():
                removed = Emergency.query.filter_by(acknowledged=True).delete(synchronize_session=False)
                db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.exception(f"[clear_acknowledged] Failed: {e}")
            raise TransientIOError("Could not clear emergencies") from e
        logger.info(f"[clear_acknowledged] Removed {removed} acknowledged emergencies")
        return removed
