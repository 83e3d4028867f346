from extensions import db
from datetime import datetime

HEART_RATE = "HEART_RATE"
OXYGEN = "OXYGEN"
TEMPERATURE = "TEMPERATURE"
PANIC = "PANIC"
TYPES = (HEART_RATE, OXYGEN, TEMPERATURE, PANIC)

class Emergency(db.Model):
    __tablename__ = "emergencies"
    # one row per (reading, metric); panic rows carry no vital_id
    __table_args__ = (db.UniqueConstraint("patient_id", "vital_id", "type", name="uq_emergency_reading"),)

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.String(20), db.ForeignKey('patients.id'), nullable=False, index=True)
    vital_id = db.Column(db.Integer, db.ForeignKey('vitals.id', ondelete="SET NULL"), nullable=True)
    type = db.Column(db.String(20), nullable=False)
    message = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    acknowledged = db.Column(db.Boolean, default=False, nullable=False)

    def acknowledge(self):
        self.acknowledged = True

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "patient_name": self.patient.name if self.patient else None,
            "vital_id": self.vital_id,
            "type": self.type,
            "message": self.message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "acknowledged": bool(self.acknowledged),
        }

    def __str__(self):
        state = "ACKNOWLEDGED" if self.acknowledged else "PENDING"
        when = self.created_at or datetime.utcnow()
        return f"[{when:%Y-%m-%d %H:%M}] {self.type} - {self.message} ({state})"
