from extensions import db
from datetime import datetime

PENDING = "Pending"
APPROVED = "Approved"
REJECTED = "Rejected"
STATUSES = (PENDING, APPROVED, REJECTED)

# Only these block a doctor's time slot
ACTIVE_STATUSES = (PENDING, APPROVED)

class Appointment(db.Model):
    __tablename__ = "appointments"

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.String(20), db.ForeignKey('patients.id'), nullable=False)
    doctor_id = db.Column(db.String(20), db.ForeignKey('doctors.id'), nullable=True)
    scheduled_at = db.Column(db.DateTime, nullable=True)
    status = db.Column(db.String(20), default=PENDING)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    doctor = db.relationship('Doctor', backref=db.backref('appointments', lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "patient_name": self.patient.name if self.patient else None,
            "doctor_id": self.doctor_id,
            "doctor_name": self.doctor.name if self.doctor else None,
            "scheduled_at": self.scheduled_at.isoformat() if self.scheduled_at else None,
            "status": self.status,
        }

    def __repr__(self):
        return f"<Appointment {self.id} {self.scheduled_at} {self.status}>"
