from extensions import db
from datetime import datetime

class Prescription(db.Model):
    __tablename__ = "prescriptions"

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.String(20), db.ForeignKey('patients.id'), nullable=False, index=True)
    medication = db.Column(db.String(200), nullable=False)
    dosage = db.Column(db.String(100), nullable=False)
    schedule = db.Column(db.String(100), nullable=False)
    prescribing_doctor = db.Column(db.String(100), nullable=False)  # name, not a reference
    tests = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def formatted_reminder(self) -> str:
        return f"Take {self.medication} ({self.dosage}) at {self.schedule} [Prescribed by Dr. {self.prescribing_doctor}]"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "medication": self.medication,
            "dosage": self.dosage,
            "schedule": self.schedule,
            "prescribing_doctor": self.prescribing_doctor,
            "tests": self.tests,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __str__(self):
        text = f"{self.medication} ({self.dosage}, {self.schedule}), Prescribed by: Dr. {self.prescribing_doctor}"
        if self.tests:
            text += f"\nRecommended Tests: {self.tests}"
        return text
