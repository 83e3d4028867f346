from extensions import db
from datetime import datetime

class VitalSign(db.Model):
    __tablename__ = "vitals"

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.String(20), db.ForeignKey('patients.id'), nullable=False, index=True)
    heart_rate = db.Column(db.Integer, nullable=False)       # bpm
    oxygen_level = db.Column(db.Integer, nullable=False)     # SpO2 percent
    blood_pressure = db.Column(db.String(20))                # "systolic/diastolic", free text
    temperature = db.Column(db.Float, nullable=False)        # Celsius
    recorded_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "heart_rate": self.heart_rate,
            "oxygen_level": self.oxygen_level,
            "blood_pressure": self.blood_pressure,
            "temperature": self.temperature,
            "recorded_at": self.recorded_at.isoformat() if self.recorded_at else None,
        }

    def __str__(self):
        return (
            f"Heart Rate: {self.heart_rate} bpm, Oxygen Level: {self.oxygen_level}%, "
            f"Blood Pressure: {self.blood_pressure}, Temperature: {self.temperature} °C, "
            f"Added on: {self.recorded_at:%Y-%m-%d %H:%M}"
        )
