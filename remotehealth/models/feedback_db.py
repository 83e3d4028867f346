from extensions import db
from datetime import datetime

class Feedback(db.Model):
    __tablename__ = "feedbacks"

    id = db.Column(db.Integer, primary_key=True)
    patient_id = db.Column(db.String(20), db.ForeignKey('patients.id'), nullable=False, index=True)
    doctor_name = db.Column(db.String(100), nullable=False)
    comments = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "patient_id": self.patient_id,
            "doctor_name": self.doctor_name,
            "comments": self.comments,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __str__(self):
        return f"[{self.created_at:%Y-%m-%d %H:%M}] Dr. {self.doctor_name}:\n{self.comments}"
