from extensions import db
from remotehealth.models.credentials import CredentialsMixin

class Patient(CredentialsMixin, db.Model):
    __tablename__ = "patients"

    id = db.Column(db.String(20), primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(100))
    password = db.Column(db.String(255))
    created_at = db.Column(db.DateTime, server_default=db.func.now())

    # Dependent rows go with the patient
    appointments = db.relationship("Appointment", backref="patient", lazy=True, cascade="all, delete-orphan")
    vitals = db.relationship("VitalSign", backref="patient", lazy=True, cascade="all, delete-orphan")
    prescriptions = db.relationship("Prescription", backref="patient", lazy=True, cascade="all, delete-orphan")
    feedbacks = db.relationship("Feedback", backref="patient", lazy=True, cascade="all, delete-orphan")
    emergencies = db.relationship("Emergency", backref="patient", lazy=True, cascade="all, delete-orphan")
