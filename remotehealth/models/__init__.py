from remotehealth.models.admin_db import Administrator
from remotehealth.models.doctor_db import Doctor
from remotehealth.models.patient_db import Patient
from remotehealth.models.appointments_db import Appointment
from remotehealth.models.vitals_db import VitalSign
from remotehealth.models.prescription_db import Prescription
from remotehealth.models.feedback_db import Feedback
from remotehealth.models.emergency_db import Emergency
from remotehealth.models.system_db import SystemLog, PasswordResetRequest

__all__ = [
    "Administrator",
    "Doctor",
    "Patient",
    "Appointment",
    "VitalSign",
    "Prescription",
    "Feedback",
    "Emergency",
    "SystemLog",
    "PasswordResetRequest",
]
