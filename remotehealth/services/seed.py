import logging

from remotehealth.services.clinic_service import (
    get_admin_by_name,
    get_doctor_by_id,
    get_patient_by_id,
    upsert_admin,
    upsert_doctor,
    upsert_patient,
)


logger = logging.getLogger("seed")

DEFAULT_ADMIN = ("A000", "admin", "admin@example.com", "admin123")
SAMPLE_DOCTORS = [
    ("D001", "Naeem Ahmed", "naeem@gmail.com", "doc1"),
    ("D002", "Qazi Aslam", "qazi@gmail.com", "doc2"),
]
SAMPLE_PATIENTS = [
    ("P001", "Zayna Qasim", "zaynaqasim@gmail.com", "patient12345"),
]


def ensure_defaults() -> list[str]:
    """Insert the default admin and sample users that are missing. Returns the ids created."""
    created = []

    admin_id, admin_name, admin_email, admin_password = DEFAULT_ADMIN
    if get_admin_by_name(admin_name) is None:
        logger.info("[ensure_defaults] Admin not found in database, creating default admin")
        upsert_admin(admin_id, admin_name, admin_email, admin_password)
        created.append(admin_id)

    for doctor_id, name, email, password in SAMPLE_DOCTORS:
        if get_doctor_by_id(doctor_id) is None:
            upsert_doctor(doctor_id, name, email, password)
            created.append(doctor_id)

    for patient_id, name, email, password in SAMPLE_PATIENTS:
        if get_patient_by_id(patient_id) is None:
            upsert_patient(patient_id, name, email, password)
            created.append(patient_id)

    return created
