import os
import tempfile

from flask import Blueprint, current_app, g, jsonify, request, send_file

from remotehealth.errors import ValidationError
from remotehealth.routes.guards import ensure_patient_access, parse, require_role
from remotehealth.schemas import FeedbackIn, PrescriptionIn, VideoCallIn, VitalSignIn
from remotehealth.services import records_service
from remotehealth.services.clinic_service import require_patient
from remotehealth.services.container import get_services


patients_bp = Blueprint("patients", __name__, url_prefix="/patients")


@patients_bp.route("/<patient_id>/vitals", methods=["GET"])
@require_role("admin", "doctor", "patient")
def list_vitals(patient_id: str):
    ensure_patient_access(patient_id)
    patient = require_patient(patient_id)
    return jsonify([v.to_dict() for v in records_service.get_vitals(patient.id)])


@patients_bp.route("/<patient_id>/vitals", methods=["POST"])
@require_role("patient")
def add_vital(patient_id: str):
    ensure_patient_access(patient_id)
    data = parse(VitalSignIn)
    vital = records_service.add_vital(
        patient_id,
        heart_rate=data.heart_rate,
        oxygen_level=data.oxygen_level,
        temperature=data.temperature,
        blood_pressure=data.blood_pressure,
        recorded_at=data.recorded_at,
    )
    # every new reading is checked straight away
    raised = get_services().emergencies.trigger_alert(patient_id)
    return jsonify({"vital": vital.to_dict(), "emergencies": [e.to_dict() for e in raised]}), 201


@patients_bp.route("/<patient_id>/prescriptions", methods=["GET"])
@require_role("admin", "doctor", "patient")
def list_prescriptions(patient_id: str):
    ensure_patient_access(patient_id)
    patient = require_patient(patient_id)
    return jsonify([p.to_dict() for p in records_service.get_prescriptions(patient.id)])


@patients_bp.route("/<patient_id>/prescriptions", methods=["POST"])
@require_role("doctor")
def prescribe(patient_id: str):
    data = parse(PrescriptionIn)
    prescription = records_service.prescribe(
        patient_id,
        doctor_name=g.session.name,
        medication=data.medication,
        dosage=data.dosage,
        schedule=data.schedule,
        tests=data.tests,
        notifier=get_services().email,
    )
    return jsonify(prescription.to_dict()), 201


@patients_bp.route("/<patient_id>/feedback", methods=["GET"])
@require_role("admin", "doctor", "patient")
def list_feedback(patient_id: str):
    ensure_patient_access(patient_id)
    patient = require_patient(patient_id)
    return jsonify([fb.to_dict() for fb in records_service.get_feedbacks(patient.id)])


@patients_bp.route("/<patient_id>/feedback", methods=["POST"])
@require_role("doctor")
def add_feedback(patient_id: str):
    data = parse(FeedbackIn)
    fb = records_service.add_feedback(patient_id, g.session.name, data.comments)
    return jsonify(fb.to_dict()), 201


@patients_bp.route("/<patient_id>/history", methods=["GET"])
@require_role("admin", "doctor", "patient")
def medical_history(patient_id: str):
    ensure_patient_access(patient_id)
    patient = require_patient(patient_id)
    return jsonify({
        "patient_id": patient.id,
        "history": records_service.format_medical_history(patient.id, request.args.get("notes")),
        "feedback": records_service.format_feedbacks(patient.id),
    })


@patients_bp.route("/<patient_id>/report", methods=["GET"])
@require_role("admin", "doctor", "patient")
def download_report(patient_id: str):
    """Generate the vitals + prescriptions report and send it as a file."""
    from remotehealth.services.report_service import generate_report

    ensure_patient_access(patient_id)
    patient = require_patient(patient_id)
    target = os.path.join(
        current_app.config.get("REPORT_DIR") or tempfile.gettempdir(),
        f"patient_report_{patient.id}.txt",
    )
    generate_report(patient.id, target, get_services().report_lines_per_page)
    return send_file(target, mimetype="text/plain", as_attachment=True,
                     download_name=os.path.basename(target))


@patients_bp.route("/<patient_id>/reminders", methods=["POST"])
@require_role("admin", "doctor")
def send_reminders(patient_id: str):
    patient = require_patient(patient_id)
    reminders = get_services().reminders
    return jsonify({
        "prescriptions": reminders.send_prescription_reminders(patient),
        "appointments": reminders.send_appointment_reminders(patient),
    })


@patients_bp.route("/calls", methods=["POST"])
@require_role("doctor", "patient")
def start_video_call():
    """Return the meeting link; the caller's browser opens it."""
    from remotehealth.services.video_call import build_call_url

    data = parse(VideoCallIn)
    caller = f"Dr. {g.session.name}" if g.session.role == "doctor" else g.session.name
    if not caller.strip():
        raise ValidationError("Caller has no display name")
    url = build_call_url(caller, data.to, data.password, get_services().video_call_base_url)
    return jsonify({"url": url})
