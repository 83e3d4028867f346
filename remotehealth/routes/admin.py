from flask import Blueprint, jsonify

from remotehealth.errors import NotFound
from remotehealth.routes.guards import parse, require_role
from remotehealth.schemas import UserIn
from remotehealth.services import clinic_service
from remotehealth.services.container import get_services


admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


@admin_bp.route("/dashboard", methods=["GET"])
@require_role("admin")
def dashboard_home():
    """User counts, appointment breakdown, doctor response rates and live sessions."""
    context = clinic_service.get_dashboard_snapshot()
    context["active_sessions"] = get_services().sessions.list_active()
    return jsonify(context)


@admin_bp.route("/doctors", methods=["GET"])
@require_role("admin", "patient")
def list_doctors():
    return jsonify([d.to_dict() for d in clinic_service.list_doctors()])


@admin_bp.route("/doctors", methods=["POST"])
@require_role("admin")
def save_doctor():
    data = parse(UserIn)
    doctor = clinic_service.upsert_doctor(data.id, data.name, data.email, data.password)
    return jsonify(doctor.to_dict()), 201


@admin_bp.route("/doctors/<doctor_id>", methods=["DELETE"])
@require_role("admin")
def delete_doctor_route(doctor_id: str):
    if not clinic_service.delete_doctor(doctor_id):
        raise NotFound(f"Doctor {doctor_id} not found")
    return jsonify({"deleted": doctor_id})


@admin_bp.route("/patients", methods=["GET"])
@require_role("admin", "doctor")
def list_patients():
    return jsonify([p.to_dict() for p in clinic_service.list_patients()])


@admin_bp.route("/patients", methods=["POST"])
@require_role("admin")
def save_patient():
    data = parse(UserIn)
    patient = clinic_service.upsert_patient(data.id, data.name, data.email, data.password)
    return jsonify(patient.to_dict()), 201


@admin_bp.route("/patients/<patient_id>", methods=["DELETE"])
@require_role("admin")
def delete_patient_route(patient_id: str):
    if not clinic_service.delete_patient(patient_id):
        raise NotFound(f"Patient {patient_id} not found")
    return jsonify({"deleted": patient_id})


@admin_bp.route("/logs", methods=["GET"])
@require_role("admin")
def system_logs():
    from remotehealth.services.audit_service import fetch_logs
    return jsonify(fetch_logs())


@admin_bp.route("/password-resets", methods=["GET"])
@require_role("admin")
def pending_password_resets():
    from remotehealth.services.auth_service import get_pending_password_reset_requests
    return jsonify([r.to_dict() for r in get_pending_password_reset_requests()])


@admin_bp.route("/password-resets/<int:request_id>/resolve", methods=["POST"])
@require_role("admin")
def resolve_password_reset(request_id: int):
    from remotehealth.services.auth_service import resolve_password_reset_request
    return jsonify(resolve_password_reset_request(request_id).to_dict())
