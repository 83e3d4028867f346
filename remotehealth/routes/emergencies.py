from flask import Blueprint, jsonify, request

from remotehealth.routes.guards import ensure_patient_access, require_role
from remotehealth.services.container import get_services


emergencies_bp = Blueprint("emergencies", __name__)


@emergencies_bp.route("/patients/<patient_id>/panic", methods=["POST"])
@require_role("patient")
def panic_button(patient_id: str):
    ensure_patient_access(patient_id)
    emergency = get_services().emergencies.activate_panic_button(patient_id)
    return jsonify(emergency.to_dict()), 201


@emergencies_bp.route("/patients/<patient_id>/emergencies/check", methods=["POST"])
@require_role("admin", "doctor", "patient")
def check_vitals(patient_id: str):
    ensure_patient_access(patient_id)
    raised = get_services().emergencies.trigger_alert(patient_id)
    return jsonify([e.to_dict() for e in raised])


@emergencies_bp.route("/emergencies", methods=["GET"])
@require_role("admin", "doctor")
def list_emergencies():
    monitor = get_services().emergencies
    pending_only = request.args.get("pending", "").lower() in ("1", "true", "yes")
    rows = monitor.pending() if pending_only else monitor.all()
    return jsonify([e.to_dict() for e in rows])


@emergencies_bp.route("/emergencies/alerts", methods=["GET"])
@require_role("admin", "doctor")
def alerts_text():
    return get_services().emergencies.display_alerts(), 200, {"Content-Type": "text/plain; charset=utf-8"}


@emergencies_bp.route("/emergencies/<int:emergency_id>/acknowledge", methods=["POST"])
@require_role("admin", "doctor")
def acknowledge(emergency_id: int):
    emergency = get_services().emergencies.acknowledge(emergency_id)
    return jsonify(emergency.to_dict())


@emergencies_bp.route("/emergencies/clear", methods=["POST"])
@require_role("admin", "doctor")
def clear_acknowledged():
    removed = get_services().emergencies.clear_acknowledged()
    return jsonify({"removed": removed})
