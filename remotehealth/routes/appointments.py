from flask import Blueprint, g, jsonify, request

from remotehealth.errors import PermissionDenied
from remotehealth.routes.guards import parse, require_role
from remotehealth.schemas import AppointmentRequestIn, ScheduleIn
from remotehealth.services.container import get_services


appointments_bp = Blueprint("appointments", __name__, url_prefix="/appointments")


def _own_appointment(appointment_id: int):
    """Doctors may only act on appointments booked with them."""
    appt = get_services().appointments.get(appointment_id)
    if g.session.role == "doctor" and appt.doctor_id != g.session.user_id:
        raise PermissionDenied("Appointment belongs to another doctor")
    return appt


@appointments_bp.route("", methods=["GET"])
@require_role("admin", "doctor", "patient")
def list_appointments():
    manager = get_services().appointments
    if g.session.role == "doctor":
        appts = manager.for_doctor(g.session.user_id, status=request.args.get("status"))
    elif g.session.role == "patient":
        appts = manager.for_patient(g.session.user_id)
    elif request.args.get("doctor_id"):
        appts = manager.for_doctor(request.args["doctor_id"], status=request.args.get("status"))
    else:
        appts = manager.for_patient(request.args.get("patient_id", ""))
    return jsonify([a.to_dict() for a in appts])


@appointments_bp.route("", methods=["POST"])
@require_role("admin", "patient")
def request_appointment():
    data = parse(AppointmentRequestIn)
    patient_id = g.session.user_id if g.session.role == "patient" else data.patient_id

    appt = get_services().appointments.request(patient_id, data.doctor_id, data.scheduled_at)
    if appt is None:
        # dropped under the "log" conflict policy
        return jsonify({"appointment": None, "message": "Appointment conflict detected; request not saved"}), 202
    return jsonify({"appointment": appt.to_dict()}), 201


@appointments_bp.route("/<int:appointment_id>/approve", methods=["POST"])
@require_role("doctor")
def approve_appointment(appointment_id: int):
    data = parse(ScheduleIn)
    _own_appointment(appointment_id)
    appt = get_services().appointments.approve(appointment_id, data.scheduled_at)
    return jsonify({"appointment": appt.to_dict()})


@appointments_bp.route("/<int:appointment_id>/reject", methods=["POST"])
@require_role("doctor")
def reject_appointment(appointment_id: int):
    _own_appointment(appointment_id)
    appt = get_services().appointments.reject(appointment_id)
    return jsonify({"appointment": appt.to_dict()})


@appointments_bp.route("/<int:appointment_id>/reschedule", methods=["POST"])
@require_role("doctor")
def reschedule_appointment(appointment_id: int):
    data = parse(ScheduleIn)
    _own_appointment(appointment_id)
    appt = get_services().appointments.reschedule(appointment_id, data.scheduled_at)
    if appt is None:
        return jsonify({"appointment": None, "message": "Appointment conflict detected; not rescheduled"}), 202
    return jsonify({"appointment": appt.to_dict()})
