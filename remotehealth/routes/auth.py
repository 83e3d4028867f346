from flask import Blueprint, g, jsonify

from remotehealth.errors import AuthenticationError
from remotehealth.routes.guards import current_token, parse, require_role
from remotehealth.schemas import Credentials, PasswordResetIn
from remotehealth.services.container import get_services


auth_bp = Blueprint("auth", __name__, url_prefix="/auth")


@auth_bp.route("/login", methods=["POST"])
def login():
    """Exchange credentials for a session token."""
    from remotehealth.services.auth_service import authenticate

    creds = parse(Credentials)
    user = authenticate(creds.role, creds.username, creds.password)
    if user is None:
        raise AuthenticationError("Invalid credentials")

    token = get_services().sessions.open(user, creds.role)
    return jsonify({"token": token, "role": creds.role, "user": user.to_dict()})


@auth_bp.route("/logout", methods=["POST"])
@require_role()
def logout():
    get_services().sessions.close(current_token())
    return jsonify({"status": "logged_out"})


@auth_bp.route("/me", methods=["GET"])
@require_role()
def me():
    return jsonify({"user_id": g.session.user_id, "role": g.session.role, "name": g.session.name})


@auth_bp.route("/password-reset", methods=["POST"])
def password_reset_request():
    """Forgot-password form: queue a request for an administrator."""
    from remotehealth.services.auth_service import submit_password_reset_request

    data = parse(PasswordResetIn)
    req = submit_password_reset_request(data.username, data.role, data.message)
    return jsonify(req.to_dict()), 201
