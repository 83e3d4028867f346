from functools import wraps

from flask import g, request

from remotehealth.errors import AuthenticationError, PermissionDenied
from remotehealth.services.container import get_services

TOKEN_HEADER = "X-Session-Token"


def current_token() -> str:
    return (request.headers.get(TOKEN_HEADER) or "").strip()


def require_role(*allowed_roles):
    """Load the caller's session into `g.session` and check its role."""
    def decorator(view):
        @wraps(view)
        def _inner(*args, **kwargs):
            session = get_services().sessions.load(current_token())
            if session is None:
                raise AuthenticationError("Login required")
            if allowed_roles and session.role not in allowed_roles:
                raise PermissionDenied("Access denied")
            g.session = session
            return view(*args, **kwargs)
        return _inner
    return decorator


def ensure_patient_access(patient_id: str):
    """Patients only see their own records; doctors and admins see everyone's."""
    session = g.session
    if session.role == "patient" and session.user_id.upper() != patient_id.strip().upper():
        raise PermissionDenied("Patients can only access their own records")


def parse(model):
    """Validate the JSON body; pydantic errors become 400 responses."""
    return model.model_validate(request.get_json(silent=True) or {})
