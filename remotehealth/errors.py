"""Error taxonomy shared by services and HTTP handlers."""


class ClinicError(Exception):
    """Base class; `status_code` is what the JSON error handler answers with."""
    status_code = 500
    kind = "error"

    def __init__(self, message: str = "", **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"error": self.kind, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class NotFound(ClinicError):
    status_code = 404
    kind = "not_found"


class Conflict(ClinicError):
    """The requested slot overlaps an active appointment of the same doctor."""
    status_code = 409
    kind = "conflict"


class ValidationError(ClinicError):
    status_code = 400
    kind = "validation_error"


class AuthenticationError(ClinicError):
    status_code = 401
    kind = "authentication_failed"


class PermissionDenied(ClinicError):
    status_code = 403
    kind = "permission_denied"


class TransientIOError(ClinicError):
    """Retryable failure: database write, SMTP, Redis."""
    status_code = 503
    kind = "transient_io_error"


class EmailSendingError(TransientIOError):
    kind = "email_failed"


class Fatal(ClinicError):
    kind = "fatal"


def from_pydantic(exc) -> ValidationError:
    """Flatten a pydantic ValidationError into ours."""
    problems = []
    for err in exc.errors():
        field = ".".join(str(p) for p in err.get("loc", ()))
        problems.append(f"{field}: {err.get('msg')}" if field else err.get("msg"))
    return ValidationError("; ".join(problems) or "Invalid input", fields=problems)
