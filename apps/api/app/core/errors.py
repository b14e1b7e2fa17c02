"""
Error taxonomy for the worksheet core.

Services raise these instead of HTTPException so the same code paths can run
from routers, scripts and tests. main.py maps them to JSON responses of the
form {"error": <kind>, "detail": <message>}.
"""


class WorksheetError(Exception):
    kind = "ERROR"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.kind, "detail": self.message}


class ValidationError(WorksheetError):
    """Malformed input: unknown shift type, bad time string, bad range."""
    kind = "VALIDATION_ERROR"
    status_code = 422


class BadRequest(WorksheetError):
    """Request is well-formed but inconsistent with stored data."""
    kind = "BAD_REQUEST"
    status_code = 400


class NotFoundError(WorksheetError):
    kind = "NOT_FOUND"
    status_code = 404


class ConflictError(WorksheetError):
    kind = "CONFLICT"
    status_code = 409


class PermissionDenied(WorksheetError):
    kind = "PERMISSION_DENIED"
    status_code = 403


class ConfigurationError(WorksheetError):
    kind = "CONFIGURATION_ERROR"
    status_code = 500
