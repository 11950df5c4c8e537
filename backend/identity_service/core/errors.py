# identity_service/core/errors.py
"""
Application error taxonomy.

Every error carries an HTTP status code, a stable machine-readable code and a
human-readable message. `identity_service.main` renders them as
{"success": False, "error": {"code": ..., "message": ...}}.
"""


class ApiError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, *, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def to_dict(self) -> dict:
        return {"success": False, "error": {"code": self.code, "message": self.message}}


class ValidationError(ApiError):
    """Malformed or missing fields, duplicate username/email, missing avatar."""
    status_code = 400
    code = "VALIDATION_ERROR"


class AuthenticationError(ApiError):
    """Wrong password or unusable refresh token."""
    status_code = 401
    code = "AUTH_INVALID_CREDENTIALS"


class PersistenceError(ApiError):
    """Store write failure, token persistence failure or failed re-read."""
    status_code = 500
    code = "PERSISTENCE_ERROR"


class UploadError(ApiError):
    """Remote upload failure for a mandatory asset."""
    status_code = 500
    code = "UPLOAD_ERROR"
