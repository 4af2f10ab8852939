"""
Error taxonomy shared by the stores and the HTTP layer.

Each error carries the HTTP status it is rendered with; the handlers in
main.py turn them into ``{"error": ..., "message": ...}`` payloads.
"""
from typing import Optional


class PortalError(Exception):
    status_code = 500
    error = "Internal Server Error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.error)
        self.message = message

    def to_dict(self) -> dict:
        body = {"error": self.error}
        if self.message:
            body["message"] = self.message
        return body


class ValidationError(PortalError):
    status_code = 400
    error = "Bad Request"


class NotFoundError(PortalError):
    status_code = 404
    error = "Not Found"


class RevisionConflictError(PortalError):
    status_code = 409
    error = "Conflict"


class UnknownReferenceError(PortalError):
    """A write names a user id that does not exist."""

    status_code = 422
    error = "Unknown Reference"


class StoreError(PortalError):
    status_code = 500
    error = "Internal Server Error"
