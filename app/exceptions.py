"""
DevMatch — Error taxonomy

Every failure the core reports to a caller is one of the classes below.
Each carries a machine-readable ``kind`` and the HTTP status it maps to, so
the REST layer and the real-time gateway can render the same structured
reason without leaking internal detail.
"""

from __future__ import annotations


class DevMatchError(Exception):
    """Base class for all domain errors."""

    kind: str = "server_error"
    status_code: int = 500
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"message": self.message, "error": self.kind}


class ValidationError(DevMatchError):
    """Malformed identifiers, missing fields or disallowed enum values."""

    kind = "validation_error"
    status_code = 400
    default_message = "Invalid request."


class InvalidInput(ValidationError):
    default_message = "Invalid identifier."


class InvalidAction(ValidationError):
    default_message = "Invalid action."


class AuthenticationError(DevMatchError):
    """Missing, invalid or expired credential."""

    kind = "authentication_error"
    status_code = 401
    default_message = "Could not validate credentials."


class AuthorizationError(DevMatchError):
    """Caller is not a participant, or the relationship is not matched."""

    kind = "authorization_error"
    status_code = 403
    default_message = "Not authorized for this resource."


class NotFoundError(DevMatchError):
    kind = "not_found"
    status_code = 404
    default_message = "Resource not found."


class ConflictError(DevMatchError):
    """Uniqueness or version conflict at the persistence layer."""

    kind = "conflict"
    status_code = 409
    default_message = "Conflicting concurrent write."


class ServerError(DevMatchError):
    kind = "server_error"
    status_code = 500
    default_message = "Internal server error."
