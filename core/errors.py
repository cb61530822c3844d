"""
core/errors.py -- Domain error taxonomy.

Stores and auth dependencies raise these; api/main.py registers a single
exception handler that turns any AppError into the error envelope:

    {"success": false, "error": {"code": ..., "message": ..., "details": ...}}

Each subclass fixes its HTTP status and machine-readable code so route
handlers never pick status codes for domain failures by hand.

Layer rule: stdlib only. Importable from every other package.
"""

from typing import Any, Optional


class AppError(Exception):
    """Base class for errors that map to a structured API response."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str = "An unexpected error occurred.", details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(AppError):
    """Malformed or missing input that passed schema validation but not business rules."""

    status_code = 400
    code = "validation_error"


class UnknownReference(ValidationError):
    """A foreign key points at a row that does not exist or is soft-deleted."""

    code = "unknown_reference"


class Unauthenticated(AppError):
    status_code = 401
    code = "unauthenticated"


class Forbidden(AppError):
    status_code = 403
    code = "forbidden"


class NotFound(AppError):
    status_code = 404
    code = "not_found"


class InvalidState(AppError):
    """The row exists but is not in a state that allows the operation."""

    status_code = 400
    code = "invalid_state"


class Conflict(AppError):
    """A uniqueness or referential constraint was rejected by the database."""

    status_code = 409
    code = "conflict"


class Internal(AppError):
    pass
