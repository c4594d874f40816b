"""
core/errors.py -- Domain error taxonomy for EventDesk.

Domain code (auth/, resources/) raises these. Only api/main.py translates them
into HTTP responses, so the same errors surface identically whether an
operation is called from a route, the CLI, or a test.

Each class carries a stable machine-readable `code` and the HTTP status the
API layer should use. `detail` is optional structured context that is safe to
show to a client (never a raw library message).
"""

from __future__ import annotations

from typing import Any


class EventDeskError(Exception):
    """Base class for every error EventDesk raises on purpose."""

    code: str = "error"
    status_code: int = 400
    default_message: str = "Request failed."

    def __init__(self, message: str | None = None, detail: Any = None) -> None:
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class DuplicateUsername(EventDeskError):
    code = "duplicate_username"
    default_message = "A user with that username already exists."


class InvalidCredentials(EventDeskError):
    code = "invalid_credentials"
    default_message = "Invalid credentials."


class MissingToken(EventDeskError):
    code = "missing_token"
    status_code = 401
    default_message = "Access denied."


class InvalidToken(EventDeskError):
    code = "invalid_token"
    status_code = 403
    default_message = "Invalid token."


class ValidationError(EventDeskError):
    """Payload rejected at a create/update boundary.

    detail is a list of {"loc": [...], "msg": "..."} dicts, one per problem.
    """

    code = "validation_error"
    default_message = "Request validation failed."


class NotFound(EventDeskError):
    code = "not_found"
    status_code = 404
    default_message = "Resource not found."
