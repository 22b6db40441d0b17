"""
Domain exceptions.

Services raise these; the handler in app.main renders them as
{"detail": {"code": ..., "message": ...}}.
"""

from __future__ import annotations


class AppError(Exception):
    """Base for errors that map onto a specific HTTP status."""

    status_code: int = 500
    code: str = "INTERNAL_SERVER_ERROR"
    message: str = "An unexpected error occurred"

    def __init__(self, message: str | None = None, *, code: str | None = None) -> None:
        self.message = message or self.message
        self.code = code or self.code
        super().__init__(self.message)

    def to_detail(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class Unauthenticated(AppError):
    """No credential, or a credential that does not resolve to a user."""

    status_code = 401
    code = "UNAUTHENTICATED"
    message = "Authentication required"


class Forbidden(AppError):
    """Authenticated, but not allowed to do this in the workspace."""

    status_code = 403
    code = "FORBIDDEN"
    message = "Insufficient permission"


class NotFound(AppError):
    status_code = 404
    code = "NOT_FOUND"
    message = "Resource not found"


class Conflict(AppError):
    status_code = 409
    code = "CONFLICT"
    message = "Resource already exists"


class InviteExpired(AppError):
    """Kept apart from NotFound so clients can offer to request a new invite."""

    status_code = 410
    code = "INVITE_EXPIRED"
    message = "This invite has expired"


class InvalidOperation(AppError):
    status_code = 400
    code = "INVALID_OPERATION"
    message = "Operation not allowed"
