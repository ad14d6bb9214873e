"""
Application error types.

Domain code raises these; the API layer renders them as
``{"error": {"code", "message", "details"}}`` with the matching status.
"""

from typing import Any, Optional


class AppError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(AppError):
    """Inquiry, assignee, project, file or user does not exist."""

    status_code = 404
    code = "NOT_FOUND"


class ForbiddenError(AppError):
    """Permission gate denied the operation."""

    status_code = 403
    code = "FORBIDDEN"


class UnauthorizedError(AppError):
    """Caller identity missing, or file token invalid/expired."""

    status_code = 401
    code = "UNAUTHORIZED"


class InvalidRequestError(AppError):
    """Precondition failed: membership, payload shape or state."""

    status_code = 400
    code = "INVALID_REQUEST"


class InvalidStateError(InvalidRequestError):
    """Transition not allowed from the inquiry's current status."""


class AlreadyExistsError(AppError):
    """Unique key already taken (e.g. duplicate assignee)."""

    status_code = 409
    code = "ALREADY_EXISTS"
