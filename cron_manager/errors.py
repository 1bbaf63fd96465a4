"""Error taxonomy shared by adapters, services and the HTTP layer.

Callers branch on :class:`ErrorKind`, never on message text.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation_error"
    NOT_FOUND = "not_found"
    FORBIDDEN = "forbidden"
    UNAUTHORIZED = "unauthorized"
    CONFLICT = "conflict"
    INFRASTRUCTURE = "infrastructure_error"


_STATUS_CODES = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.FORBIDDEN: 403,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INFRASTRUCTURE: 500,
}


class AppError(Exception):
    """Base class for every error surfaced to API callers."""

    kind: ErrorKind = ErrorKind.INFRASTRUCTURE

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self.kind]

    def to_dict(self) -> dict:
        return {"error": self.kind.value, "detail": self.message}


class ValidationError(AppError):
    """Raised when user payload or parameters are invalid."""

    kind = ErrorKind.VALIDATION


class NotFoundError(AppError):
    kind = ErrorKind.NOT_FOUND


class ForbiddenError(AppError):
    """Raised when accessing a resource from a different workspace."""

    kind = ErrorKind.FORBIDDEN


class UnauthorizedError(AppError):
    kind = ErrorKind.UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ConflictError(AppError):
    """Raised when a conditional write finds an existing row."""

    kind = ErrorKind.CONFLICT


class InfrastructureError(AppError):
    """Raised when the store or the trigger registry call fails."""

    kind = ErrorKind.INFRASTRUCTURE
