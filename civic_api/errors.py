"""Typed errors raised by the service layer and translated by the HTTP layer."""
from __future__ import annotations

from typing import Any


class CivicApiError(RuntimeError):
    """Base class for failures that map onto an HTTP status and envelope."""

    status_code: int = 500
    default_message: str = "Internal Server Error"

    def __init__(self, message: str | None = None, *, error: Any = None, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        self.error = error
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(CivicApiError):
    """Raised when input is missing or malformed."""

    status_code = 400
    default_message = "Validation failed"


class AuthenticationError(CivicApiError):
    status_code = 401
    default_message = "Authentication required"


class PermissionDeniedError(CivicApiError):
    status_code = 403
    default_message = "Insufficient permissions"


class NotFoundError(CivicApiError):
    status_code = 404
    default_message = "Report not found"


class ConflictError(CivicApiError):
    """Raised for double resolves in strict mode and concurrent modifications."""

    status_code = 409
    default_message = "Report was modified concurrently"


class PayloadTooLargeError(CivicApiError):
    status_code = 413
    default_message = "Uploaded payload is too large"


class UnsupportedMediaTypeError(CivicApiError):
    status_code = 415
    default_message = "Unsupported media type"


class StorageError(CivicApiError):
    """Raised when the blob store rejects or cannot accept an upload."""

    status_code = 502
    default_message = "Media storage failed"


__all__ = [
    "CivicApiError",
    "ValidationError",
    "AuthenticationError",
    "PermissionDeniedError",
    "NotFoundError",
    "ConflictError",
    "PayloadTooLargeError",
    "UnsupportedMediaTypeError",
    "StorageError",
]
