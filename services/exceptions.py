"""
Domain exceptions raised by the auth handlers.

The HTTP layer (api/errors.py) maps every AppError to its status and returns
the message verbatim. EmailSendError is deliberately not an AppError: mail
transport failures are unclassified and surface as 500s.
"""
from __future__ import annotations

from typing import Any, Optional


class AppError(Exception):
    """Base class for errors that carry an HTTP status."""

    status = 400
    code = "BAD_REQUEST"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        payload = {"error": self.code, "message": self.message, "status": self.status}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    """Request is well-formed but violates a business rule (e.g. email taken)."""

    status = 400
    code = "VALIDATION_ERROR"

    def __init__(self, errors: dict[str, list[str]], message: str = "One or more validation failures have occurred."):
        super().__init__(message, details=errors)
        self.errors = errors


class BadRequestError(AppError):
    status = 400
    code = "BAD_REQUEST"


class UnauthorizedError(AppError):
    status = 401
    code = "UNAUTHORIZED"


class ForbiddenError(AppError):
    status = 403
    code = "FORBIDDEN"


class NotFoundError(AppError):
    status = 404
    code = "NOT_FOUND"


class RateLimitError(AppError):
    """Security-email cooldown has not elapsed."""

    status = 429
    code = "RATE_LIMITED"

    def __init__(self, retry_after_seconds: int):
        super().__init__(
            f"Please wait {retry_after_seconds} seconds before requesting another email.",
            details={"retry_after_seconds": retry_after_seconds},
        )
        self.retry_after_seconds = retry_after_seconds


class EmailSendError(Exception):
    """SMTP delivery failed; the original error is chained as __cause__."""

    def __init__(self, destination: str):
        super().__init__(f"Failed to send email to {destination}")
        self.destination = destination


class GoogleTokenError(Exception):
    """A Google ID token could not be validated."""
