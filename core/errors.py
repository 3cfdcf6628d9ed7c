"""
core/errors.py -- Error taxonomy shared by the services and the HTTP boundary.

Every expected failure is an AppError subclass carrying its HTTP status and a
machine-readable code. Services raise them; api/main.py translates them into
the ErrorResponse envelope in one exception handler. Anything that is not an
AppError reaches the catch-all handler and becomes a 500 with no detail
(outside debug mode).

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for failures that map to a structured error response."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "An unexpected error occurred."

    def __init__(self, message: str | None = None, detail: str | None = None) -> None:
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"
    default_message = "Validation failed."


class Unauthenticated(AppError):
    status_code = 401
    code = "unauthenticated"
    default_message = "Authentication required."


class AccountDeactivated(AppError):
    status_code = 401
    code = "account_deactivated"
    default_message = "Account has been deactivated. Please contact support."


class Forbidden(AppError):
    status_code = 403
    code = "forbidden"
    default_message = "Access denied."


class NotFound(AppError):
    status_code = 404
    code = "not_found"
    default_message = "Resource not found."


class Conflict(AppError):
    # 400 rather than 409: existing clients already branch on 400 for duplicates.
    status_code = 400
    code = "conflict"
    default_message = "Resource already exists."


class InvalidOtp(AppError):
    status_code = 400
    code = "invalid_otp"
    default_message = "Invalid OTP."


class InvalidOrExpiredOtp(AppError):
    status_code = 400
    code = "invalid_or_expired_otp"
    default_message = "Invalid or expired OTP."


class Internal(AppError):
    """Unexpected failure. The message is generic; the cause rides on __cause__."""
