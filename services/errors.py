"""
Error taxonomy shared by every service.

Each operation either succeeds or raises exactly one ServiceError subclass;
the API layer turns the class into an HTTP status and the uniform
{success: false, error, message, errors?} envelope.
"""
from __future__ import annotations

from typing import Optional


class ServiceError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"
    default_message = "An unexpected error occurred"

    def __init__(self, message: Optional[str] = None, errors: Optional[list] = None):
        self.message = message or self.default_message
        self.errors = errors
        super().__init__(self.message)


class ValidationFailed(ServiceError):
    status_code = 422
    code = "VALIDATION_ERROR"
    default_message = "Validation failed"


class InvalidOrExpiredToken(ServiceError):
    status_code = 400
    code = "INVALID_OR_EXPIRED_TOKEN"
    default_message = "Invalid or expired token"


class InvalidCredentials(ServiceError):
    status_code = 401
    code = "INVALID_CREDENTIALS"
    default_message = "Invalid credentials"


class AccountInactive(ServiceError):
    status_code = 401
    code = "ACCOUNT_INACTIVE"
    default_message = "User not found or inactive"


class InvalidToken(ServiceError):
    status_code = 401
    code = "INVALID_TOKEN"
    default_message = "Invalid token"


class ExpiredToken(ServiceError):
    status_code = 401
    code = "TOKEN_EXPIRED"
    default_message = "Token expired"


class Unauthenticated(ServiceError):
    status_code = 401
    code = "UNAUTHENTICATED"
    default_message = "Authentication required"


class Forbidden(ServiceError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Insufficient permissions"


class NotFound(ServiceError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found"


class Conflict(ServiceError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Resource already exists"


class AccountLocked(ServiceError):
    status_code = 423
    code = "ACCOUNT_LOCKED"
    default_message = "Account is locked. Please try again later."
