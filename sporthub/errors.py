"""Operational error taxonomy shared by services, gates, and routes."""

from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base class for errors that map onto the API error envelope."""

    status_code = 500
    code = "INTERNAL_SERVER_ERROR"
    default_message = "Internal server error."
    is_operational = True

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        details: Any = None,
    ) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)
        if code is not None:
            self.code = code
        self.details = details


class BadRequestError(AppError):
    status_code = 400
    code = "BAD_REQUEST"
    default_message = "Bad request."


class ValidationError(AppError):
    """Malformed input, with field-level details."""

    status_code = 400
    code = "VALIDATION_ERROR"
    default_message = "Validation failed."


class UnauthorizedError(AppError):
    status_code = 401
    code = "UNAUTHORIZED"
    default_message = "Authentication required."


class InvalidCredentialsError(UnauthorizedError):
    """Wrong email or password; never says which."""

    code = "INVALID_CREDENTIALS"
    default_message = "Invalid email or password."


class NoTokenError(UnauthorizedError):
    code = "NO_TOKEN"
    default_message = "No authentication token provided."


class InvalidOrExpiredTokenError(UnauthorizedError):
    """Token failed signature, payload, expiry, or type checks."""

    code = "INVALID_TOKEN"
    default_message = "Invalid or expired token."


class ExpiredTokenError(InvalidOrExpiredTokenError):
    code = "TOKEN_EXPIRED"
    default_message = "Token has expired."


class InvalidTokenError(InvalidOrExpiredTokenError):
    code = "INVALID_TOKEN"
    default_message = "Invalid token."


class WrongTokenTypeError(InvalidOrExpiredTokenError):
    code = "WRONG_TOKEN_TYPE"
    default_message = "Invalid token type."


class InvalidOrRevokedTokenError(UnauthorizedError):
    """Refresh token is well-formed but has no live session behind it."""

    code = "TOKEN_REVOKED"
    default_message = "Invalid or revoked refresh token."


class UserNotFoundError(UnauthorizedError):
    code = "USER_NOT_FOUND"
    default_message = "User not found."


class ForbiddenError(AppError):
    status_code = 403
    code = "FORBIDDEN"
    default_message = "Forbidden."


class InsufficientPermissionsError(ForbiddenError):
    code = "INSUFFICIENT_PERMISSIONS"
    default_message = "You do not have permission to perform this action."


class AccountInactiveError(ForbiddenError):
    code = "ACCOUNT_INACTIVE"
    default_message = "User account is inactive."


class NotFoundError(AppError):
    status_code = 404
    code = "NOT_FOUND"
    default_message = "Resource not found."

    @classmethod
    def resource(cls, resource: str, resource_id: str | None = None) -> NotFoundError:
        """Build a not-found error naming the missing resource."""
        if resource_id:
            return cls(f"{resource} with ID '{resource_id}' not found.")
        return cls(f"{resource} not found.")


class ConflictError(AppError):
    status_code = 409
    code = "CONFLICT"
    default_message = "Resource already exists."


class RateLimitedError(AppError):
    status_code = 429
    code = "RATE_LIMITED"
    default_message = "Rate limit exceeded."


class IncorrectPasswordError(BadRequestError):
    code = "INCORRECT_PASSWORD"
    default_message = "Current password is incorrect."


class PasswordSameAsOldError(BadRequestError):
    code = "PASSWORD_SAME_AS_OLD"
    default_message = "New password must be different from current password."


class SelfModificationError(BadRequestError):
    code = "SELF_MODIFICATION_NOT_ALLOWED"
    default_message = "You cannot modify your own account."


class InternalServerError(AppError):
    """Unexpected failure; never exposed verbatim outside development."""

    is_operational = False


def is_trusted_error(error: BaseException) -> bool:
    """Return True for operational errors whose message is safe to show clients."""
    return isinstance(error, AppError) and error.is_operational
