"""Error taxonomy for authentication and privilege flows.

Every ``AuthError`` carries the HTTP status and a stable, human-readable
message; the API layer turns it into ``{"success": false, "message": ...}``.
"""

from typing import Optional


class AuthError(Exception):
    status_code = 400
    default_message = "Request could not be processed."

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidCredentials(AuthError):
    status_code = 401
    default_message = "Invalid credentials."


class AccountInactive(AuthError):
    status_code = 403
    default_message = "Account deactivated. Contact admin."


class TokenExpired(AuthError):
    status_code = 401
    default_message = "Token expired. Please login again."


class TokenInvalid(AuthError):
    status_code = 401
    default_message = "Invalid token."


class TokenMissing(TokenInvalid):
    default_message = "No token provided. Access denied."


class TokenPurposeMismatch(AuthError):
    status_code = 400
    default_message = "Invalid token purpose."


class OtpInvalid(AuthError):
    status_code = 400
    default_message = "Invalid OTP code."


class EmailAlreadyRegistered(AuthError):
    status_code = 409
    default_message = "Email already registered."


class ResourceNotFound(AuthError):
    status_code = 404
    default_message = "Resource not found."


class ValidationError(AuthError):
    status_code = 400
    default_message = "Validation error."


class Forbidden(AuthError):
    status_code = 403
    default_message = "Access denied."


class PasswordHashingError(RuntimeError):
    """Raised when a stored digest cannot be processed by the hash library."""


class PersistenceError(RuntimeError):
    """Raised by a repository when the backing store rejects a write."""
