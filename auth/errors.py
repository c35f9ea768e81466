"""
auth/errors.py -- Exception taxonomy for the authentication subsystem.

Every error carries the HTTP status and machine-readable code it maps to, so
the API layer converts them with a single exception handler. Messages are
client-safe: nothing here ever embeds driver errors, SQL, or stack details.

  ValidationError          400  missing or malformed input
  ConflictError            409  email already registered
  InvalidCredentialsError  401  wrong email or password (never says which)
  RateLimitedError         429  carries retry_after seconds
  UnauthenticatedError     401  missing/malformed/expired/forged token, or deleted user
  StoreError               500  persistence unavailable or stored data corrupt
"""

from __future__ import annotations


class AuthError(Exception):
    status_code: int = 400
    code: str = "auth_error"
    default_message: str = "Authentication error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthError):
    status_code = 400
    code = "invalid_input"
    default_message = "Invalid input"


class ConflictError(AuthError):
    status_code = 409
    code = "conflict"
    default_message = "User already exists"


class InvalidCredentialsError(AuthError):
    status_code = 401
    code = "invalid_credentials"
    default_message = "Invalid email or password"


class RateLimitedError(AuthError):
    status_code = 429
    code = "rate_limited"
    default_message = "Too many attempts. Please try again later."

    def __init__(self, retry_after: int, message: str | None = None) -> None:
        self.retry_after = retry_after
        super().__init__(message)


class UnauthenticatedError(AuthError):
    status_code = 401
    code = "unauthenticated"
    default_message = "Authentication required"


class StoreError(AuthError):
    status_code = 500
    code = "server_error"
    default_message = "Server error"
