"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and the
gateway do the work; routes map these onto the pydantic transport models
in api/models.py.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class UserCredential:
    """A persisted login identity -- one row of the users table.

    email is unique and compared case-sensitively, exactly as stored.
    password_hash / password_salt are hex strings written by PasswordHasher;
    they never leave the auth package (see public_fields()).
    """

    email: str
    password_hash: str
    password_salt: str
    name: str | None = None
    id: int | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def public_fields(self) -> dict:
        """Return the fields safe to expose to a client."""
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class HashedPassword:
    salt: str
    hash: str


@dataclass(frozen=True)
class StrengthResult:
    """Outcome of a password policy check. reason names the first failing rule."""

    valid: bool
    reason: str | None = None


@dataclass(frozen=True)
class TokenPayload:
    """Decoded body of a stateless token. iat / exp are epoch milliseconds."""

    user_id: int
    email: str
    issued_at: int
    expires_at: int


@dataclass(frozen=True)
class Session:
    """A server-side session held by SessionRegistry."""

    user_id: int
    email: str
    created_at: float


@dataclass
class RateLimitRecord:
    attempts: int
    window_reset_at: float  # epoch seconds


@dataclass(frozen=True)
class RateLimitResult:
    """Outcome of RateLimiter.check().

    retry_after is whole seconds until the window resets; None when allowed.
    """

    allowed: bool
    remaining: int
    retry_after: int | None = None


@dataclass(frozen=True)
class Principal:
    """The authenticated identity attached to a request."""

    user_id: int
    email: str
    user: UserCredential


@dataclass(frozen=True)
class AuthResult:
    """Successful register/login: the issued token plus the stored user."""

    token: str
    user: UserCredential
