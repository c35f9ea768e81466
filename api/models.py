"""
API request and response models for the auth REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

JSON field names are camelCase on the wire (createdAt, retryAfter) to match
what the dashboard front end already reads; Python attributes stay snake_case.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from auth.models import UserCredential

_WIRE_CONFIG = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class SignupRequest(BaseModel):
    """Request body for POST /api/v1/auth/signup.

    Fields are optional at the schema level so a missing email or password
    yields the gateway's "Email and password required" message rather than a
    generic schema error.
    """

    email: Optional[str] = Field(default=None, max_length=320)
    password: Optional[str] = Field(default=None, max_length=255)
    name: Optional[str] = Field(default=None, max_length=200)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: Optional[str] = Field(default=None, max_length=320)
    password: Optional[str] = Field(default=None, max_length=255)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserResponse(BaseModel):
    """Public user fields. Password hash and salt are never part of this model."""

    model_config = _WIRE_CONFIG

    id: int
    email: str
    name: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_credential(cls, user: UserCredential) -> "UserResponse":
        return cls(**user.public_fields())


class AuthResponse(BaseModel):
    """Response for a successful signup or login."""

    model_config = _WIRE_CONFIG

    success: bool = True
    token: str
    user: UserResponse


class VerifyResponse(BaseModel):
    """Response for GET /api/v1/auth/verify."""

    model_config = _WIRE_CONFIG

    success: bool = True
    user: UserResponse


class LogoutResponse(BaseModel):
    model_config = _WIRE_CONFIG

    success: bool = True


class ErrorResponse(BaseModel):
    """Error envelope returned on 4xx/5xx responses.

    error is a human-readable, client-safe message. retry_after is present
    only on 429 responses.
    """

    model_config = _WIRE_CONFIG

    error: str
    code: str
    retry_after: Optional[int] = None


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    version: str
    backend: str
    database: str
