"""
auth/gateway.py -- register / login / authenticate / logout.

AuthGateway composes PasswordHasher, RateLimiter, CredentialStore and exactly
one token backend (TokenCodec or SessionRegistry). It is the only component
that creates tokens or sessions and the only caller of the rate limiter.

Request outcomes:
  Unauthenticated -> RateLimited        (RateLimitedError)
                  -> CredentialInvalid  (ValidationError / InvalidCredentialsError)
                  -> IdentityUnknown    (UnauthenticatedError)
                  -> Authenticated      (AuthResult / Principal)

Every failure is raised as an auth.errors.AuthError subclass; the API layer
converts them to responses in one exception handler.

Security:
  [C1] login() always runs the KDF, against a dummy hash when the email is
       unknown, and raises the same InvalidCredentialsError for unknown email
       and wrong password. Response content and timing both stay identical.

  authenticate_request() re-reads the user row by id on every call. A token
  for a deleted user is refused even though its signature and expiry are
  fine; this is the revocation path for stateless tokens.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from auth.errors import (
    ConflictError,
    InvalidCredentialsError,
    RateLimitedError,
    StoreError,
    UnauthenticatedError,
    ValidationError,
)
from auth.models import AuthResult, Principal, UserCredential
from auth.passwords import PasswordHasher
from auth.ratelimit import RateLimiter
from auth.sessions import SessionRegistry
from auth.store import CredentialStore
from auth.tokens import TokenCodec

logger = logging.getLogger("dashauth.auth")

EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_BEARER_RE = re.compile(r"Bearer (\S+)")


@dataclass(frozen=True)
class RateLimitPolicy:
    max_attempts: int
    window_seconds: int


LOGIN_POLICY = RateLimitPolicy(max_attempts=5, window_seconds=15 * 60)
SIGNUP_POLICY = RateLimitPolicy(max_attempts=3, window_seconds=60 * 60)


def parse_bearer(authorization: str | None) -> str | None:
    """Extract the token from an exact "Bearer <token>" header value."""
    if not authorization:
        return None
    match = _BEARER_RE.fullmatch(authorization)
    return match.group(1) if match else None


class AuthGateway:
    """Usage:
    gateway = AuthGateway(store, PasswordHasher(), RateLimiter(), tokens=TokenCodec(secret))
    result = gateway.register("ada@example.com", "CorrectHorse9", client_address="203.0.113.7")
    principal = gateway.authenticate_request(f"Bearer {result.token}")
    """

    def __init__(
        self,
        store: CredentialStore,
        hasher: PasswordHasher,
        limiter: RateLimiter,
        tokens: TokenCodec | None = None,
        sessions: SessionRegistry | None = None,
        login_policy: RateLimitPolicy = LOGIN_POLICY,
        signup_policy: RateLimitPolicy = SIGNUP_POLICY,
    ) -> None:
        if (tokens is None) == (sessions is None):
            raise ValueError("AuthGateway needs exactly one token backend: tokens or sessions.")
        self.store = store
        self.hasher = hasher
        self.limiter = limiter
        self.tokens = tokens
        self.sessions = sessions
        self.login_policy = login_policy
        self.signup_policy = signup_policy

    @property
    def backend(self) -> str:
        return "token" if self.tokens is not None else "session"

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _enforce(self, key: str, policy: RateLimitPolicy, message: str) -> None:
        result = self.limiter.check(key, policy.max_attempts, policy.window_seconds)
        if not result.allowed:
            logger.warning("Rate limited %s (retry in %ds)", key.split(":", 1)[0], result.retry_after)
            raise RateLimitedError(result.retry_after, message.format(seconds=result.retry_after))

    def _issue(self, user: UserCredential) -> str:
        if self.tokens is not None:
            return self.tokens.issue(user.id, user.email)
        return self.sessions.create(user.id, user.email)

    def _check_password(self, password: str, user: UserCredential | None) -> bool:
        if user is None:
            self.hasher.burn(password)
            return False
        try:
            return self.hasher.verify(password, user.password_salt, user.password_hash)
        except ValueError as exc:
            logger.error("Stored credential for user %s is malformed", user.id)
            raise StoreError() from exc

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def register(
        self,
        email: str | None,
        password: str | None,
        name: str | None = None,
        client_address: str | None = None,
    ) -> AuthResult:
        if not email or not password:
            raise ValidationError("Email and password required")
        self._enforce(
            f"signup:{client_address or 'unknown'}",
            self.signup_policy,
            "Too many signup attempts. Please try again in {seconds} seconds.",
        )
        if not EMAIL_RE.fullmatch(email):
            raise ValidationError("Invalid email format")
        strength = self.hasher.validate_strength(password)
        if not strength.valid:
            raise ValidationError(strength.reason)
        if self.store.get_by_email(email) is not None:
            raise ConflictError()

        hashed = self.hasher.hash(password)
        user_id = self.store.create_user(
            UserCredential(email=email, password_hash=hashed.hash, password_salt=hashed.salt, name=name or None)
        )
        user = self.store.get_by_id(user_id)
        if user is None:
            raise StoreError()
        logger.info("User signed up: %s", user.email)
        return AuthResult(token=self._issue(user), user=user)

    def login(self, email: str | None, password: str | None, client_address: str | None = None) -> AuthResult:
        if not email or not password:
            raise ValidationError("Email and password required")
        self._enforce(
            f"login:{email or client_address or 'unknown'}",
            self.login_policy,
            "Too many login attempts. Please try again in {seconds} seconds.",
        )
        user = self.store.get_by_email(email)
        if not self._check_password(password, user):
            logger.warning("Failed login attempt")
            raise InvalidCredentialsError()
        logger.info("User logged in: %s", user.email)
        return AuthResult(token=self._issue(user), user=user)

    def authenticate_request(self, authorization: str | None) -> Principal:
        """Resolve an Authorization header value to a Principal.

        Raises UnauthenticatedError for a missing or malformed header, an
        invalid or expired token, or a token whose user no longer exists.
        """
        token = parse_bearer(authorization)
        if token is None:
            raise UnauthenticatedError("No token provided")

        if self.tokens is not None:
            payload = self.tokens.verify(token)
            identity = (payload.user_id, payload.email) if payload else None
        else:
            session = self.sessions.lookup(token)
            identity = (session.user_id, session.email) if session else None
        if identity is None:
            raise UnauthenticatedError("Invalid or expired token")

        user = self.store.get_by_id(identity[0])
        if user is None:
            if self.sessions is not None:
                self.sessions.revoke_user(identity[0])
            logger.warning("Token presented for deleted user %s", identity[0])
            raise UnauthenticatedError("User not found")
        return Principal(user_id=user.id, email=user.email, user=user)

    def logout(self, authorization: str | None) -> None:
        """End a session. Stateless tokens are discarded client-side, so this is a no-op for them."""
        if self.sessions is None:
            return
        token = parse_bearer(authorization)
        if token is not None and self.sessions.revoke(token):
            logger.info("Session revoked")
