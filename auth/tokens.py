"""
auth/tokens.py -- Stateless signed bearer tokens.

Wire format:
    base64(payload_json) + "." + base64(HMAC-SHA256(secret, base64(payload_json)))

  payload_json is compact JSON with sorted keys:
    {"email": str, "exp": int, "iat": int, "userId": int}
  iat / exp are epoch milliseconds; exp = iat + validity window.

Security design decisions:
  The signature is computed over the *encoded* payload, so verification never
  parses attacker-controlled JSON before the MAC has been checked.

  Verification returns None on any failure (no separator, bad signature,
  undecodable payload, wrong field types, expired). The gateway turns None
  into UnauthenticatedError -- callers never see why a token was refused.

  Signature comparison uses hmac.compare_digest.

  The codec refuses to exist without a real secret. There is no default
  string to fall back on; a missing SECRET_KEY stops startup in
  core.config before this class is ever constructed.

Tokens cannot be revoked before expiry. Deleting the user row is the
revocation path: AuthGateway re-fetches the user on every request.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
import time
from collections.abc import Callable

from auth.models import TokenPayload

logger = logging.getLogger("dashauth.auth")

_SEPARATOR = "."
MIN_SECRET_LENGTH = 32


class TokenCodec:
    """Issue and verify signed tokens.

    Usage:
        codec = TokenCodec(secret=settings.secret_key)
        token = codec.issue(42, "ada@example.com")
        payload = codec.verify(token)   # TokenPayload or None
    """

    def __init__(
        self,
        secret: str,
        validity_seconds: int = 7 * 24 * 3600,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not secret or len(secret) < MIN_SECRET_LENGTH:
            raise ValueError(f"Token signing secret must be at least {MIN_SECRET_LENGTH} characters.")
        if validity_seconds <= 0:
            raise ValueError("validity_seconds must be positive.")
        self._key = secret.encode("utf-8")
        self.validity_ms = validity_seconds * 1000
        self._clock = clock

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _sign(self, encoded_payload: str) -> str:
        digest = hmac.new(self._key, encoded_payload.encode("ascii"), hashlib.sha256).digest()
        return base64.b64encode(digest).decode("ascii")

    def issue(self, user_id: int, email: str) -> str:
        issued_at = self._now_ms()
        payload = {
            "userId": user_id,
            "email": email,
            "iat": issued_at,
            "exp": issued_at + self.validity_ms,
        }
        body = json.dumps(payload, separators=(",", ":"), sort_keys=True)
        encoded = base64.b64encode(body.encode("utf-8")).decode("ascii")
        return f"{encoded}{_SEPARATOR}{self._sign(encoded)}"

    def verify(self, token: str) -> TokenPayload | None:
        """Return the payload of a valid, unexpired token, or None."""
        if not token or _SEPARATOR not in token:
            return None
        encoded, _, signature = token.partition(_SEPARATOR)
        if not encoded or not signature:
            return None

        try:
            expected = self._sign(encoded).encode("ascii")
            presented = signature.encode("ascii")
        except UnicodeEncodeError:
            return None
        if not hmac.compare_digest(expected, presented):
            return None

        try:
            data = json.loads(base64.b64decode(encoded, validate=True).decode("utf-8"))
        except (binascii.Error, UnicodeDecodeError, ValueError):
            logger.warning("Signed token carried an undecodable payload")
            return None
        payload = _to_payload(data)
        if payload is None:
            return None
        if payload.expires_at < self._now_ms():
            return None
        return payload


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _to_payload(data: object) -> TokenPayload | None:
    if not isinstance(data, dict):
        return None
    user_id, email, iat, exp = data.get("userId"), data.get("email"), data.get("iat"), data.get("exp")
    if not (_is_int(user_id) and isinstance(email, str) and _is_int(iat) and _is_int(exp)):
        return None
    return TokenPayload(user_id=user_id, email=email, issued_at=iat, expires_at=exp)
