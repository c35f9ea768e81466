"""
auth/passwords.py -- Salted password hashing and password policy.

Security design decisions:
  KDF: PBKDF2-HMAC-SHA512 via hashlib, 64-byte output, >= 10,000 iterations.
       The salt is 16 random bytes stored as hex; the hex text itself is the
       KDF salt so credential rows written by the earlier serverless handlers
       keep verifying.

  Comparison: hmac.compare_digest on the raw digests. A mismatch at byte 0
       costs the same as a mismatch at byte 63.

  Malformed stored data (non-hex, wrong length) raises ValueError rather than
       returning False. A corrupt row is a storage problem, not a wrong
       password; the gateway reports it as StoreError.

  Policy: one minimum length for every call site (default 8) plus upper,
       lower and digit rules. Only the first failing rule is reported.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import hashlib
import hmac
import re
import secrets

from auth.models import HashedPassword, StrengthResult

_DIGEST = "sha512"
_KEY_LENGTH = 64
_SALT_BYTES = 16


class PasswordHasher:
    """Derive and check password hashes.

    Usage:
        hasher = PasswordHasher()
        hashed = hasher.hash("CorrectHorse9")
        hasher.verify("CorrectHorse9", hashed.salt, hashed.hash)  # True
    """

    def __init__(self, iterations: int = 10_000, min_length: int = 8) -> None:
        if iterations < 10_000:
            raise ValueError("PBKDF2 iterations must be at least 10000.")
        self.iterations = iterations
        self.min_length = min_length
        # Timing equalization pair [C1]. Computed once so a login for an unknown
        # email pays the same KDF cost as a wrong password for a real one.
        self._dummy = self.hash(secrets.token_urlsafe(16))

    def _derive(self, password: str, salt: str) -> bytes:
        return hashlib.pbkdf2_hmac(_DIGEST, password.encode("utf-8"), salt.encode("utf-8"), self.iterations, _KEY_LENGTH)

    def hash(self, password: str) -> HashedPassword:
        """Return a fresh random salt and the derived hash, both hex-encoded."""
        salt = secrets.token_hex(_SALT_BYTES)
        return HashedPassword(salt=salt, hash=self._derive(password, salt).hex())

    def verify(self, password: str, salt: str, stored_hash: str) -> bool:
        """Return True if password derives to stored_hash under salt.

        Raises ValueError if the stored salt or hash is not well-formed.
        """
        if not salt:
            raise ValueError("stored password salt is empty")
        try:
            expected = bytes.fromhex(stored_hash)
        except (TypeError, ValueError) as exc:
            raise ValueError("stored password hash is not hex") from exc
        if len(expected) != _KEY_LENGTH:
            raise ValueError("stored password hash has the wrong length")
        return hmac.compare_digest(self._derive(password, salt), expected)

    def burn(self, password: str) -> None:
        """Run one verification against the dummy pair and discard the result."""
        self.verify(password, self._dummy.salt, self._dummy.hash)

    def validate_strength(self, password: str) -> StrengthResult:
        if len(password) < self.min_length:
            return StrengthResult(False, f"Password must be at least {self.min_length} characters long")
        if not re.search(r"[A-Z]", password):
            return StrengthResult(False, "Password must contain at least one uppercase letter")
        if not re.search(r"[a-z]", password):
            return StrengthResult(False, "Password must contain at least one lowercase letter")
        if not re.search(r"[0-9]", password):
            return StrengthResult(False, "Password must contain at least one number")
        return StrengthResult(True)
