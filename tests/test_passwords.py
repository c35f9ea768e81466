"""Unit tests for auth/passwords.py -- PBKDF2 hashing and password policy.

Covers:
- hash() output shape (hex salt, 64-byte hex hash) and per-call salts
- verify() accepts the right password and rejects others
- verify() accepts rows written the way the serverless handlers wrote them
- malformed stored data raises instead of reading as a wrong password
- validate_strength() reports the first failing rule only
"""

import hashlib

import pytest

from auth.passwords import PasswordHasher


def test_hash_shape(hasher: PasswordHasher) -> None:
    hashed = hasher.hash("CorrectHorse9")
    assert len(hashed.salt) == 32  # 16 bytes, hex
    assert len(hashed.hash) == 128  # 64 bytes, hex
    int(hashed.salt, 16)
    int(hashed.hash, 16)


def test_same_password_gets_fresh_salt(hasher: PasswordHasher) -> None:
    a = hasher.hash("CorrectHorse9")
    b = hasher.hash("CorrectHorse9")
    assert a.salt != b.salt
    assert a.hash != b.hash


def test_verify_round_trip(hasher: PasswordHasher) -> None:
    hashed = hasher.hash("CorrectHorse9")
    assert hasher.verify("CorrectHorse9", hashed.salt, hashed.hash) is True
    assert hasher.verify("CorrectHorse8", hashed.salt, hashed.hash) is False
    assert hasher.verify("correcthorse9", hashed.salt, hashed.hash) is False


def test_verify_accepts_legacy_rows(hasher: PasswordHasher) -> None:
    """The hex salt text is the KDF salt -- rows from the earlier service keep working."""
    salt = "00112233445566778899aabbccddeeff"
    stored = hashlib.pbkdf2_hmac("sha512", b"Legacy123", salt.encode(), 10_000, 64).hex()
    assert hasher.verify("Legacy123", salt, stored) is True


@pytest.mark.parametrize(
    "salt, stored",
    [
        ("00112233445566778899aabbccddeeff", "not-hex"),
        ("00112233445566778899aabbccddeeff", "abcd"),
        ("", "00" * 64),
    ],
)
def test_malformed_stored_data_raises(hasher: PasswordHasher, salt: str, stored: str) -> None:
    with pytest.raises(ValueError):
        hasher.verify("anything", salt, stored)


def test_rejects_weak_iteration_count() -> None:
    with pytest.raises(ValueError):
        PasswordHasher(iterations=1000)


@pytest.mark.parametrize(
    "password, reason",
    [
        ("Ab1", "Password must be at least 8 characters long"),
        ("lowercase1", "Password must contain at least one uppercase letter"),
        ("UPPERCASE1", "Password must contain at least one lowercase letter"),
        ("NoDigitsHere", "Password must contain at least one number"),
    ],
)
def test_validate_strength_reports_first_failure(hasher: PasswordHasher, password: str, reason: str) -> None:
    result = hasher.validate_strength(password)
    assert result.valid is False
    assert result.reason == reason


def test_validate_strength_accepts_strong_password(hasher: PasswordHasher) -> None:
    result = hasher.validate_strength("CorrectHorse9")
    assert result.valid is True
    assert result.reason is None


def test_six_character_passwords_are_rejected(hasher: PasswordHasher) -> None:
    """One minimum for every call site: 8, not the older 6."""
    assert hasher.validate_strength("Abc123").valid is False
    assert hasher.validate_strength("Abcd1234").valid is True
