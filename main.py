#!/usr/bin/env python3
"""
Dashboard auth -- administrative command line.

Usage:
  python main.py create-user ada@example.com --name "Ada"
  python main.py delete-user ada@example.com
  python main.py inspect-token <token>

Environment variables:
  DATABASE_URL  Credential database (default: local SQLite file).
  SECRET_KEY    Token signing secret. Required unless DEBUG=true.

delete-user is the revocation path for stateless tokens: once the row is
gone, every outstanding token for that user is refused on its next use.
"""

import argparse
import getpass
import sys
from datetime import datetime, timezone
from typing import Optional

from auth.errors import ConflictError, StoreError
from auth.gateway import EMAIL_RE
from auth.models import UserCredential
from auth.passwords import PasswordHasher
from auth.store import CredentialStore
from auth.tokens import TokenCodec
from core.config import get_settings


def _open_store() -> CredentialStore:
    settings = get_settings()
    return CredentialStore(settings.database_url, settings.store_timeout_seconds)


def _read_password() -> str:
    first = getpass.getpass("Password: ")
    second = getpass.getpass("Repeat password: ")
    if first != second:
        print("  [!] Passwords do not match.")
        return ""
    return first


def create_user(email: str, name: Optional[str], password: Optional[str] = None) -> int:
    """Create a credential row. Returns a process exit code."""
    if not EMAIL_RE.fullmatch(email):
        print(f"  [!] '{email}' is not a valid email address.")
        return 2
    settings = get_settings()
    hasher = PasswordHasher(iterations=settings.pbkdf2_iterations, min_length=settings.password_min_length)
    password = password if password is not None else _read_password()
    if not password:
        return 2
    strength = hasher.validate_strength(password)
    if not strength.valid:
        print(f"  [!] {strength.reason}.")
        return 2

    hashed = hasher.hash(password)
    store = _open_store()
    try:
        user_id = store.create_user(
            UserCredential(email=email, password_hash=hashed.hash, password_salt=hashed.salt, name=name)
        )
    except ConflictError:
        print(f"  [!] A user with email '{email}' already exists.")
        return 1
    except StoreError:
        print("  [!] The credential database is unavailable.")
        return 1
    finally:
        store.close()
    print(f"  Created user {user_id} ({email}).")
    return 0


def delete_user(email: str) -> int:
    store = _open_store()
    try:
        user = store.get_by_email(email)
        if user is None:
            print(f"  [!] No user with email '{email}'.")
            return 1
        store.delete_user(user.id)
    except StoreError:
        print("  [!] The credential database is unavailable.")
        return 1
    finally:
        store.close()
    print(f"  Deleted user {user.id} ({email}). Outstanding tokens are now refused.")
    return 0


def _fmt_ms(epoch_ms: int) -> str:
    return datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc).isoformat()


def inspect_token(token: str) -> int:
    settings = get_settings()
    payload = TokenCodec(settings.secret_key, validity_seconds=settings.token_validity_seconds).verify(token)
    if payload is None:
        print("  invalid (bad signature, malformed, or expired)")
        return 1
    print(f"  user_id:    {payload.user_id}")
    print(f"  email:      {payload.email}")
    print(f"  issued_at:  {_fmt_ms(payload.issued_at)}")
    print(f"  expires_at: {_fmt_ms(payload.expires_at)}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="dashauth",
        description="Manage dashboard user credentials and inspect bearer tokens.",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    create = sub.add_parser("create-user", help="Create a user (password is prompted)")
    create.add_argument("email")
    create.add_argument("--name", default=None, help="Display name")

    delete = sub.add_parser("delete-user", help="Delete a user and invalidate their tokens")
    delete.add_argument("email")

    inspect = sub.add_parser("inspect-token", help="Verify a token and print its payload")
    inspect.add_argument("token")

    args = parser.parse_args(argv)

    if args.command == "create-user":
        return create_user(args.email, args.name)
    if args.command == "delete-user":
        return delete_user(args.email)
    if args.command == "inspect-token":
        return inspect_token(args.token)
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
