"""
auth/store.py -- SQLAlchemy Core persistence layer for user credentials.

Pattern: Repository + Data Mapper. CredentialStore is the repository;
_row_to_credential is the mapper. Gateway and route code never touch SQL.

Security:
  All queries use bound parameters. No f-strings in SQL.

  UNIQUE(email) is enforced by the database. The gateway's duplicate check is
  only a fast path; two concurrent signups for the same email both pass it,
  and the second INSERT fails with IntegrityError, which this module reports
  as ConflictError. Only one row is ever written.

Error mapping:
  IntegrityError       -> ConflictError
  other SQLAlchemyError -> StoreError (logged here with traceback; the client
                           only ever sees the generic message)

Timeouts: every connection is opened with a connect timeout (and, for
PostgreSQL, a statement timeout) of STORE_TIMEOUT_SECONDS so a slow database
cannot hold a request forever.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, event, func, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool

from auth.errors import ConflictError, StoreError
from auth.models import UserCredential

logger = logging.getLogger("dashauth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(320), nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),  # hex PBKDF2 output
    Column("password_salt", Text, nullable=False),  # hex, also the KDF salt
    Column("name", Text),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
)


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked by a signup write."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class CredentialStore:
    """Repository for UserCredential rows.

    Usage:
        store = CredentialStore("sqlite:///dashauth.db")
        user_id = store.create_user(UserCredential(email=..., password_hash=..., password_salt=...))
        user = store.get_by_email("ada@example.com")
        store.close()
    """

    def __init__(self, db_url: str, timeout_seconds: int = 10) -> None:
        connect_args: dict = {}
        engine_args: dict = {}
        in_memory = ":memory:" in db_url or "mode=memory" in db_url
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
            connect_args["timeout"] = timeout_seconds
            if in_memory:
                # One shared connection keeps the in-memory database alive across threads.
                engine_args["poolclass"] = StaticPool
        elif db_url.startswith("postgresql"):
            connect_args["connect_timeout"] = timeout_seconds
            connect_args["options"] = f"-c statement_timeout={timeout_seconds * 1000}"
        self.engine: Engine = create_engine(db_url, connect_args=connect_args, **engine_args)
        if db_url.startswith("sqlite") and not in_memory:
            event.listen(self.engine, "connect", _set_wal_mode)
        try:
            _metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            logger.exception("Could not create the users table")
            raise StoreError() from exc

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        """Open a connection and translate driver failures into StoreError."""
        try:
            with self.engine.connect() as conn:
                yield conn
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            logger.exception("Credential store operation failed")
            raise StoreError() from exc

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def create_user(self, user: UserCredential) -> int:
        """Insert a new credential row and return its assigned ID.

        Raises ConflictError if the email is already registered, including
        when a concurrent request inserted it a moment earlier.
        """
        now = _now_iso()
        try:
            with self._connect() as conn:
                result = conn.execute(
                    _users.insert().values(
                        email=user.email,
                        password_hash=user.password_hash,
                        password_salt=user.password_salt,
                        name=user.name,
                        created_at=now,
                        updated_at=now,
                    )
                )
                conn.commit()
                return result.inserted_primary_key[0]
        except IntegrityError as exc:
            raise ConflictError() from exc

    def get_by_email(self, email: str) -> UserCredential | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self._connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_credential(row) if row is not None else None

    def get_by_id(self, user_id: int) -> UserCredential | None:
        with self._connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_credential(row) if row is not None else None

    def count_users(self) -> int:
        with self._connect() as conn:
            result = conn.execute(select(func.count()).select_from(_users)).scalar()
        return result or 0

    def delete_user(self, user_id: int) -> bool:
        """Permanently delete a credential row. Returns True if a row was removed.

        Outstanding tokens for the user stop authenticating on their next use
        because the gateway re-fetches the row by id.
        """
        with self._connect() as conn:
            result = conn.execute(_users.delete().where(_users.c.id == user_id))
            conn.commit()
        return result.rowcount > 0

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self._connect() as conn:
                conn.execute(select(1))
        except StoreError:
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_credential(row) -> UserCredential:
    return UserCredential(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        password_salt=row.password_salt,
        name=row.name,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
