"""
auth/sessions.py -- In-process session registry (stateful token backend).

Alternative to TokenCodec, selected with AUTH_BACKEND=session. Tokens are
opaque random strings; the registry maps them to Session records. Revocation
is immediate, but the map lives in this process only: every session is lost
on restart and other instances never see it. Use this backend only for a
single long-lived process.

Lifecycle: constructed once at startup (api/main.py lifespan), stored on
app.state, dropped at process exit. One lock guards the map; every method
holds it for a single dict operation.
"""

from __future__ import annotations

import secrets
import threading
import time
from collections.abc import Callable

from auth.models import Session

_TOKEN_BYTES = 32


class SessionRegistry:
    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._sessions: dict[str, Session] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def create(self, user_id: int, email: str) -> str:
        """Store a new session and return its opaque token (256 bits of entropy)."""
        token = secrets.token_urlsafe(_TOKEN_BYTES)
        session = Session(user_id=user_id, email=email, created_at=self._clock())
        with self._lock:
            self._sessions[token] = session
        return token

    def lookup(self, token: str) -> Session | None:
        with self._lock:
            return self._sessions.get(token)

    def revoke(self, token: str) -> bool:
        """Remove a session. Returns True if it existed."""
        with self._lock:
            return self._sessions.pop(token, None) is not None

    def revoke_user(self, user_id: int) -> int:
        """Remove every session belonging to user_id. Returns the number removed."""
        with self._lock:
            stale = [t for t, s in self._sessions.items() if s.user_id == user_id]
            for token in stale:
                del self._sessions[token]
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)
