"""Unit tests for auth/sessions.py -- in-process session registry."""

from __future__ import annotations

import threading

from auth.sessions import SessionRegistry
from tests.helpers import FakeClock


def test_create_and_lookup(clock: FakeClock) -> None:
    registry = SessionRegistry(clock=clock)
    token = registry.create(1, "ada@example.com")
    assert len(token) >= 43  # 32 bytes, urlsafe base64
    session = registry.lookup(token)
    assert session is not None
    assert session.user_id == 1
    assert session.email == "ada@example.com"
    assert session.created_at == clock()


def test_tokens_are_unique() -> None:
    registry = SessionRegistry()
    tokens = {registry.create(1, "ada@example.com") for _ in range(100)}
    assert len(tokens) == 100
    assert len(registry) == 100


def test_unknown_token_lookup() -> None:
    assert SessionRegistry().lookup("nope") is None


def test_revoke() -> None:
    registry = SessionRegistry()
    token = registry.create(1, "ada@example.com")
    assert registry.revoke(token) is True
    assert registry.lookup(token) is None
    assert registry.revoke(token) is False


def test_revoke_user_leaves_other_users() -> None:
    registry = SessionRegistry()
    a1 = registry.create(1, "ada@example.com")
    a2 = registry.create(1, "ada@example.com")
    g = registry.create(2, "grace@example.com")
    assert registry.revoke_user(1) == 2
    assert registry.lookup(a1) is None
    assert registry.lookup(a2) is None
    assert registry.lookup(g) is not None


def test_concurrent_creates_are_all_stored() -> None:
    registry = SessionRegistry()
    tokens: list[str] = []
    lock = threading.Lock()

    def worker(uid: int) -> None:
        for _ in range(25):
            token = registry.create(uid, f"user{uid}@example.com")
            with lock:
                tokens.append(token)

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(registry) == 200
    assert all(registry.lookup(t) is not None for t in tokens)
