"""
tests/conftest.py -- Shared test fixtures for the auth service.

This module provides:
  - clock: a tests.helpers.FakeClock for window/expiry tests
  - store: isolated named shared-memory CredentialStore per test
  - gateway / session_gateway: AuthGateway on the token / session backend
  - api_client / session_api_client: TestClient over the real app with a
    patched lifespan wired to the test store

Design: a uniquely named in-memory SQLite URI per test keeps databases apart.
CredentialStore pins in-memory databases to one connection (StaticPool)
because TestClient runs sync route handlers in a thread pool, and a fresh
:memory: connection per thread would see a blank schema.

DEBUG and API_RATE_LIMIT must be set before any api/core import so
get_settings() auto-generates SECRET_KEY and the coarse slowapi limit stays
out of the way of the per-identifier limits under test.
"""

from __future__ import annotations

import asyncio
import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: Set before any api/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("API_RATE_LIMIT", "10000/minute")

import pytest
from fastapi.testclient import TestClient

from api.main import _stop_task, _sweep_loop, app, build_gateway
from auth.gateway import AuthGateway
from auth.passwords import PasswordHasher
from auth.ratelimit import RateLimiter
from auth.sessions import SessionRegistry
from auth.store import CredentialStore
from auth.tokens import TokenCodec
from core.config import Settings, get_settings
from tests.helpers import TEST_SECRET, FakeClock

# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> Generator[CredentialStore, None, None]:
    """Fresh named shared-memory database per test."""
    s = CredentialStore(f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true")
    yield s
    s.close()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher()


@pytest.fixture
def gateway(store: CredentialStore, hasher: PasswordHasher, clock: FakeClock) -> AuthGateway:
    return AuthGateway(store, hasher, RateLimiter(clock=clock), tokens=TokenCodec(TEST_SECRET, clock=clock))


@pytest.fixture
def session_gateway(store: CredentialStore, hasher: PasswordHasher, clock: FakeClock) -> AuthGateway:
    return AuthGateway(store, hasher, RateLimiter(clock=clock), sessions=SessionRegistry(clock=clock))


# ---------------------------------------------------------------------------
# API fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(store: CredentialStore, settings: Settings):
    """Return an async context manager that replaces the real lifespan.

    Wires the test store into app.state so routes never touch the default
    database file. The sweep task is the real loop, stopped the same way the
    production lifespan stops it.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = settings
        app.state.credential_store = store
        app.state.rate_limiter = RateLimiter()
        app.state.gateway = build_gateway(settings, store, app.state.rate_limiter)
        app.state.sweep_task = asyncio.create_task(
            _sweep_loop(app.state.rate_limiter, settings.rate_limit_sweep_seconds)
        )
        yield
        await _stop_task(app.state.sweep_task)

    return test_lifespan


@pytest.fixture
def api_client(store: CredentialStore) -> Generator[tuple[TestClient, CredentialStore], None, None]:
    """Yield (client, store) for the token backend."""
    settings = get_settings().model_copy(update={"auth_backend": "token"})
    app.router.lifespan_context = _patch_lifespan(store, settings)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, store


@pytest.fixture
def session_api_client(store: CredentialStore) -> Generator[tuple[TestClient, CredentialStore], None, None]:
    """Yield (client, store) for the in-process session backend."""
    settings = get_settings().model_copy(update={"auth_backend": "session"})
    app.router.lifespan_context = _patch_lifespan(store, settings)
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client, store
