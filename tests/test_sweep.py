"""
tests/test_sweep.py -- The background rate-limit sweep started by the lifespan.

Covers:
  - _sweep_loop removes expired windows on its own schedule
  - _stop_task cancels the loop and waits for it to finish
  - the real lifespan starts the task and leaves it finished after shutdown
"""

from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

import api.main as main_module
from api.main import _stop_task, _sweep_loop
from auth.ratelimit import RateLimiter
from core.config import get_settings
from tests.helpers import FakeClock


def test_sweep_loop_drops_expired_windows(clock: FakeClock) -> None:
    limiter = RateLimiter(clock=clock)
    limiter.check("login:ada@example.com", 5, 60)
    limiter.check("login:grace@example.com", 5, 3600)
    clock.advance(61)

    async def scenario() -> int:
        task = asyncio.create_task(_sweep_loop(limiter, 0.01))
        for _ in range(200):
            if len(limiter) == 1:
                break
            await asyncio.sleep(0.01)
        await _stop_task(task)
        assert task.cancelled()
        return len(limiter)

    assert asyncio.run(scenario()) == 1
    assert limiter.check("login:grace@example.com", 2, 3600).allowed is True
    assert limiter.check("login:grace@example.com", 2, 3600).allowed is False


def test_stop_task_on_finished_task() -> None:
    async def scenario() -> None:
        task = asyncio.create_task(asyncio.sleep(0))
        await task
        await _stop_task(task)
        assert task.done()

    asyncio.run(scenario())


def test_real_lifespan_starts_and_stops_sweep(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'lifespan.db'}")
    get_settings.cache_clear()
    monkeypatch.setattr(main_module.app.router, "lifespan_context", main_module.lifespan)
    try:
        with TestClient(main_module.app) as client:
            task = client.app.state.sweep_task
            assert not task.done()
            assert client.get("/api/v1/health").json()["database"] == "ok"
        assert task.done()
    finally:
        get_settings.cache_clear()
