"""
auth/ratelimit.py -- Fixed-window attempt counter keyed by identifier.

Used by AuthGateway for per-identifier limits ("login:<email>",
"signup:<client address>"). This sits behind the coarse per-address slowapi
limiter in api/limiter.py, which cannot see the email in the request body.

Window semantics (max_attempts=5, window=900s):
  call 1            -> new window, attempts=1, allowed, remaining=4
  calls 2..5        -> attempts incremented, allowed
  call 6..          -> refused, retry_after = seconds until window_reset_at
  first call after window_reset_at -> fresh window, as if call 1

Concurrency: one lock guards the record map. check() does its
read-modify-write under the lock. sweep() walks a snapshot of the keys but
re-reads and deletes each key under the lock, so a record refreshed by a
concurrent check() between snapshot and delete is left alone.

Lifecycle: constructed once at startup (api/main.py lifespan) and injected.
A background task calls sweep() every RATE_LIMIT_SWEEP_SECONDS. Swap this
class for a shared store when serving from more than one instance.
"""

from __future__ import annotations

import math
import threading
import time
from collections.abc import Callable

from auth.models import RateLimitRecord, RateLimitResult


class RateLimiter:
    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._records: dict[str, RateLimitRecord] = {}
        self._lock = threading.Lock()
        self._clock = clock

    def check(self, identifier: str, max_attempts: int, window_seconds: float) -> RateLimitResult:
        """Count one attempt for identifier and report whether it is allowed."""
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        now = self._clock()
        with self._lock:
            record = self._records.get(identifier)
            if record is None or now > record.window_reset_at:
                self._records[identifier] = RateLimitRecord(attempts=1, window_reset_at=now + window_seconds)
                return RateLimitResult(allowed=True, remaining=max_attempts - 1)

            if record.attempts >= max_attempts:
                retry_after = max(1, math.ceil(record.window_reset_at - now))
                return RateLimitResult(allowed=False, remaining=0, retry_after=retry_after)

            record.attempts += 1
            return RateLimitResult(allowed=True, remaining=max_attempts - record.attempts)

    def sweep(self) -> int:
        """Drop records whose window has already elapsed. Returns the count removed."""
        with self._lock:
            keys = list(self._records)
        removed = 0
        for key in keys:
            with self._lock:
                record = self._records.get(key)
                if record is not None and self._clock() > record.window_reset_at:
                    del self._records[key]
                    removed += 1
        return removed

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
