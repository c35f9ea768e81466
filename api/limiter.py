"""
api/limiter.py -- Shared slowapi rate limiter instance and client addressing.

Import this in api/main.py (to mount as middleware) and in
api/routes/v1/auth.py (to apply per-route limits with @limiter.limit()).

Two layers of throttling protect the auth routes:
  1. slowapi (here)          -- coarse per-address cap, API_RATE_LIMIT
  2. auth.ratelimit          -- per-identifier fixed windows inside the gateway
                                (login per email, signup per address)

Using a single shared instance ensures all routes share the same in-memory
counter store.
"""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings


def client_address(request: Request) -> str:
    """Return the caller's address, preferring the first X-Forwarded-For hop.

    The hosting platform terminates connections at its edge, so the socket
    peer is the proxy and the real client is the left-most forwarded entry.
    """
    forwarded = request.headers.get("X-Forwarded-For", "")
    first = forwarded.split(",")[0].strip()
    if first:
        return first
    return get_remote_address(request)


def api_rate_limit() -> str:
    return get_settings().api_rate_limit


limiter = Limiter(key_func=client_address, storage_uri="memory://")
