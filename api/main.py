"""
api/main.py -- FastAPI application entry point for the dashboard auth service.

Run with:  uvicorn asgi:app --reload

Middleware stack:
  SlowAPIMiddleware -- enforces per-route coarse limits from api.limiter

Lifespan builds every process-scoped component exactly once and stores it on
app.state:
  settings         -- core.config.Settings
  credential_store -- auth.store.CredentialStore
  rate_limiter     -- auth.ratelimit.RateLimiter (swept by a background task)
  gateway          -- auth.gateway.AuthGateway wired to the above plus one
                      token backend: TokenCodec, or SessionRegistry when
                      AUTH_BACKEND=session
Shutdown cancels the sweep task and disposes the database engine.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException

from api.limiter import limiter
from api.models import ErrorResponse, HealthResponse
from api.routes.v1.auth import router as auth_router
from auth.errors import AuthError, RateLimitedError, StoreError
from auth.gateway import AuthGateway, RateLimitPolicy
from auth.passwords import PasswordHasher
from auth.ratelimit import RateLimiter
from auth.sessions import SessionRegistry
from auth.store import CredentialStore
from auth.tokens import TokenCodec
from core.config import Settings, get_settings

VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("dashauth.api")


# ---------------------------------------------------------------------------
# Component assembly
# ---------------------------------------------------------------------------


def build_gateway(settings: Settings, store: CredentialStore, rate_limiter: RateLimiter) -> AuthGateway:
    """Wire an AuthGateway with the single token backend named by AUTH_BACKEND."""
    hasher = PasswordHasher(iterations=settings.pbkdf2_iterations, min_length=settings.password_min_length)
    backend: dict = {}
    if settings.auth_backend == "session":
        backend["sessions"] = SessionRegistry()
    else:
        backend["tokens"] = TokenCodec(settings.secret_key, validity_seconds=settings.token_validity_seconds)
    return AuthGateway(
        store,
        hasher,
        rate_limiter,
        login_policy=RateLimitPolicy(settings.login_max_attempts, settings.login_window_seconds),
        signup_policy=RateLimitPolicy(settings.signup_max_attempts, settings.signup_window_seconds),
        **backend,
    )


# ---------------------------------------------------------------------------
# Background sweep task
# ---------------------------------------------------------------------------


async def _sweep_loop(rate_limiter: RateLimiter, interval: float) -> None:
    """Drop expired rate-limit windows every `interval` seconds.

    Runs independently of request traffic. CancelledError from task.cancel()
    during shutdown propagates out of asyncio.sleep and unwinds the loop.
    """
    while True:
        await asyncio.sleep(interval)
        removed = rate_limiter.sweep()
        if removed:
            logger.debug("Rate limit sweep removed %d expired windows", removed)


async def _stop_task(task: asyncio.Task) -> None:
    """Cancel a background task and wait for it to unwind."""
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build process-scoped components on startup; release them on shutdown.

    get_settings() raises here if SECRET_KEY is missing in production, so the
    service never starts serving with an unsigned or guessable token key.
    """
    settings = get_settings()
    logger.info("Auth service starting up (backend=%s)", settings.auth_backend)
    app.state.settings = settings
    app.state.credential_store = CredentialStore(settings.database_url, settings.store_timeout_seconds)
    app.state.rate_limiter = RateLimiter()
    app.state.gateway = build_gateway(settings, app.state.credential_store, app.state.rate_limiter)
    app.state.sweep_task = asyncio.create_task(_sweep_loop(app.state.rate_limiter, settings.rate_limit_sweep_seconds))

    yield

    await _stop_task(app.state.sweep_task)
    app.state.credential_store.close()
    logger.info("Auth service shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="Dashboard Auth API",
    description="Account registration, login and bearer-token verification for the dashboard.",
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(SlowAPIMiddleware)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        request.client.host if request.client else "unknown",
    )
    return response


app.include_router(auth_router, prefix="/api/v1", tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
#
# All handlers return the same ErrorResponse envelope so the front end can
# read `error` uniformly.
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str, code: str, retry_after: int | None = None) -> JSONResponse:
    response = JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message, code=code, retry_after=retry_after).model_dump(
            by_alias=True, exclude_none=True
        ),
    )
    if retry_after is not None:
        response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(AuthError)
async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    """Convert gateway errors to the error envelope.

    StoreError carries only the generic message; the underlying cause was
    already logged where it happened.
    """
    if isinstance(exc, StoreError):
        return _error(exc.status_code, StoreError.default_message, exc.code)
    if isinstance(exc, RateLimitedError):
        return _error(exc.status_code, exc.message, exc.code, retry_after=exc.retry_after)
    return _error(exc.status_code, exc.message, exc.code)


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 when the coarse per-address limit is exceeded."""
    retry_after = int(getattr(exc, "retry_after", 60))
    return _error(429, "Too many requests.", "rate_limited", retry_after=retry_after)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Malformed JSON or oversized fields are caller input errors, not server errors."""
    return _error(400, "Invalid request body", "invalid_input")


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _error(exc.status_code, str(exc.detail), f"http_{exc.status_code}")


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unexpected server errors.

    The raw exception goes to the log only, never to the response body.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return _error(500, "Server error", "server_error")


# ---------------------------------------------------------------------------
# Health endpoint
# ---------------------------------------------------------------------------


@app.get("/api/v1/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness, version, token backend and database reachability."""
    gateway: AuthGateway = request.app.state.gateway
    database = "ok" if request.app.state.credential_store.ping() else "error"
    return HealthResponse(version=VERSION, backend=gateway.backend, database=database)
