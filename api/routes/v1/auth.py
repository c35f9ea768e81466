"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/signup   -- create account; returns token + user (201)
  POST /api/v1/auth/login    -- password login; returns token + user
  GET  /api/v1/auth/verify   -- current user for a Bearer token (requires auth)
  POST /api/v1/auth/logout   -- end the session; always 200

Security:
  [H2] signup and login carry the coarse slowapi per-address limit; the
       gateway adds per-identifier windows (login per email, signup per address).
  [C1] login goes through AuthGateway.login(), which equalizes timing and
       returns one generic error for unknown email and wrong password.
  [M5] Cache-Control: no-store on every response that carries a token.

Handlers are plain `def` so FastAPI runs them in the threadpool; PBKDF2 is
CPU-bound and must not block the event loop. All AuthError subclasses raised
by the gateway are converted to responses by the handler in api/main.py.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import api_rate_limit, client_address, limiter
from api.models import AuthResponse, LoginRequest, LogoutResponse, SignupRequest, UserResponse, VerifyResponse
from auth.dependencies import get_current_principal
from auth.gateway import AuthGateway
from auth.models import AuthResult, Principal

# Auth policy:
# - POST /api/v1/auth/signup:  public
# - POST /api/v1/auth/login:   public
# - GET  /api/v1/auth/verify:  requires auth (get_current_principal)
# - POST /api/v1/auth/logout:  public -- a missing or stale token still logs out
router = APIRouter()


def _auth_response(result: AuthResult, status_code: int) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=AuthResponse(token=result.token, user=UserResponse.from_credential(result.user)).model_dump(
            by_alias=True
        ),
    )
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


@limiter.limit(api_rate_limit)  # [H2] must be ABOVE @router to preserve FastAPI introspection
@router.post("/auth/signup", response_model=AuthResponse, status_code=201)
def signup(request: Request, body: SignupRequest) -> JSONResponse:
    """Register a new account and sign it in."""
    gateway: AuthGateway = request.app.state.gateway
    result = gateway.register(body.email, body.password, body.name, client_address=client_address(request))
    return _auth_response(result, status_code=201)


@limiter.limit(api_rate_limit)  # [H2]
@router.post("/auth/login", response_model=AuthResponse)
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password.

    Unknown email and wrong password produce byte-identical 401 bodies.
    """
    gateway: AuthGateway = request.app.state.gateway
    result = gateway.login(body.email, body.password, client_address=client_address(request))
    return _auth_response(result, status_code=200)


@router.get("/auth/verify", response_model=VerifyResponse)
def verify(principal: Principal = Depends(get_current_principal)) -> JSONResponse:
    """Return fresh user details for the bearer of a valid token."""
    return JSONResponse(
        content=VerifyResponse(user=UserResponse.from_credential(principal.user)).model_dump(by_alias=True)
    )


@router.post("/auth/logout", response_model=LogoutResponse)
def logout(request: Request) -> JSONResponse:
    """Revoke the session (session backend) or acknowledge a client-side discard (token backend)."""
    gateway: AuthGateway = request.app.state.gateway
    gateway.logout(request.headers.get("Authorization"))
    return JSONResponse(content=LogoutResponse().model_dump(by_alias=True))
