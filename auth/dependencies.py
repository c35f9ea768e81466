"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Routes that need an identity declare `Depends(get_current_principal)`. The
record endpoints of the dashboard (automations, recent items) consume the
same dependency; they live outside this service.

try_get_current_principal() is the soft variant (returns None on failure).
get_current_principal() raises UnauthenticatedError, which the API layer
turns into a 401 envelope.

Layer rule: auth/dependencies.py may import from fastapi because this module
is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.errors import UnauthenticatedError
from auth.gateway import AuthGateway
from auth.models import Principal


def get_current_principal(request: Request) -> Principal:
    """Require a valid `Authorization: Bearer <token>` header.

    Use as a FastAPI dependency:
        @router.get("/automations")
        def route(principal: Principal = Depends(get_current_principal)): ...
    """
    gateway: AuthGateway = request.app.state.gateway
    return gateway.authenticate_request(request.headers.get("Authorization"))


def try_get_current_principal(request: Request) -> Principal | None:
    """Return the Principal for the request, or None. Never raises for auth failures."""
    try:
        return get_current_principal(request)
    except UnauthenticatedError:
        return None
