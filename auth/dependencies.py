"""
auth/dependencies.py -- FastAPI Depends() helpers for session tokens.

Two token sources are checked in priority order:
  1. Session cookie ("session_token") -- set by the login route.
  2. Authorization: Bearer <token> header -- API clients.

get_session_token() is the soft variant (returns None when absent).
get_current_claims() decodes it and raises HTTP 401 if there is no valid session.

Layer rule: auth/dependencies.py may import from fastapi because it is part of
the dependency injection system. It does not import from api/.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import Claims
from auth.service import AuthService
from auth.tokens import AUTH_COOKIE, decode_claims


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_session_token(request: Request) -> str | None:
    """Return the raw session token from the cookie or Bearer header, if any."""
    token: str | None = request.cookies.get(AUTH_COOKIE)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]
    return token or None


def get_current_claims(request: Request) -> Claims:
    """Require a valid session. Raises HTTP 401 otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(claims: Claims = Depends(get_current_claims)): ...
    """
    token = get_session_token(request)
    claims = decode_claims(token) if token else None
    if claims is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return claims
