"""
api/routes/v1/auth.py -- Login, session and verification endpoints.

Routes:
  POST /api/v1/auth/login               -- password or OTP login; sets session cookie
  POST /api/v1/auth/logout              -- clears cookie; 200
  GET  /api/v1/auth/session             -- current public identity (or {})
  POST /api/v1/auth/session             -- same, forcing a claims refresh
  POST /api/v1/auth/check-verification  -- may an OTP be sent to this identifier?
  GET  /api/v1/user/verification-status -- raw verification timestamps (requires auth)

Security:
  Every login rejection returns the same 401 body ("bad_credentials") whether
  the identifier is unknown, the secret is wrong, or a field is missing.
  Cache-Control: no-store on login and session responses.
  Gateway and store failures are not caught here; the catch-all handler in
  api/main.py turns them into a generic 500.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from api.models import (
    CheckVerificationRequest,
    CheckVerificationResponse,
    LoginRequest,
    LoginResponse,
    SessionResponse,
    SessionUserResponse,
    VerificationStatusResponse,
)
from auth.claims import REFRESH_TRIGGER
from auth.dependencies import get_auth_service, get_current_claims, get_session_token
from auth.models import Claims, SessionShell, SessionView, VerificationChannel
from auth.service import AuthService, SessionState
from auth.tokens import AUTH_COOKIE, set_auth_cookie, token_expiry

# Auth policy:
# - POST /auth/login, /auth/logout, /auth/check-verification: public
# - GET/POST /auth/session: public -- returns {} when there is no session
# - GET /user/verification-status: requires a valid session (get_current_claims)
router = APIRouter()


# ---------------------------------------------------------------------------
# Login / logout
# ---------------------------------------------------------------------------


@router.post("/auth/login", response_model=LoginResponse)
def login(body: LoginRequest, service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    """Authenticate with a password or one-time code; set the session cookie."""
    account = service.authenticate(
        body.identifier,
        login_type=body.login_type,
        password=body.password,
        otp=body.otp,
        access_token=body.token,
    )
    if account is None:
        resp = JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid credentials."}},
        )
        resp.headers["Cache-Control"] = "no-store"
        return resp

    claims, token = service.issue(account)
    view = service.project(claims, SessionShell(name=claims.name, email=claims.email, expires=token_expiry(token)))
    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(
            access_token=token,
            token_type="bearer",  # noqa: S106 -- OAuth token type, not a password
            expires_in=service.settings.token_expire_seconds,
            user=SessionUserResponse.from_view(view),
        ).model_dump(by_alias=True),
    )
    set_auth_cookie(resp, token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout")
async def logout() -> JSONResponse:
    """Clear the session cookie. Tokens are not revoked server-side."""
    resp = JSONResponse(content={"message": "Logged out."})
    resp.delete_cookie(AUTH_COOKIE)
    return resp


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


@router.get("/auth/session", response_model=SessionResponse)
def get_session(request: Request, service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    """Return the projected identity for the current session token."""
    return _session_response(service.read_session(get_session_token(request)))


@router.post("/auth/session", response_model=SessionResponse)
def refresh_session(request: Request, service: AuthService = Depends(get_auth_service)) -> JSONResponse:
    """Re-read the watched account fields into the token, then project.

    Clients call this after a profile change so the new values show up
    without signing out.
    """
    return _session_response(service.read_session(get_session_token(request), trigger=REFRESH_TRIGGER))


# ---------------------------------------------------------------------------
# Verification
# ---------------------------------------------------------------------------


@router.post("/auth/check-verification", response_model=CheckVerificationResponse)
def check_verification(
    body: CheckVerificationRequest,
    service: AuthService = Depends(get_auth_service),
) -> CheckVerificationResponse:
    """Report whether a code may be sent to this identifier.

    Always 200 with a uniform message: the answer is a boolean, not a
    statement about whether the identifier is registered.
    """
    if body.type is VerificationChannel.email and "@" not in body.value:
        raise HTTPException(
            status_code=400,
            detail={"code": "invalid_identifier", "message": "Expected an e-mail address."},
        )
    allowed = service.can_send_otp(body.value)
    return CheckVerificationResponse(
        can_send_otp=allowed,
        message="Can send OTP" if allowed else "Verify this identifier in your profile first.",
    )


@router.get("/user/verification-status", response_model=VerificationStatusResponse)
def verification_status(
    claims: Claims = Depends(get_current_claims),
    service: AuthService = Depends(get_auth_service),
) -> VerificationStatusResponse:
    """Return the raw verification timestamps for the signed-in account."""
    status = service.verification_status(claims.sub)
    if status is None:
        raise HTTPException(
            status_code=404,
            detail={"code": "not_found", "message": "Account not found."},
        )
    verified = service.has_verified_channel(claims.sub)
    return VerificationStatusResponse(
        email_verified=status["email_verified_at"],
        mobile_verified=status["mobile_verified_at"],
        is_verified=verified,
        message=None if verified else "Please verify your email or mobile number to perform this action.",
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _session_response(state: SessionState) -> JSONResponse:
    if isinstance(state.view, SessionView):
        body = SessionResponse(user=SessionUserResponse.from_view(state.view), expires=state.view.expires)
        content = body.model_dump(by_alias=True)
    else:
        content = {}
    resp = JSONResponse(content=content)
    if state.token:
        set_auth_cookie(resp, state.token)
    resp.headers["Cache-Control"] = "no-store"
    return resp
