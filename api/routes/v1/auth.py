"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/register         -- create account; sets session cookie; 201
  POST /api/v1/auth/login            -- password login; sets session cookie
  GET  /api/v1/auth/logout           -- clears session cookie
  POST /api/v1/auth/send-verify-otp  -- mail a verification code (requires auth)
  POST /api/v1/auth/verify-account   -- spend the verification code (requires auth)
  POST /api/v1/auth/is-auth          -- 200 if the session is valid (requires auth)
  POST /api/v1/auth/reset-otp        -- mail a password-reset code (public)
  POST /api/v1/auth/reset-password   -- spend the reset code, set new password (requires auth)

Every response body is an Envelope. Handlers stay thin: parse the body, call
AuthService, write the cookie. Errors raised by the service (AuthError) are
rendered by the exception handler in api/main.py.

Security:
  POST /login, /send-verify-otp and /reset-otp are rate-limited per IP
  (AUTH_RATE_LIMIT, default 10/minute) to slow down credential stuffing and
  mail flooding.
  Cache-Control: no-store on responses that carry a fresh session.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import auth_rate_limit, limiter
from api.models import (
    Envelope,
    LoginRequest,
    RegisterRequest,
    ResetOtpRequest,
    ResetPasswordRequest,
    UserPublic,
    VerifyAccountRequest,
)
from auth.dependencies import get_current_user_id
from auth.models import Outcome
from auth.service import AuthService
from auth.tokens import clear_session_cookie, set_session_cookie

# Auth policy:
# - POST /register, /login, /reset-otp, GET /logout: public
# - POST /send-verify-otp, /verify-account, /is-auth, /reset-password: session required
# reset-otp is public on purpose: a user who forgot their password has no session.
router = APIRouter()


def _service(request: Request) -> AuthService:
    return request.app.state.auth_service


def _respond(request: Request, outcome: Outcome, status_code: int = 200) -> JSONResponse:
    """Render an Outcome as an Envelope and write its session cookie, if any."""
    envelope = Envelope(
        message=outcome.message,
        data=UserPublic.from_user(outcome.user) if outcome.user is not None else None,
    )
    resp = JSONResponse(status_code=status_code, content=envelope.model_dump())
    if outcome.token:
        set_session_cookie(resp, outcome.token, request.app.state.settings)
        resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=Envelope, status_code=201)
def register(request: Request, body: RegisterRequest) -> JSONResponse:
    """Create an unverified account and sign it in."""
    outcome = _service(request).register(body.name, body.email, body.password)
    return _respond(request, outcome, status_code=201)


@router.post("/auth/login", response_model=Envelope)
@limiter.limit(auth_rate_limit)  # below @router so FastAPI registers the limited wrapper
def login(request: Request, body: LoginRequest) -> JSONResponse:
    """Authenticate with email and password; set the session cookie."""
    outcome = _service(request).login(body.email, body.password)
    return _respond(request, outcome)


@router.get("/auth/logout", response_model=Envelope)
def logout(request: Request) -> JSONResponse:
    """Clear the session cookie. Works with or without a valid session."""
    resp = _respond(request, _service(request).logout())
    clear_session_cookie(resp, request.app.state.settings)
    return resp


@router.post("/auth/reset-otp", response_model=Envelope)
@limiter.limit(auth_rate_limit)
def send_reset_otp(request: Request, body: ResetOtpRequest) -> JSONResponse:
    """Mail a password-reset code to the given address."""
    return _respond(request, _service(request).send_reset_otp(body.email))


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/send-verify-otp", response_model=Envelope)
@limiter.limit(auth_rate_limit)
def send_verify_otp(request: Request, user_id: int = Depends(get_current_user_id)) -> JSONResponse:
    """Mail a verification code to the signed-in user."""
    return _respond(request, _service(request).send_verify_otp(user_id))


@router.post("/auth/verify-account", response_model=Envelope)
def verify_account(
    request: Request,
    body: VerifyAccountRequest,
    user_id: int = Depends(get_current_user_id),
) -> JSONResponse:
    """Spend the verification code and mark the signed-in account verified."""
    return _respond(request, _service(request).verify_email(user_id, body.otp))


@router.post("/auth/is-auth", response_model=Envelope)
def is_authenticated(request: Request, user_id: int = Depends(get_current_user_id)) -> JSONResponse:
    """Return 200 when the session is valid. The dependency does the work."""
    return _respond(request, _service(request).is_authenticated(user_id))


@router.post("/auth/reset-password", response_model=Envelope, dependencies=[Depends(get_current_user_id)])
def reset_password(request: Request, body: ResetPasswordRequest) -> JSONResponse:
    """Spend the reset code and store the new password."""
    outcome = _service(request).reset_password(body.email, body.otp, body.new_password)
    return _respond(request, outcome)
