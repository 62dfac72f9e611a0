"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Two token transports are checked in priority order:
  1. Session cookie ("token") -- set by register/login.
  2. Authorization: Bearer <token> header -- API clients.

Both hand the raw token to SessionIssuer.verify(). A rejected token raises
Unauthorized, which the app-level exception handler renders as a 401
envelope. The TokenFailure cause is logged here so failed attempts are
observable without leaking the reason to the client.

Layer rule: auth/dependencies.py may import from fastapi (for Request)
because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.errors import Unauthorized
from auth.tokens import COOKIE_NAME, SessionIssuer

logger = logging.getLogger("authgate.auth")

_BEARER_PREFIX = "Bearer "


def extract_token(request: Request) -> str | None:
    """Return the session token from the cookie or Bearer header, if any."""
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith(_BEARER_PREFIX):
            token = auth_header[len(_BEARER_PREFIX) :].strip()
    return token or None


def get_current_user_id(request: Request) -> int:
    """Require a valid session. Returns the user id the token was issued for.

    Use as a FastAPI dependency:
        @router.post("/protected")
        def route(user_id: int = Depends(get_current_user_id)): ...
    """
    issuer: SessionIssuer = request.app.state.session_issuer
    try:
        return issuer.verify(extract_token(request))
    except Unauthorized as exc:
        logger.info(
            "Rejected session on %s %s: %s",
            request.method,
            request.url.path,
            exc.failure.value if exc.failure else "unknown",
        )
        raise
