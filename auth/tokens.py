"""
auth/tokens.py -- Session tokens (JWT) and the session cookie.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry the
       user id and an expiry SESSION_EXPIRE_DAYS (default 7) out. Nothing is
       stored server-side: a token is valid if its signature checks out and
       it has not expired.

  Failure causes: verify() tags every rejection with a TokenFailure (missing,
       malformed, bad signature, expired). The cause is logged; the client
       sees a 401 with one of three messages.

  Cookie: httpOnly "token" cookie. In production it is Secure with
       SameSite=None so a frontend on another origin can send it; elsewhere
       SameSite=Strict. max_age matches the JWT lifetime.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from jose import ExpiredSignatureError, JWTError, jwt
from jose.exceptions import JWTClaimsError

from auth.errors import InternalError, TokenFailure, Unauthorized
from auth.store import UserStore
from core.config import Settings

logger = logging.getLogger("authgate.auth")

ALGORITHM = "HS256"
COOKIE_NAME = "token"

_FAILURE_MESSAGES = {
    TokenFailure.MISSING: "Unauthorized",
    TokenFailure.MALFORMED: "Invalid token",
    TokenFailure.BAD_SIGNATURE: "Invalid token",
    TokenFailure.EXPIRED: "Token has expired. Please login again",
}


def _reject(failure: TokenFailure) -> Unauthorized:
    return Unauthorized(_FAILURE_MESSAGES[failure], failure=failure)


class SessionIssuer:
    """Mints and verifies session tokens.

    Usage:
        issuer = SessionIssuer(settings, store)
        token = issuer.issue(user.id)
        user_id = issuer.verify(token)    # raises Unauthorized on any failure
    """

    def __init__(self, settings: Settings, store: UserStore) -> None:
        self._secret_key = settings.secret_key
        self._store = store
        self.lifetime = timedelta(days=settings.session_expire_days)

    def issue(self, user_id: int) -> str:
        """Encode a signed JWT for user_id.

        The id must resolve to a stored user; a dangling id means something
        upstream went wrong, so it is an InternalError rather than a 4xx.
        """
        if self._store.find_by_id(user_id) is None:
            logger.error("Refusing to issue a session for unknown user id %s", user_id)
            raise InternalError("Something went wrong")
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "id": user_id,
            "iat": now,
            "exp": now + self.lifetime,
        }
        return jwt.encode(payload, self._secret_key, algorithm=ALGORITHM)

    def verify(self, token: str | None) -> int:
        """Return the user id a token was issued for, or raise Unauthorized.

        Malformed is checked before the signature so a garbage string and a
        forged token land in different log buckets.
        """
        if not token:
            raise _reject(TokenFailure.MISSING)
        try:
            jwt.get_unverified_claims(token)
        except JWTError as exc:
            raise _reject(TokenFailure.MALFORMED) from exc

        try:
            payload = jwt.decode(token, self._secret_key, algorithms=[ALGORITHM])
        except ExpiredSignatureError as exc:
            raise _reject(TokenFailure.EXPIRED) from exc
        except JWTClaimsError as exc:
            raise _reject(TokenFailure.MALFORMED) from exc
        except JWTError as exc:
            raise _reject(TokenFailure.BAD_SIGNATURE) from exc

        user_id = payload.get("id")
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise _reject(TokenFailure.MALFORMED)
        return user_id


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def _cookie_policy(settings: Settings) -> dict:
    return {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "none" if settings.is_production else "strict",
    }


def set_session_cookie(response, token: str, settings: Settings) -> None:
    """Write the session token as an httpOnly cookie whose max_age matches the JWT."""
    response.set_cookie(
        COOKIE_NAME,
        value=token,
        max_age=settings.session_expire_days * 24 * 60 * 60,
        **_cookie_policy(settings),
    )


def clear_session_cookie(response, settings: Settings) -> None:
    """Delete the session cookie. Flags must match the ones it was set with."""
    response.delete_cookie(COOKIE_NAME, **_cookie_policy(settings))
