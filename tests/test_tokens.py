"""Unit tests for auth/tokens.py -- session token issue/verify and the cookie.

Every rejection path must raise Unauthorized (401) and carry the right
TokenFailure tag: missing, malformed, bad signature, expired.
"""

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt
from starlette.responses import Response

from auth.errors import InternalError, TokenFailure, Unauthorized
from auth.tokens import ALGORITHM, SessionIssuer, clear_session_cookie, set_session_cookie

SEVEN_DAYS = 7 * 24 * 60 * 60


@pytest.fixture
def user(store):
    return store.create("Alan", "alan@example.com", "enigma-1912")


class TestIssue:
    def test_roundtrip_returns_user_id(self, issuer: SessionIssuer, user):
        token = issuer.issue(user.id)
        assert issuer.verify(token) == user.id

    def test_token_valid_for_seven_days(self, issuer, user):
        claims = jwt.get_unverified_claims(issuer.issue(user.id))
        assert claims["exp"] - claims["iat"] == SEVEN_DAYS
        assert claims["sub"] == str(user.id)

    def test_unknown_user_is_internal_error(self, issuer):
        with pytest.raises(InternalError):
            issuer.issue(4242)


class TestVerifyRejections:
    def _failure(self, issuer, token):
        with pytest.raises(Unauthorized) as excinfo:
            issuer.verify(token)
        assert excinfo.value.status_code == 401
        return excinfo.value

    @pytest.mark.parametrize("token", [None, ""])
    def test_missing(self, issuer, token):
        err = self._failure(issuer, token)
        assert err.failure is TokenFailure.MISSING
        assert err.message == "Unauthorized"

    @pytest.mark.parametrize("token", ["not-a-token", "a.b.c", "Bearer"])
    def test_malformed(self, issuer, token):
        err = self._failure(issuer, token)
        assert err.failure is TokenFailure.MALFORMED
        assert err.message == "Invalid token"

    def test_signed_with_different_secret(self, issuer, store, user, settings_factory):
        other = SessionIssuer(settings_factory(secret_key="another-secret-key-also-long-enough-98765"), store)
        err = self._failure(issuer, other.issue(user.id))
        assert err.failure is TokenFailure.BAD_SIGNATURE
        assert err.message == "Invalid token"

    def test_expired(self, issuer, user, settings):
        past = datetime.now(timezone.utc) - timedelta(days=8)
        token = jwt.encode(
            {"sub": str(user.id), "id": user.id, "iat": past, "exp": past + timedelta(days=7)},
            settings.secret_key,
            algorithm=ALGORITHM,
        )
        err = self._failure(issuer, token)
        assert err.failure is TokenFailure.EXPIRED
        assert "expired" in err.message

    def test_missing_id_claim(self, issuer, settings):
        exp = datetime.now(timezone.utc) + timedelta(days=1)
        token = jwt.encode({"sub": "1", "exp": exp}, settings.secret_key, algorithm=ALGORITHM)
        assert self._failure(issuer, token).failure is TokenFailure.MALFORMED


class TestSessionCookie:
    def test_development_cookie_flags(self, settings):
        resp = Response()
        set_session_cookie(resp, "abc", settings)
        header = resp.headers["set-cookie"]
        assert header.startswith("token=abc")
        assert "HttpOnly" in header
        assert "samesite=strict" in header.lower()
        assert f"Max-Age={SEVEN_DAYS}" in header
        assert "Secure" not in header

    def test_production_cookie_is_secure_cross_site(self, settings_factory):
        resp = Response()
        set_session_cookie(resp, "abc", settings_factory(environment="production"))
        header = resp.headers["set-cookie"]
        assert "Secure" in header
        assert "samesite=none" in header.lower()

    def test_clear_cookie_expires_it(self, settings):
        resp = Response()
        clear_session_cookie(resp, settings)
        header = resp.headers["set-cookie"]
        assert header.startswith("token=")
        assert "Max-Age=0" in header
