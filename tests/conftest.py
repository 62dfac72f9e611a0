"""
tests/conftest.py -- Shared test fixtures for Authgate.

This module provides:
  - FakeClock: a controllable time source so OTP expiry tests never sleep
  - RecordingNotifier: captures outgoing mail (and can be told to fail)
  - store / otp_engine / issuer / service: unit-level fixtures over an
    in-memory SQLite store
  - api_client: TestClient over the real FastAPI app with a patched lifespan

Design: the API fixture uses a named shared-memory SQLite URI (not plain
:memory:) because TestClient runs sync route handlers in a thread pool. Plain
:memory: DBs are per-connection and would present a blank schema to each
worker thread. Each api_client gets its own uniquely named DB.

DEBUG must be set before any api/core import so get_settings() auto-generates
SECRET_KEY and accepts the missing SMTP_HOST instead of raising ValueError.
The rate limit is raised so a full test run never trips it, and the limiter
is reset for every api_client so counts never leak between tests.
"""

from __future__ import annotations

import os
import re
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

# CRITICAL: Set before any auth/core import.
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("AUTH_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from api.limiter import limiter
from api.main import app
from auth.errors import NotifierError
from auth.otp import OtpEngine
from auth.service import AuthService
from auth.store import UserStore
from auth.tokens import SessionIssuer
from core.config import Settings

TEST_SECRET = "test-secret-key-that-is-long-enough-0123456789"
START_TIME = 1_700_000_000.0

_CODE_RE = re.compile(r"\b(\d{6})\b")


# ---------------------------------------------------------------------------
# Test doubles
# ---------------------------------------------------------------------------


class FakeClock:
    """Callable returning a fixed POSIX time that tests move forward by hand."""

    def __init__(self, start: float = START_TIME) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@dataclass
class RecordingNotifier:
    """Notifier that keeps every message in memory. Set fail=True to simulate an SMTP outage."""

    sent: list[tuple[str, str, str]] = field(default_factory=list)
    fail: bool = False

    def send(self, to: str, subject: str, body: str) -> None:
        if self.fail:
            raise NotifierError("simulated SMTP outage")
        self.sent.append((to, subject, body))

    def last_code(self) -> str:
        """Return the 6-digit code from the most recent message."""
        _to, _subject, body = self.sent[-1]
        match = _CODE_RE.search(body)
        assert match, f"no OTP in message body: {body!r}"
        return match.group(1)


def make_settings(**overrides) -> Settings:
    values = {"debug": True, "secret_key": TEST_SECRET}
    values.update(overrides)
    return Settings(_env_file=None, **values)


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def settings_factory():
    """Build a Settings object with overrides, for tests that need a second configuration."""
    return make_settings


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def store(settings: Settings) -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:", bcrypt_rounds=settings.bcrypt_rounds)
    yield s
    s.close()


@pytest.fixture
def otp_engine(store: UserStore, settings: Settings, clock: FakeClock) -> OtpEngine:
    return OtpEngine(store, settings, clock=clock)


@pytest.fixture
def issuer(store: UserStore, settings: Settings) -> SessionIssuer:
    return SessionIssuer(settings, store)


@pytest.fixture
def service(
    store: UserStore,
    otp_engine: OtpEngine,
    issuer: SessionIssuer,
    notifier: RecordingNotifier,
    settings: Settings,
) -> AuthService:
    return AuthService(store=store, otp=otp_engine, issuer=issuer, notifier=notifier, settings=settings)


# ---------------------------------------------------------------------------
# API fixture
# ---------------------------------------------------------------------------


@dataclass
class ApiHarness:
    client: TestClient
    store: UserStore
    notifier: RecordingNotifier
    clock: FakeClock
    settings: Settings


def _patch_lifespan(store: UserStore, notifier: RecordingNotifier, clock: FakeClock, settings: Settings):
    """Return a lifespan that wires test doubles into app.state instead of the real graph."""

    @asynccontextmanager
    async def test_lifespan(app):
        issuer = SessionIssuer(settings, store)
        app.state.settings = settings
        app.state.user_store = store
        app.state.session_issuer = issuer
        app.state.auth_service = AuthService(
            store=store,
            otp=OtpEngine(store, settings, clock=clock),
            issuer=issuer,
            notifier=notifier,
            settings=settings,
        )
        yield

    return test_lifespan


@pytest.fixture
def api_client() -> Generator[ApiHarness, None, None]:
    """Yield an ApiHarness around a TestClient with an isolated shared-memory store."""
    settings = make_settings()
    db_url = f"sqlite:///file:test_auth_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"
    store = UserStore(db_url, bcrypt_rounds=settings.bcrypt_rounds)
    notifier = RecordingNotifier()
    clock = FakeClock()

    limiter.reset()
    app.router.lifespan_context = _patch_lifespan(store, notifier, clock, settings)

    with TestClient(app, raise_server_exceptions=True) as client:
        yield ApiHarness(client=client, store=store, notifier=notifier, clock=clock, settings=settings)

    store.close()
