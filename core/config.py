"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Authgate happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() at the
composition root (api/main.py, main.py) and pass the Settings object into the
services that need it.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  Constructor injection: SessionIssuer, OtpEngine and AuthService receive the
      Settings instance explicitly. Tests build their own Settings(...) without
      touching the environment.

Security notes:
  SECRET_KEY shorter than 32 chars is rejected outright. JWT signing relies on
  key entropy -- a short key weakens every session token.

  In production mode (DEBUG not set or false), a missing SECRET_KEY or a
  missing SMTP_HOST is a hard startup failure.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("authgate.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'auth' / 'authgate.db'}"

MIN_BCRYPT_ROUNDS = 10


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file. The model_validator enforces
    production-safety rules at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # "production" switches session cookies to secure + samesite=none so a
    # separately hosted frontend can send them cross-site over HTTPS.
    environment: str = "development"
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Sessions, passwords, OTPs
    # ------------------------------------------------------------------

    session_expire_days: int = 7
    verify_otp_expire_seconds: int = 24 * 60 * 60
    reset_otp_expire_seconds: int = 15 * 60
    bcrypt_rounds: int = MIN_BCRYPT_ROUNDS

    # ------------------------------------------------------------------
    # Outbound mail
    # ------------------------------------------------------------------

    sender_email: str = ""
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_starttls: bool = True

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    allowed_origins: list[str] = ["http://localhost:6000"]
    allowed_hosts: list[str] = ["*"]
    host: str = "127.0.0.1"
    port: int = 6000
    # Applied to login and to both OTP-sending routes.
    auth_rate_limit: str = "10/minute"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host)

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_security(self) -> "Settings":
        """Enforce SECRET_KEY, bcrypt cost and mail transport policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Sessions will not survive restart -- acceptable for local dev.
            Without SMTP_HOST, mail is written to the log instead of sent.

        Production mode (DEBUG=false or not set): refuse to start if
            SECRET_KEY or SMTP_HOST is missing.

        Both modes: reject keys shorter than 32 characters and bcrypt cost
            factors below 10.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("WARNING: Using auto-generated SECRET_KEY. Sessions will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        if self.bcrypt_rounds < MIN_BCRYPT_ROUNDS:
            raise ValueError(f"BCRYPT_ROUNDS must be at least {MIN_BCRYPT_ROUNDS}.")
        if not self.smtp_configured and not self.debug:
            raise ValueError("SMTP_HOST is required in production mode. To log mail instead, set DEBUG=true.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
