"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Dataclasses own the
domain shape; the store, OTP engine and service do the work.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class OtpPurpose(str, Enum):
    """What a one-time code unlocks. Each purpose has its own storage columns."""

    VERIFY = "verify"
    RESET = "reset"

    @property
    def code_field(self) -> str:
        """User attribute (and users column) holding the active code."""
        return _OTP_FIELDS[self][0]

    @property
    def expiry_field(self) -> str:
        """User attribute (and users column) holding the code's expiry."""
        return _OTP_FIELDS[self][1]


_OTP_FIELDS = {
    OtpPurpose.VERIFY: ("verify_otp", "verify_otp_expires_at"),
    OtpPurpose.RESET: ("reset_otp", "reset_otp_expires_at"),
}


class OtpCheck(str, Enum):
    """Result of a conditional OTP consume against the store."""

    CONSUMED = "consumed"
    INVALID = "invalid"
    EXPIRED = "expired"


@dataclass
class User:
    """A registered account.

    OTP code/expiry pairs are None when no code is active for that purpose.
    Expiry values are POSIX timestamps (seconds). The store keeps each pair
    all-set or all-None; never write one half without the other.

    id is None before the record is written to the database.
    """

    name: str
    email: str
    hashed_password: str
    id: int | None = None
    is_account_verified: bool = False
    verify_otp: str | None = None
    verify_otp_expires_at: float | None = None
    reset_otp: str | None = None
    reset_otp_expires_at: float | None = None
    created_at: str | None = None


@dataclass
class Outcome:
    """What an AuthService operation hands back to the HTTP layer.

    token is set only by operations that start a session (register, login);
    the route writes it to the session cookie.
    """

    message: str
    user: User | None = None
    token: str | None = None
