"""
auth/otp.py -- One-time code issuance and consumption.

Codes are 6-digit strings drawn uniformly from 100000-999999 with the secrets
CSPRNG. Two purposes exist (account verification, password reset); each has
its own code/expiry columns and a code issued for one purpose is never
accepted for the other.

Consumption goes through UserStore.consume_otp(), a single conditional UPDATE,
so a code is spent at most once even under concurrent requests.

The clock is injectable so tests can step past expiry without sleeping.
"""

from __future__ import annotations

import logging
import secrets
import time
from collections.abc import Callable

from auth.errors import BadRequest
from auth.models import OtpCheck, OtpPurpose, User
from auth.store import UserStore
from core.config import Settings

logger = logging.getLogger("authgate.otp")

OTP_LOW = 100000
OTP_HIGH = 999999

INVALID_OTP_MESSAGE = "Invalid OTP"
EXPIRED_OTP_MESSAGE = "OTP expired"
ALREADY_VERIFIED_MESSAGE = "Account already verified"


def generate_otp() -> str:
    """Return a uniformly random 6-digit numeric code."""
    return str(OTP_LOW + secrets.randbelow(OTP_HIGH - OTP_LOW + 1))


class OtpEngine:
    def __init__(self, store: UserStore, settings: Settings, clock: Callable[[], float] = time.time) -> None:
        self._store = store
        self._clock = clock
        self._ttl = {
            OtpPurpose.VERIFY: settings.verify_otp_expire_seconds,
            OtpPurpose.RESET: settings.reset_otp_expire_seconds,
        }

    def issue_verification_otp(self, user: User) -> str:
        """Issue a verification code for an unverified account and return it."""
        if user.is_account_verified:
            raise BadRequest(ALREADY_VERIFIED_MESSAGE)
        return self._issue(user, OtpPurpose.VERIFY)

    def issue_reset_otp(self, user: User) -> str:
        """Issue a password-reset code and return it. Replaces any active reset code."""
        return self._issue(user, OtpPurpose.RESET)

    def consume_otp(self, user: User, purpose: OtpPurpose, supplied_code: str, **updates) -> None:
        """Spend the active code for purpose, applying updates in the same write.

        Raises BadRequest("Invalid OTP") when no code is active or the code
        differs, BadRequest("OTP expired") when the code matched but its
        expiry has passed. On success the user object mirrors the stored row.
        """
        result = self._store.consume_otp(user.id, purpose, supplied_code, self._clock(), **updates)
        if result is OtpCheck.INVALID:
            logger.info("Rejected %s OTP for user %s: no matching code", purpose.value, user.id)
            raise BadRequest(INVALID_OTP_MESSAGE)

        # CONSUMED and EXPIRED both cleared the stored pair.
        setattr(user, purpose.code_field, None)
        setattr(user, purpose.expiry_field, None)
        if result is OtpCheck.EXPIRED:
            logger.info("Rejected %s OTP for user %s: expired", purpose.value, user.id)
            raise BadRequest(EXPIRED_OTP_MESSAGE)

        for field, value in updates.items():
            setattr(user, field, value)

    def _issue(self, user: User, purpose: OtpPurpose) -> str:
        code = generate_otp()
        expires_at = self._clock() + self._ttl[purpose]
        self._store.set_otp(user, purpose, code, expires_at)
        logger.info("Issued %s OTP for user %s", purpose.value, user.id)
        return code
