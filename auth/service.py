"""
auth/service.py -- Registration, login, email verification and password reset.

AuthService orchestrates the store, OTP engine, session issuer and notifier.
It knows nothing about HTTP: each operation returns an Outcome or raises an
AuthError, and the route layer turns those into envelopes, status codes and
cookies.

Every public method is wrapped with @classified, so a store or mail fault
(or any bug) leaves as InternalError with a generic message.

Notification policy:
  OTP mails are part of the operation -- if the code cannot be delivered the
  caller gets a 500 and can retry.
  The welcome mail after registration is best-effort. The account and session
  already exist at that point, so a mail failure is logged, not raised.

send_verify_otp() takes an authenticated user id; send_reset_otp() takes an
email and needs no session, because a user who forgot their password cannot
log in.
"""

from __future__ import annotations

import logging

from auth.errors import BadRequest, NotFound, NotifierError, Unauthorized, classified
from auth.models import OtpPurpose, Outcome
from auth.notifier import Notifier, reset_otp_message, verification_otp_message, welcome_message
from auth.otp import OtpEngine
from auth.passwords import check_length
from auth.store import UserStore
from auth.tokens import SessionIssuer
from core.config import Settings

logger = logging.getLogger("authgate.auth")

USER_NOT_FOUND_MESSAGE = "User not found"


class AuthService:
    def __init__(
        self,
        store: UserStore,
        otp: OtpEngine,
        issuer: SessionIssuer,
        notifier: Notifier,
        settings: Settings,
    ) -> None:
        self.store = store
        self.otp = otp
        self.issuer = issuer
        self.notifier = notifier
        self.settings = settings

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    @classified
    def register(self, name: str | None, email: str | None, password: str | None) -> Outcome:
        """Create an unverified account, start a session and send a welcome mail."""
        if not name or not email or not password:
            raise BadRequest("Missing details")
        check_length(password)

        user = self.store.create(name, email, password)
        token = self.issuer.issue(user.id)
        logger.info("Registered user %s", user.id)

        subject, body = welcome_message(user.name, user.email)
        try:
            self.notifier.send(user.email, subject, body)
        except NotifierError as exc:
            logger.warning("Welcome mail for user %s not delivered: %s", user.id, exc)

        return Outcome("New user created", user=user, token=token)

    @classified
    def login(self, email: str | None, password: str | None) -> Outcome:
        """Check credentials and start a session."""
        if not email or not password:
            raise BadRequest("Please provide email and password")

        user = self.store.find_by_email(email)
        if user is None:
            raise NotFound("User does not exist")
        if not self.store.verify_password(user, password):
            logger.info("Failed login for user %s", user.id)
            raise Unauthorized("Invalid password")

        token = self.issuer.issue(user.id)
        logger.info("User %s logged in", user.id)
        return Outcome("User logged in successfully", user=user, token=token)

    @classified
    def logout(self) -> Outcome:
        # Tokens are not stored server-side; ending the session is the route
        # clearing the cookie.
        return Outcome("User logged out")

    @classified
    def is_authenticated(self, user_id: int) -> Outcome:
        return Outcome("User is authenticated")

    # ------------------------------------------------------------------
    # Account verification
    # ------------------------------------------------------------------

    @classified
    def send_verify_otp(self, user_id: int) -> Outcome:
        """Mail a verification code to the signed-in user."""
        user = self.store.find_by_id(user_id)
        if user is None:
            raise NotFound(USER_NOT_FOUND_MESSAGE)

        code = self.otp.issue_verification_otp(user)
        subject, body = verification_otp_message(code)
        self.notifier.send(user.email, subject, body)
        return Outcome("Verification OTP sent on Email")

    @classified
    def verify_email(self, user_id: int | None, otp: str | None) -> Outcome:
        """Mark the account verified. The flag and the code clearing are one write."""
        if not user_id or not otp:
            raise BadRequest("Missing details")

        user = self.store.find_by_id(user_id)
        if user is None:
            raise NotFound(USER_NOT_FOUND_MESSAGE)

        self.otp.consume_otp(user, OtpPurpose.VERIFY, otp, is_account_verified=True)
        logger.info("User %s verified their email", user.id)
        return Outcome("Email verified successfully", user=user)

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    @classified
    def send_reset_otp(self, email: str | None) -> Outcome:
        """Mail a password-reset code. No session required."""
        if not email:
            raise BadRequest("Email is required")

        user = self.store.find_by_email(email)
        if user is None:
            raise NotFound(USER_NOT_FOUND_MESSAGE)

        code = self.otp.issue_reset_otp(user)
        subject, body = reset_otp_message(code)
        self.notifier.send(user.email, subject, body)
        return Outcome("OTP sent to your email")

    @classified
    def reset_password(self, email: str | None, otp: str | None, new_password: str | None) -> Outcome:
        """Spend the reset code, then store the new password hash.

        The code is consumed before the password is touched: a bad or expired
        code leaves the old hash in place, and a spent code stays spent even
        if the password write fails afterwards.
        """
        if not email or not otp or not new_password:
            raise BadRequest("Please provide the details")
        check_length(new_password)

        user = self.store.find_by_email(email)
        if user is None:
            raise NotFound(USER_NOT_FOUND_MESSAGE)

        self.otp.consume_otp(user, OtpPurpose.RESET, otp)
        user.hashed_password = self.store.update_password(user.id, new_password)
        logger.info("Password reset for user %s", user.id)
        return Outcome("Password has been reset successfully")
