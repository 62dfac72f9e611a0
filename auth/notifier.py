"""
auth/notifier.py -- Outbound mail for welcome messages and OTP codes.

The auth service only needs send(to, subject, body). Two transports satisfy it:

  SmtpNotifier -- smtplib with optional STARTTLS and login. Used whenever
                  SMTP_HOST is configured.
  LogNotifier  -- writes the message to the log instead of sending it. Only
                  allowed in DEBUG mode (Settings refuses to start otherwise),
                  so OTP codes never reach a production log.

Transport failures are raised as NotifierError; the service decides whether a
failure is fatal for the operation.

Message bodies are fixed plain text.
"""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Protocol

from auth.errors import NotifierError
from core.config import Settings

logger = logging.getLogger("authgate.notifier")

_SMTP_TIMEOUT_SECONDS = 10


class Notifier(Protocol):
    def send(self, to: str, subject: str, body: str) -> None: ...


class SmtpNotifier:
    def __init__(self, settings: Settings) -> None:
        self.host = settings.smtp_host
        self.port = settings.smtp_port
        self.user = settings.smtp_user
        self.password = settings.smtp_password
        self.starttls = settings.smtp_starttls
        self.sender = settings.sender_email or settings.smtp_user

    def send(self, to: str, subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=_SMTP_TIMEOUT_SECONDS) as server:
                if self.starttls:
                    server.starttls()
                if self.user:
                    server.login(self.user, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotifierError(f"SMTP delivery to {self.host}:{self.port} failed: {exc}") from exc
        logger.info("Sent '%s' mail", subject)


class LogNotifier:
    """Development transport: log the message instead of sending it."""

    def send(self, to: str, subject: str, body: str) -> None:
        logger.warning("[DEV MAIL] to=%s subject=%r body=%r", to, subject, body)


def build_notifier(settings: Settings) -> Notifier:
    if settings.smtp_configured:
        return SmtpNotifier(settings)
    logger.warning("SMTP_HOST not set -- mail will be written to the log (DEBUG mode only)")
    return LogNotifier()


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


def welcome_message(name: str, email: str) -> tuple[str, str]:
    return f"Welcome, {name}", f"Your account has been created with email id: {email}"


def verification_otp_message(code: str) -> tuple[str, str]:
    return "Account verification OTP", f"Your OTP is {code}, verify your account using this otp"


def reset_otp_message(code: str) -> tuple[str, str]:
    return (
        "Password reset OTP",
        f"Your OTP for resetting your password is {code}. "
        "Use this OTP to proceed with resetting your password",
    )
