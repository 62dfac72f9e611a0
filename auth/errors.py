"""
auth/errors.py -- Error taxonomy for the authentication core.

Two layers of exceptions:

  AuthError and its subclasses are the classified errors callers see. Each
  carries an ErrorKind that maps one-to-one onto an HTTP status code.

  StoreError and NotifierError are boundary faults raised by the persistence
  layer and the mail transport. They never reach a client as-is: classify()
  turns them into InternalError with a generic message.

Every public AuthService method runs under the classified decorator, so the
HTTP layer only ever sees AuthError.
"""

from __future__ import annotations

import functools
import logging
from enum import Enum

logger = logging.getLogger("authgate.auth")

INTERNAL_MESSAGE = "Internal server error"


class ErrorKind(str, Enum):
    BAD_REQUEST = "bad_request"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INTERNAL = "internal_error"

    @property
    def status_code(self) -> int:
        return _STATUS_CODES[self]


_STATUS_CODES = {
    ErrorKind.BAD_REQUEST: 400,
    ErrorKind.UNAUTHORIZED: 401,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INTERNAL: 500,
}


class TokenFailure(str, Enum):
    """Why a session token was rejected. Logged, never shown verbatim."""

    MISSING = "missing"
    MALFORMED = "malformed"
    BAD_SIGNATURE = "bad_signature"
    EXPIRED = "expired"


# ---------------------------------------------------------------------------
# Classified errors
# ---------------------------------------------------------------------------


class AuthError(Exception):
    """Base class for every error surfaced to callers."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return self.kind.status_code


class BadRequest(AuthError):
    kind = ErrorKind.BAD_REQUEST


class Unauthorized(AuthError):
    """Missing or rejected credentials.

    failure is set when a session token was the problem; it is None for a
    wrong password at login.
    """

    kind = ErrorKind.UNAUTHORIZED

    def __init__(self, message: str, failure: TokenFailure | None = None) -> None:
        super().__init__(message)
        self.failure = failure


class NotFound(AuthError):
    kind = ErrorKind.NOT_FOUND


class Conflict(AuthError):
    kind = ErrorKind.CONFLICT


class InternalError(AuthError):
    kind = ErrorKind.INTERNAL

    def __init__(self, message: str = INTERNAL_MESSAGE) -> None:
        super().__init__(message)


# ---------------------------------------------------------------------------
# Boundary faults
# ---------------------------------------------------------------------------


class StoreError(Exception):
    """The user store could not complete a read or write."""


class NotifierError(Exception):
    """The mail transport could not deliver a message."""


def classify(exc: Exception) -> AuthError:
    """Map any exception onto the AuthError taxonomy.

    Classified errors pass through unchanged. Boundary faults and anything
    unexpected are logged with their traceback and replaced by a generic
    InternalError so no internal detail reaches the client.
    """
    if isinstance(exc, AuthError):
        return exc
    if isinstance(exc, StoreError):
        logger.error("User store failure: %s", exc, exc_info=exc)
    elif isinstance(exc, NotifierError):
        logger.error("Notification delivery failure: %s", exc, exc_info=exc)
    else:
        logger.error("Unexpected error in auth service", exc_info=exc)
    return InternalError()


def classified(method):
    """Decorator: re-raise every exception from method as a classified AuthError."""

    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        try:
            return method(*args, **kwargs)
        except Exception as exc:
            error = classify(exc)
            if error is exc:
                raise
            raise error from exc

    return wrapper
