"""
auth/passwords.py -- bcrypt password hashing.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error. Direct bcrypt usage is simpler and has no
compatibility shim.

bcrypt only reads the first 72 bytes of its input and current releases raise
on anything longer, so check_length() is called before hashing user input.
"""

from __future__ import annotations

import bcrypt

from auth.errors import BadRequest

MAX_PASSWORD_BYTES = 72


def check_length(plain: str) -> None:
    """Raise BadRequest if the password cannot be hashed without truncation."""
    if len(plain.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise BadRequest(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


def hash_password(plain: str, rounds: int) -> str:
    """Return a salted bcrypt hash of the given plaintext password."""
    check_length(plain)
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Over-long input or a corrupt stored hash.
        return False
