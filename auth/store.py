"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Service code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.
  Raw passwords enter through create() and update_password() only and are
  hashed before any statement is built.

OTP consumption is a single conditional UPDATE (code matches AND not expired)
so two concurrent requests carrying the same code cannot both succeed. The
follow-up read in consume_otp() only decides which error message to return.

Faults: the UNIQUE(email) violation becomes Conflict; every other
SQLAlchemyError is re-raised as StoreError.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, Float, Integer, MetaData, String, Table, Text, create_engine, event, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.errors import Conflict, StoreError
from auth.models import OtpCheck, OtpPurpose, User
from auth.passwords import hash_password
from auth.passwords import verify_password as _check_password

DUPLICATE_EMAIL_MESSAGE = "User with this email already exists"

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("hashed_password", Text, nullable=False),
    Column("is_account_verified", Boolean, nullable=False, default=False),
    Column("verify_otp", String(6)),
    Column("verify_otp_expires_at", Float),  # POSIX seconds
    Column("reset_otp", String(6)),
    Column("reset_otp_expires_at", Float),  # POSIX seconds
    Column("created_at", String(32), nullable=False),
)

# Fields consume_otp() may write alongside clearing the code. Validated before
# the statement is built so callers cannot smuggle arbitrary column writes.
_CONSUME_UPDATABLE = {"is_account_verified"}


# ---------------------------------------------------------------------------
# WAL mode
# ---------------------------------------------------------------------------


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode so readers are not blocked during writes."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User records.

    Usage:
        store = UserStore("sqlite:///:memory:")
        user = store.create("Ada", "ada@example.com", "s3cret-pass")
        store.verify_password(user, "s3cret-pass")   # True
        store.close()
    """

    def __init__(self, db_url: str, bcrypt_rounds: int = 10) -> None:
        self.bcrypt_rounds = bcrypt_rounds
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        _metadata.create_all(self.engine)

    @contextmanager
    def _read(self) -> Iterator[Connection]:
        try:
            with self.engine.connect() as conn:
                yield conn
        except SQLAlchemyError as exc:
            raise StoreError(f"read failed: {exc.__class__.__name__}") from exc

    @contextmanager
    def _write(self) -> Iterator[Connection]:
        """Open a transaction; commits on success, rolls back on any exception."""
        try:
            with self.engine.begin() as conn:
                yield conn
        except SQLAlchemyError as exc:
            raise StoreError(f"write failed: {exc.__class__.__name__}") from exc

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_by_email(self, email: str) -> User | None:
        """Look up a user by exact email (case-sensitive). Returns None if not found."""
        with self._read() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self._read() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def ping(self) -> bool:
        """Return True if the database answers a trivial query. Used by /health."""
        try:
            with self._read() as conn:
                conn.execute(select(1))
        except StoreError:
            return False
        return True

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, name: str, email: str, raw_password: str) -> User:
        """Hash the password, insert an unverified user, and return it.

        Raises Conflict if the email is taken. The pre-check gives the common
        case a clean path; the IntegrityError branch covers two registrations
        racing past the pre-check.
        """
        if self.find_by_email(email) is not None:
            raise Conflict(DUPLICATE_EMAIL_MESSAGE)
        user = User(
            name=name,
            email=email,
            hashed_password=hash_password(raw_password, self.bcrypt_rounds),
            created_at=_now_iso(),
        )
        try:
            with self._write() as conn:
                result = conn.execute(
                    _users.insert().values(
                        name=user.name,
                        email=user.email,
                        hashed_password=user.hashed_password,
                        is_account_verified=False,
                        created_at=user.created_at,
                    )
                )
                user.id = result.inserted_primary_key[0]
        except StoreError as exc:
            if isinstance(exc.__cause__, IntegrityError):
                raise Conflict(DUPLICATE_EMAIL_MESSAGE) from exc
            raise
        return user

    def save(self, user: User) -> None:
        """Persist every mutable field of an existing user record."""
        if user.id is None:
            raise ValueError("cannot save a user that was never created")
        with self._write() as conn:
            conn.execute(
                _users.update()
                .where(_users.c.id == user.id)
                .values(
                    name=user.name,
                    hashed_password=user.hashed_password,
                    is_account_verified=user.is_account_verified,
                    verify_otp=user.verify_otp,
                    verify_otp_expires_at=user.verify_otp_expires_at,
                    reset_otp=user.reset_otp,
                    reset_otp_expires_at=user.reset_otp_expires_at,
                )
            )

    def update_password(self, user_id: int, raw_password: str) -> str:
        """Hash and store a new password. Returns the new hash."""
        hashed = hash_password(raw_password, self.bcrypt_rounds)
        with self._write() as conn:
            conn.execute(_users.update().where(_users.c.id == user_id).values(hashed_password=hashed))
        return hashed

    def verify_password(self, user: User, raw_password: str) -> bool:
        return _check_password(raw_password, user.hashed_password)

    # ------------------------------------------------------------------
    # OTP columns
    # ------------------------------------------------------------------

    def set_otp(self, user: User, purpose: OtpPurpose, code: str, expires_at: float) -> None:
        """Store a fresh code + expiry pair for purpose, replacing any active code."""
        code_col, exp_col = purpose.code_field, purpose.expiry_field
        with self._write() as conn:
            conn.execute(_users.update().where(_users.c.id == user.id).values({code_col: code, exp_col: expires_at}))
        setattr(user, code_col, code)
        setattr(user, exp_col, expires_at)

    def consume_otp(self, user_id: int, purpose: OtpPurpose, code: str, now: float, **updates) -> OtpCheck:
        """Check-and-clear an OTP in one conditional UPDATE.

        On a match that has not expired, the code and expiry are cleared and
        updates (e.g. is_account_verified=True) are written in the same
        statement. A matching but expired code is cleared too, so it cannot
        linger. Anything else leaves the row untouched.
        """
        unknown = set(updates) - _CONSUME_UPDATABLE
        if unknown:
            raise ValueError(f"Unsupported fields for consume_otp: {unknown!r}")
        code_name, exp_name = purpose.code_field, purpose.expiry_field
        code_col, exp_col = _users.c[code_name], _users.c[exp_name]
        cleared = {code_name: None, exp_name: None}

        with self._write() as conn:
            result = conn.execute(
                _users.update()
                .where((_users.c.id == user_id) & (code_col == code) & (exp_col >= now))
                .values({**cleared, **updates})
            )
            if result.rowcount == 1:
                return OtpCheck.CONSUMED

            row = conn.execute(select(code_col, exp_col).where(_users.c.id == user_id)).fetchone()
            if row is None or row[0] is None or row[0] != code:
                return OtpCheck.INVALID
            conn.execute(_users.update().where((_users.c.id == user_id) & (code_col == code)).values(cleared))
            return OtpCheck.EXPIRED

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        name=row.name,
        email=row.email,
        hashed_password=row.hashed_password,
        is_account_verified=bool(row.is_account_verified),
        verify_otp=row.verify_otp,
        verify_otp_expires_at=row.verify_otp_expires_at,
        reset_otp=row.reset_otp,
        reset_otp_expires_at=row.reset_otp_expires_at,
        created_at=row.created_at,
    )
