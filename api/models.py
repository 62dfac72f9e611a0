"""
API request and response models for Authgate REST endpoints.

These Pydantic v2 models define the HTTP transport contract for the API layer.
They are intentionally separate from the dataclasses in auth/models.py, which
own the internal domain representation. Route handlers map between the two.

Request fields are Optional on purpose: presence checks live in AuthService
so every operation reports its own "missing details" message as a 400,
rather than a generic schema error.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import User

# Generous upper bounds; bcrypt's 72-byte password limit is enforced by the service.
_NAME_MAX = 255
_EMAIL_MAX = 255
_PASSWORD_MAX = 255
_OTP_MAX = 16


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    name: Optional[str] = Field(default=None, max_length=_NAME_MAX)
    email: Optional[str] = Field(default=None, max_length=_EMAIL_MAX)
    password: Optional[str] = Field(default=None, max_length=_PASSWORD_MAX)


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: Optional[str] = Field(default=None, max_length=_EMAIL_MAX)
    password: Optional[str] = Field(default=None, max_length=_PASSWORD_MAX)


class VerifyAccountRequest(BaseModel):
    """Request body for POST /api/v1/auth/verify-account. The user comes from the session."""

    otp: Optional[str] = Field(default=None, max_length=_OTP_MAX)


class ResetOtpRequest(BaseModel):
    """Request body for POST /api/v1/auth/reset-otp."""

    email: Optional[str] = Field(default=None, max_length=_EMAIL_MAX)


class ResetPasswordRequest(BaseModel):
    """Request body for POST /api/v1/auth/reset-password.

    The wire name is camelCase newPassword; new_password is accepted too.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = Field(default=None, max_length=_EMAIL_MAX)
    otp: Optional[str] = Field(default=None, max_length=_OTP_MAX)
    new_password: Optional[str] = Field(default=None, alias="newPassword", max_length=_PASSWORD_MAX)


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserPublic(BaseModel):
    """The parts of a User that may leave the server. No hash, no OTP fields."""

    model_config = ConfigDict(frozen=True)

    id: int
    name: str
    email: str
    is_account_verified: bool
    created_at: str

    @classmethod
    def from_user(cls, user: User) -> "UserPublic":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            is_account_verified=user.is_account_verified,
            created_at=user.created_at or "",
        )


class Envelope(BaseModel):
    """Uniform response body for every auth endpoint, success or failure."""

    model_config = ConfigDict(frozen=True)

    success: bool = True
    message: str
    data: Optional[UserPublic] = None


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str]
