"""
API request and response models for the Onushilon REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

Request models run the auth/validators.py predicates in field validators, so
malformed input is rejected before it reaches a service. The services repeat
the checks for callers that do not come through HTTP.

Public user fields never include the password hash or the reset OTP fields:
PublicUser.from_user() is the only mapping from User to a response.
"""

from enum import Enum
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, StrictBool, field_validator

from auth.models import User
from auth.validators import (
    is_strong_password,
    is_valid_age,
    is_valid_email,
    is_valid_name,
    is_valid_password,
    is_valid_phone,
    normalize_phone,
)

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class RoleEnum(str, Enum):
    user = "user"
    moderator = "moderator"
    admin = "admin"


# ---------------------------------------------------------------------------
# Field checks shared by several request models
# ---------------------------------------------------------------------------


def _check_name(value: str) -> str:
    if not is_valid_name(value):
        raise ValueError("Name must be between 2 and 50 characters and contain only letters and spaces")
    return value.strip()


def _check_email(value: str) -> str:
    value = value.strip().lower()
    if not is_valid_email(value):
        raise ValueError("Please provide a valid email address")
    return value


def _check_phone(value: str) -> str:
    if not is_valid_phone(value):
        raise ValueError("Please provide a valid phone number")
    return normalize_phone(value)


def _check_age(value: int) -> int:
    if not is_valid_age(value):
        raise ValueError("Age must be a whole number between 1 and 150")
    return value


NameStr = Annotated[str, AfterValidator(_check_name)]
EmailAddress = Annotated[str, AfterValidator(_check_email)]
PhoneStr = Annotated[str, AfterValidator(_check_phone)]
Age = Annotated[int, AfterValidator(_check_age)]


# ---------------------------------------------------------------------------
# Auth request models
# ---------------------------------------------------------------------------


class RegisterRequest(BaseModel):
    """Request body for POST /api/v1/auth/register."""

    name: NameStr
    email: EmailAddress
    phone: PhoneStr
    age: Age
    password: str = Field(max_length=72)

    @field_validator("password")
    @classmethod
    def check_password(cls, value: str) -> str:
        if not is_strong_password(value):
            raise ValueError(
                "Password must be at least 6 characters and contain at least one uppercase "
                "letter, one lowercase letter, and one number"
            )
        return value


class LoginRequest(BaseModel):
    """Request body for POST /api/v1/auth/login."""

    email: EmailAddress
    password: str = Field(min_length=1, max_length=255)


class ProfileUpdate(BaseModel):
    """Request body for PUT /api/v1/auth/profile. Any subset of the fields."""

    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")

    name: Optional[NameStr] = None
    email: Optional[EmailAddress] = None
    phone: Optional[PhoneStr] = None
    age: Optional[Age] = None


class ResetRequest(BaseModel):
    """Request body for POST /api/v1/auth/password-reset/request."""

    email: EmailAddress


class ResetPasswordRequest(BaseModel):
    """Request body for POST /api/v1/auth/password-reset/reset.

    otp is kept as a string: "012345" and "12345" are different codes.
    """

    email: EmailAddress
    otp: str = Field(min_length=1, max_length=16)
    new_password: str = Field(max_length=72)

    @field_validator("new_password")
    @classmethod
    def check_password(cls, value: str) -> str:
        if not is_valid_password(value):
            raise ValueError("Password must be at least 6 characters long")
        return value


# ---------------------------------------------------------------------------
# Admin request models
# ---------------------------------------------------------------------------


class RoleUpdate(BaseModel):
    """Request body for PUT /api/v1/admin/users/{id}/role."""

    role: RoleEnum


class StatusUpdate(BaseModel):
    """Request body for PUT /api/v1/admin/users/{id}/status.

    Accepts {"isActive": ...}, the name existing clients send, or
    {"is_active": ...}. StrictBool: "false" or 0 are rejected, only JSON
    booleans are accepted.
    """

    model_config = ConfigDict(populate_by_name=True)

    is_active: StrictBool = Field(alias="isActive")


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class PublicUser(BaseModel):
    """The user fields that may leave the service."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    email: str
    phone: str
    age: int
    role: str
    is_active: bool
    last_login: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "PublicUser":
        """Build a PublicUser from a domain User -- the only User-to-response mapping."""
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            phone=user.phone,
            age=user.age,
            role=user.role,
            is_active=user.is_active,
            last_login=user.last_login,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class AuthResponse(BaseModel):
    """Response for register and login."""

    model_config = ConfigDict(frozen=True)

    user: PublicUser
    token: str
    token_type: str = "bearer"
    expires_in: int


class UserResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    user: PublicUser


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class Pagination(BaseModel):
    model_config = ConfigDict(frozen=True)

    page: int
    pages: int
    count: int
    total: int


class UserListResponse(BaseModel):
    """Response for GET /api/v1/admin/users."""

    model_config = ConfigDict(frozen=True)

    users: list[PublicUser]
    pagination: Pagination


class StatisticsResponse(BaseModel):
    """Response for GET /api/v1/admin/stats."""

    model_config = ConfigDict(frozen=True)

    total_users: int
    active_users: int
    inactive_users: int
    users_by_role: dict[str, int]
    recent_users: list[PublicUser]


class ErrorDetail(BaseModel):
    """Machine-readable error payload."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /api/v1/health."""

    model_config = ConfigDict(frozen=True)

    status: str = "healthy"
    version: str
    components: dict[str, str] = Field(default_factory=dict)
