"""AdminUser schemas"""
import re
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from sleepplanet.models.admin_user import AdminUser

USERNAME_PATTERN = r"^[A-Za-z0-9_]+$"
PHONE_PATTERN = r"^[0-9]{11}$"
EMAIL_MAX_LENGTH = 100
_DIGIT = re.compile(r"\d")


def _require_digit(password: str) -> str:
    if not _DIGIT.search(password):
        raise ValueError("password must contain at least one digit")
    return password


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=20, pattern=USERNAME_PATTERN)
    password: str = Field(..., min_length=8, max_length=32)

    @field_validator("password")
    @classmethod
    def password_has_digit(cls, value: str) -> str:
        return _require_digit(value)


class LoginResult(BaseModel):
    """Returned by a successful login. ``exp`` is the token's absolute expiry (unix seconds)."""
    admin_id: int
    username: str
    token: str
    exp: int


class AdminUserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=20, pattern=USERNAME_PATTERN)
    password: str = Field(..., min_length=8, max_length=32)
    email: EmailStr
    phone_number: Optional[str] = Field(None, pattern=PHONE_PATTERN, description="11 digits")
    role_names: List[str] = Field(..., min_length=1, description="At least one role name")

    @field_validator("password")
    @classmethod
    def password_has_digit(cls, value: str) -> str:
        return _require_digit(value)

    @field_validator("email")
    @classmethod
    def email_fits_column(cls, value: str) -> str:
        if len(value) > EMAIL_MAX_LENGTH:
            raise ValueError(f"email must be at most {EMAIL_MAX_LENGTH} characters")
        return value


class AdminUserCreated(BaseModel):
    admin_id: int


class AdminSummary(BaseModel):
    """Listing entry. Never carries the password hash."""
    id: int
    username: str
    email: str
    phone_number: Optional[str]
    is_active: bool
    roles: List[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_admin(cls, admin: AdminUser, roles: List[str]) -> "AdminSummary":
        return cls(
            id=admin.id,
            username=admin.username,
            email=admin.email,
            phone_number=admin.phone_number,
            is_active=admin.is_active,
            roles=list(roles),
            created_at=admin.created_at,
            updated_at=admin.updated_at,
        )


class MessageResponse(BaseModel):
    message: str


class CurrentAdmin(BaseModel):
    admin_id: int
    username: str
    roles: List[str]
    exp: int
