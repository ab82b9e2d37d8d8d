"""Authentication schema definitions."""
from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import Field, constr, field_validator

from survetic.schemas.base import BaseSchema


NameStr = constr(strip_whitespace=True, min_length=1, max_length=255)
PasswordStr = constr(min_length=1, max_length=255)
EmailLike = constr(
    strip_whitespace=True, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$", min_length=5, max_length=255
)


class UserProfile(BaseSchema):
    """A user as seen by the user themself or by an admin (no secrets)."""

    user_id: UUID = Field(serialization_alias="id")
    email: str
    first_name: str
    last_name: str
    is_verified: bool
    is_admin: bool
    profile_image_url: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    last_login_date: Optional[datetime] = None


class RegisterRequest(BaseSchema):
    """Payload for creating a new account."""

    email: EmailLike
    password: PasswordStr
    first_name: NameStr
    last_name: NameStr


class RegisterResponse(BaseSchema):
    message: str
    user_id: UUID
    is_verified: bool
    email_sent: bool


class ResendVerificationRequest(BaseSchema):
    email: EmailLike


class ResendVerificationResponse(BaseSchema):
    message: str
    email_sent: bool


class LoginRequest(BaseSchema):
    """Login payload."""

    email: EmailLike
    password: PasswordStr


class AuthTokenResponse(BaseSchema):
    """Standard response containing JWT credentials."""

    message: str = "Login successful"
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserProfile


class RefreshRequest(BaseSchema):
    """Refresh payload (optional when using cookies)."""

    refresh_token: Optional[str] = None


class LogoutRequest(BaseSchema):
    """Logout payload; the refresh token may come from the cookie instead."""

    refresh_token: Optional[str] = None


class UpdateProfileRequest(BaseSchema):
    """Self-service profile update; omitted fields are left unchanged."""

    first_name: Optional[NameStr] = None
    last_name: Optional[NameStr] = None
    email: Optional[EmailLike] = None


class ChangePasswordRequest(BaseSchema):
    """Request payload for password change."""

    current_password: PasswordStr
    new_password: PasswordStr
    confirm_password: Optional[str] = None

    @field_validator("confirm_password")
    @classmethod
    def passwords_match(cls, value, info):
        if value is not None and value != info.data.get("new_password"):
            raise ValueError("Passwords do not match")
        return value


class ChangePasswordResponse(BaseSchema):
    """Response after password update with freshly issued credentials."""

    message: str
    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "bearer"
