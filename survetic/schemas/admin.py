"""Admin API schemas."""
from typing import Optional

from survetic.schemas.auth import EmailLike, NameStr, PasswordStr, UserProfile
from survetic.schemas.base import BaseSchema


class AdminCreateUserRequest(BaseSchema):
    email: EmailLike
    password: PasswordStr
    first_name: NameStr
    last_name: NameStr
    is_admin: bool = False
    is_verified: bool = True


class AdminUserListResponse(BaseSchema):
    users: list[UserProfile]
    total: int


class SetVerificationRequest(BaseSchema):
    is_verified: bool


class AdminResetPasswordRequest(BaseSchema):
    """A new password, or nothing to have one generated."""

    new_password: Optional[PasswordStr] = None


class AdminResetPasswordResponse(BaseSchema):
    message: str
    temporary_password: Optional[str] = None


class AdminDeleteUserResponse(BaseSchema):
    message: str
    deletion_counts: dict[str, int]
