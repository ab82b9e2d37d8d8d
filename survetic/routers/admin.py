"""Administrative user management endpoints."""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from survetic.database import get_db
from survetic.dependencies import get_admin_user
from survetic.errors import NotFoundError, ValidationError
from survetic.models.user import User
from survetic.schemas.admin import (
    AdminCreateUserRequest,
    AdminDeleteUserResponse,
    AdminResetPasswordRequest,
    AdminResetPasswordResponse,
    AdminUserListResponse,
    SetVerificationRequest,
)
from survetic.schemas.auth import UserProfile
from survetic.services.auth_service import AuthService
from survetic.services.user_service import UserService
from survetic.utils.passwords import generate_temporary_password

logger = logging.getLogger(__name__)

router = APIRouter()


async def _load_user(user_service: UserService, user_id: UUID) -> User:
    user = await user_service.get_user_by_id(user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


@router.get("/users", response_model=AdminUserListResponse)
async def list_users(
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
) -> AdminUserListResponse:
    users = await UserService(db).list_users()
    return AdminUserListResponse(
        users=[UserProfile.model_validate(user) for user in users],
        total=len(users),
    )


@router.post("/users", response_model=UserProfile, status_code=201)
async def create_user(
    request: AdminCreateUserRequest,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
) -> UserProfile:
    """Create an account directly; no verification email is sent."""
    user = await UserService(db).create_user(
        email=request.email,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
        is_verified=request.is_verified,
        is_admin=request.is_admin,
    )
    logger.info("Admin %s created user %s", admin.user_id, user.user_id)
    return UserProfile.model_validate(user)


@router.delete("/users/{user_id}", response_model=AdminDeleteUserResponse)
async def delete_user(
    user_id: UUID,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
) -> AdminDeleteUserResponse:
    """Delete a user with their surveys, responses and refresh tokens."""
    if user_id == admin.user_id:
        raise ValidationError("You cannot delete your own account")

    deletion_counts = await UserService(db).delete_user(user_id)
    logger.info("Admin %s deleted user %s", admin.user_id, user_id)
    return AdminDeleteUserResponse(message="User deleted successfully", deletion_counts=deletion_counts)


@router.patch("/users/{user_id}/verification", response_model=UserProfile)
async def set_verification(
    user_id: UUID,
    request: SetVerificationRequest,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
) -> UserProfile:
    user_service = UserService(db)
    user = await _load_user(user_service, user_id)
    user = await user_service.set_verification(user, request.is_verified)
    logger.info("Admin %s set verified=%s for user %s", admin.user_id, request.is_verified, user_id)
    return UserProfile.model_validate(user)


@router.patch("/users/{user_id}/password", response_model=AdminResetPasswordResponse)
async def reset_password(
    user_id: UUID,
    request: AdminResetPasswordRequest,
    admin: User = Depends(get_admin_user),
    db: AsyncSession = Depends(get_db),
) -> AdminResetPasswordResponse:
    """Set a user's password, generating one when none is supplied."""
    user_service = UserService(db)
    user = await _load_user(user_service, user_id)

    generated = request.new_password is None
    new_password = generate_temporary_password() if generated else request.new_password
    await AuthService(db, user_service=user_service).reset_password(user, new_password)

    logger.info("Admin %s reset password for user %s", admin.user_id, user_id)
    return AdminResetPasswordResponse(
        message="Password updated successfully",
        temporary_password=new_password if generated else None,
    )
