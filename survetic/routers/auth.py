"""Authentication and account self-service endpoints."""
import logging
from typing import Optional

from fastapi import APIRouter, Cookie, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from survetic.config import get_settings
from survetic.database import get_db
from survetic.dependencies import get_current_user, get_email_service
from survetic.errors import UnauthorizedError
from survetic.models.user import User
from survetic.schemas.auth import (
    AuthTokenResponse,
    ChangePasswordRequest,
    ChangePasswordResponse,
    LoginRequest,
    LogoutRequest,
    RefreshRequest,
    RegisterRequest,
    RegisterResponse,
    ResendVerificationRequest,
    ResendVerificationResponse,
    UpdateProfileRequest,
    UserProfile,
)
from survetic.schemas.base import MessageResponse
from survetic.services.auth_service import AuthService
from survetic.services.email_service import EmailService
from survetic.services.user_service import UserService
from survetic.utils.cookies import (
    clear_auth_cookies,
    set_access_token_cookie,
    set_refresh_cookie,
)

logger = logging.getLogger(__name__)

router = APIRouter()
settings = get_settings()


def _set_token_cookies(response: Response, access_token: str, refresh_token: str) -> None:
    set_access_token_cookie(response, access_token)
    set_refresh_cookie(response, refresh_token, expires_days=settings.refresh_token_exp_days)


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    request: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
) -> RegisterResponse:
    """Create an account and send its verification email."""
    user, email_sent = await AuthService(db).register(
        email=request.email,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
        email_service=email_service,
    )
    return RegisterResponse(
        message="Registration successful. Please check your email to verify your account.",
        user_id=user.user_id,
        is_verified=user.is_verified,
        email_sent=email_sent,
    )


@router.get("/verify-email", response_model=MessageResponse)
async def verify_email(
    token: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    await AuthService(db).verify_email(token)
    return MessageResponse(message="Email verified successfully. You can now log in.")


@router.post("/resend-verification", response_model=ResendVerificationResponse)
async def resend_verification(
    request: ResendVerificationRequest,
    db: AsyncSession = Depends(get_db),
    email_service: EmailService = Depends(get_email_service),
) -> ResendVerificationResponse:
    email_sent = await AuthService(db).resend_verification(request.email, email_service)
    message = "Verification email sent" if email_sent else "Verification email could not be sent"
    return ResendVerificationResponse(message=message, email_sent=email_sent)


@router.post("/login", response_model=AuthTokenResponse)
async def login(
    request: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> AuthTokenResponse:
    """Authenticate via email/password and issue JWT tokens."""
    auth_service = AuthService(db)
    user = await auth_service.authenticate_user(request.email, request.password)
    access_token, refresh_token, expires_in = await auth_service.issue_tokens(user, rotate_existing=False)
    _set_token_cookies(response, access_token, refresh_token)

    return AuthTokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=expires_in,
        user=UserProfile.model_validate(user),
    )


@router.post("/refresh", response_model=AuthTokenResponse)
async def refresh_tokens(
    response: Response,
    request: Optional[RefreshRequest] = None,
    refresh_cookie: str | None = Cookie(
        default=None, alias=settings.refresh_token_cookie_name
    ),
    db: AsyncSession = Depends(get_db),
) -> AuthTokenResponse:
    """Exchange a refresh token for new JWT credentials."""
    token = (request.refresh_token if request else None) or refresh_cookie
    if not token:
        raise UnauthorizedError("Missing refresh token")

    user, access_token, new_refresh_token, expires_in = await AuthService(db).exchange_refresh_token(token)
    _set_token_cookies(response, access_token, new_refresh_token)

    return AuthTokenResponse(
        message="Token refreshed",
        access_token=access_token,
        refresh_token=new_refresh_token,
        expires_in=expires_in,
        user=UserProfile.model_validate(user),
    )


@router.post("/logout", status_code=204)
async def logout(
    response: Response,
    request: Optional[LogoutRequest] = None,
    refresh_cookie: str | None = Cookie(
        default=None, alias=settings.refresh_token_cookie_name
    ),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Response:
    """Invalidate the provided refresh token and clear cookies."""
    token = (request.refresh_token if request else None) or refresh_cookie
    if token:
        await AuthService(db).revoke_refresh_token(token)

    logger.info("User %s logged out", user.user_id)
    response.status_code = 204
    clear_auth_cookies(response)
    return response


@router.get("/user", response_model=UserProfile)
async def get_user(user: User = Depends(get_current_user)) -> UserProfile:
    return UserProfile.model_validate(user)


@router.patch("/profile", response_model=UserProfile)
async def update_profile(
    request: UpdateProfileRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> UserProfile:
    updated = await UserService(db).update_profile(
        user,
        first_name=request.first_name,
        last_name=request.last_name,
        email=request.email,
    )
    return UserProfile.model_validate(updated)


@router.patch("/password", response_model=ChangePasswordResponse)
async def change_password(
    request: ChangePasswordRequest,
    response: Response,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> ChangePasswordResponse:
    """Change the password; every other session is signed out."""
    access_token, refresh_token, expires_in = await AuthService(db).change_password(
        user, request.current_password, request.new_password
    )
    _set_token_cookies(response, access_token, refresh_token)
    return ChangePasswordResponse(
        message="Password updated successfully",
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=expires_in,
    )
