"""Authentication and credential management."""
from __future__ import annotations

import hashlib
import logging
import secrets
import uuid
from datetime import UTC, datetime, timedelta

import jwt
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from survetic.config import get_settings
from survetic.errors import (
    AlreadyVerifiedError,
    EmailNotVerifiedError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from survetic.models.refresh_token import RefreshToken
from survetic.models.user import User
from survetic.services.email_service import EmailService
from survetic.services.user_service import UserService
from survetic.utils.passwords import hash_password, needs_update, verify_password

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"
INVALID_TOKEN = "Invalid or expired token"
REFRESH_FAILED = "Token could not be refreshed, please log in again"


def _hash_refresh_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


class AuthService:
    """Service responsible for credentials, verification and JWT issuance."""

    def __init__(self, db: AsyncSession, *, user_service: UserService | None = None):
        self.db = db
        self.settings = get_settings()
        self.user_service = user_service or UserService(db)

    # ------------------------------------------------------------------
    # Registration and verification
    # ------------------------------------------------------------------
    async def register(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        email_service: EmailService,
    ) -> tuple[User, bool]:
        """Create an unverified account and send its verification link.

        Returns:
            The new user and whether the verification email went out.
        """
        user = await self.user_service.create_user(
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
        )
        email_sent = await email_service.send_verification_email(
            user.email, user.first_name, user.verification_token
        )
        if not email_sent:
            logger.warning("Registration for %s succeeded but verification email failed", user.user_id)
        return user, email_sent

    async def verify_email(self, token: str) -> User:
        """Consume a verification token. A token works exactly once."""
        user = await self.user_service.get_user_by_verification_token(token)
        if not user:
            raise NotFoundError("Invalid or expired verification token")

        user.is_verified = True
        user.verification_token = None
        await self.db.commit()
        await self.db.refresh(user)
        logger.info("Verified email for user %s", user.user_id)
        return user

    async def resend_verification(self, email: str, email_service: EmailService) -> bool:
        user = await self.user_service.get_user_by_email(email)
        if not user:
            raise NotFoundError("User not found")
        if user.is_verified:
            raise AlreadyVerifiedError()

        token = await self.user_service.assign_verification_token(user)
        return await email_service.send_verification_email(user.email, user.first_name, token)

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------
    async def authenticate_user(self, email: str, password: str) -> User:
        """Check email and password.

        Unknown email and wrong password share one message. The unverified
        check runs only after the password matched.
        """
        user = await self.user_service.get_user_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            raise UnauthorizedError(INVALID_CREDENTIALS)

        if not user.is_verified:
            raise EmailNotVerifiedError()

        if needs_update(user.password_hash):
            user.password_hash = hash_password(password)
            logger.info("Upgraded password hash cost for user %s", user.user_id)

        user.last_login_date = datetime.now(UTC)
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def authenticate_token(self, token: str) -> User:
        """Resolve a bearer access token to its (still existing) user."""
        payload = self.decode_access_token(token)
        user = await self.user_service.get_user_by_id(payload.get("sub"))
        if not user:
            raise UnauthorizedError(INVALID_TOKEN)
        return user

    # ------------------------------------------------------------------
    # Token helpers
    # ------------------------------------------------------------------
    def _access_token_payload(self, user: User) -> dict:
        now = datetime.now(UTC)
        expire = now + timedelta(minutes=self.settings.access_token_exp_minutes)
        return {
            "sub": str(user.user_id),
            "type": "access",
            "iat": int(now.timestamp()),
            "exp": int(expire.timestamp()),
        }

    def create_access_token(self, user: User) -> tuple[str, int]:
        payload = self._access_token_payload(user)
        token = jwt.encode(payload, self.settings.secret_key, algorithm=self.settings.jwt_algorithm)
        expires_in = self.settings.access_token_exp_minutes * 60
        return token, expires_in

    def decode_access_token(self, token: str) -> dict:
        if not token:
            raise UnauthorizedError("Authentication required")
        try:
            payload = jwt.decode(
                token,
                self.settings.secret_key,
                algorithms=[self.settings.jwt_algorithm],
                options={"require": ["exp", "sub"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise UnauthorizedError("Token expired, please log in again") from exc
        except jwt.InvalidTokenError as exc:
            raise UnauthorizedError(INVALID_TOKEN) from exc

        if payload.get("type") != "access":
            raise UnauthorizedError(INVALID_TOKEN)
        return payload

    async def _store_refresh_token(self, user: User, raw_token: str, expires_at: datetime) -> RefreshToken:
        refresh_token = RefreshToken(
            token_id=uuid.uuid4(),
            user_id=user.user_id,
            token_hash=_hash_refresh_token(raw_token),
            expires_at=expires_at,
        )
        self.db.add(refresh_token)
        return refresh_token

    async def issue_tokens(self, user: User, *, rotate_existing: bool = True) -> tuple[str, str, int]:
        if rotate_existing:
            await self.revoke_all_refresh_tokens(user.user_id)

        access_token, expires_in = self.create_access_token(user)
        refresh_expires_at = datetime.now(UTC) + timedelta(days=self.settings.refresh_token_exp_days)
        raw_refresh_token = secrets.token_urlsafe(48)
        await self._store_refresh_token(user, raw_refresh_token, refresh_expires_at)
        await self.db.commit()
        return access_token, raw_refresh_token, expires_in

    async def revoke_refresh_token(self, raw_token: str) -> None:
        result = await self.db.execute(
            select(RefreshToken).where(RefreshToken.token_hash == _hash_refresh_token(raw_token))
        )
        refresh_token = result.scalar_one_or_none()
        if refresh_token and refresh_token.revoked_at is None:
            refresh_token.revoked_at = datetime.now(UTC)
            await self.db.commit()

    async def revoke_all_refresh_tokens(self, user_id: uuid.UUID) -> None:
        await self.db.execute(
            update(RefreshToken)
            .where(RefreshToken.user_id == user_id)
            .where(RefreshToken.revoked_at.is_(None))
            .values(revoked_at=datetime.now(UTC))
        )
        await self.db.commit()

    async def exchange_refresh_token(self, raw_token: str) -> tuple[User, str, str, int]:
        """Rotate a refresh token: revoke it and issue a new pair."""
        if not raw_token:
            raise UnauthorizedError("Missing refresh token")
        try:
            result = await self.db.execute(
                select(RefreshToken).where(RefreshToken.token_hash == _hash_refresh_token(raw_token))
            )
            refresh_token = result.scalar_one_or_none()
            if not refresh_token or not refresh_token.is_active():
                raise UnauthorizedError(REFRESH_FAILED)

            user = await self.user_service.get_user_by_id(refresh_token.user_id)
            if not user:
                raise UnauthorizedError(REFRESH_FAILED)

            refresh_token.revoked_at = datetime.now(UTC)

            access_token, expires_in = self.create_access_token(user)
            new_refresh_token_value = secrets.token_urlsafe(48)
            new_refresh_expires = datetime.now(UTC) + timedelta(days=self.settings.refresh_token_exp_days)
            await self._store_refresh_token(user, new_refresh_token_value, new_refresh_expires)
            await self.db.commit()
            return user, access_token, new_refresh_token_value, expires_in
        except UnauthorizedError:
            await self.db.rollback()
            raise
        except Exception:  # pragma: no cover - defensive logging
            await self.db.rollback()
            logger.error("Unexpected error exchanging refresh token", exc_info=True)
            raise

    # ------------------------------------------------------------------
    # Self-service
    # ------------------------------------------------------------------
    async def change_password(
        self, user: User, current_password: str, new_password: str
    ) -> tuple[str, str, int]:
        """Replace the password, revoke every refresh token and issue fresh ones."""
        if not verify_password(current_password, user.password_hash):
            raise UnauthorizedError("Current password is incorrect")
        if current_password == new_password:
            raise ValidationError("New password must be different from the current password")

        await self.user_service.update_password(user, new_password)
        logger.info("Password changed for user %s", user.user_id)
        return await self.issue_tokens(user, rotate_existing=True)

    async def reset_password(self, user: User, new_password: str) -> None:
        """Admin password reset; signs the user out everywhere."""
        await self.user_service.update_password(user, new_password)
        await self.revoke_all_refresh_tokens(user.user_id)
        logger.info("Password reset for user %s", user.user_id)
