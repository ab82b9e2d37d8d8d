"""User account persistence and lifecycle."""
from __future__ import annotations

import logging
import uuid

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from survetic.errors import ConflictError, NotFoundError, ValidationError
from survetic.models.refresh_token import RefreshToken
from survetic.models.response import SurveyResponse
from survetic.models.survey import Survey
from survetic.models.user import User
from survetic.utils.passwords import (
    PasswordValidationError,
    generate_verification_token,
    hash_password,
    validate_password_strength,
)

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


def coerce_user_id(user_id) -> uuid.UUID | None:
    """Parse ``user_id`` into a UUID, returning None for anything malformed."""
    if isinstance(user_id, uuid.UUID):
        return user_id
    try:
        return uuid.UUID(str(user_id))
    except (TypeError, ValueError, AttributeError):
        return None


def check_password_policy(password: str) -> None:
    """Re-raise password policy failures as a 400."""
    try:
        validate_password_strength(password)
    except PasswordValidationError as exc:
        raise ValidationError(str(exc)) from exc


class UserService:
    """Service for reading and mutating user accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user_by_id(self, user_id) -> User | None:
        parsed = coerce_user_id(user_id)
        if parsed is None:
            return None
        result = await self.db.execute(select(User).where(User.user_id == parsed))
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> User | None:
        normalized_email = normalize_email(email)
        if not normalized_email:
            return None
        result = await self.db.execute(select(User).where(User.email == normalized_email))
        return result.scalar_one_or_none()

    async def get_user_by_verification_token(self, token: str) -> User | None:
        if not token:
            return None
        result = await self.db.execute(select(User).where(User.verification_token == token))
        return result.scalar_one_or_none()

    async def list_users(self) -> list[User]:
        result = await self.db.execute(select(User).order_by(User.created_at.desc()))
        return list(result.scalars().all())

    async def create_user(
        self,
        *,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        is_verified: bool = False,
        is_admin: bool = False,
    ) -> User:
        """Create a new account.

        Unverified accounts get a fresh verification token; accounts created
        already verified do not.

        Raises:
            ValidationError: If the password fails the policy.
            ConflictError: If the normalized email is already registered.
        """
        normalized_email = normalize_email(email)
        check_password_policy(password)

        if await self.get_user_by_email(normalized_email):
            raise ConflictError()

        user = User(
            user_id=uuid.uuid4(),
            email=normalized_email,
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            password_hash=hash_password(password),
            is_verified=is_verified,
            is_admin=is_admin,
            verification_token=None if is_verified else generate_verification_token(),
        )
        self.db.add(user)
        try:
            await self.db.commit()
        except IntegrityError as exc:
            # Lost a race with a concurrent registration for the same email
            await self.db.rollback()
            raise ConflictError() from exc

        await self.db.refresh(user)
        logger.info("Created user %s (verified=%s, admin=%s)", user.user_id, is_verified, is_admin)
        return user

    async def update_profile(
        self,
        user: User,
        *,
        first_name: str | None = None,
        last_name: str | None = None,
        email: str | None = None,
    ) -> User:
        """Apply the provided profile fields; omitted ones are left unchanged."""
        if first_name is not None:
            user.first_name = first_name.strip()
        if last_name is not None:
            user.last_name = last_name.strip()
        if email is not None:
            normalized_email = normalize_email(email)
            if normalized_email != user.email:
                existing = await self.get_user_by_email(normalized_email)
                if existing and existing.user_id != user.user_id:
                    await self.db.rollback()
                    raise ConflictError()
                user.email = normalized_email

        try:
            await self.db.commit()
        except IntegrityError as exc:
            await self.db.rollback()
            raise ConflictError() from exc

        await self.db.refresh(user)
        return user

    async def update_password(self, user: User, new_password: str) -> None:
        """Replace the user's password hash after checking the policy."""
        check_password_policy(new_password)
        user.password_hash = hash_password(new_password)
        await self.db.commit()
        await self.db.refresh(user)

    async def set_verification(self, user: User, is_verified: bool) -> User:
        """Set the verified flag. Verifying clears any pending token."""
        user.is_verified = is_verified
        if is_verified:
            user.verification_token = None
        elif not user.verification_token:
            user.verification_token = generate_verification_token()
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def assign_verification_token(self, user: User) -> str:
        token = generate_verification_token()
        user.verification_token = token
        await self.db.commit()
        return token

    async def delete_user(self, user_id) -> dict[str, int]:
        """Delete a user and everything they own.

        Returns:
            Row counts per table.

        Raises:
            NotFoundError: If no such user exists.
        """
        user = await self.get_user_by_id(user_id)
        if not user:
            raise NotFoundError("User not found")

        deletion_counts: dict[str, int] = {}
        survey_ids = select(Survey.survey_id).where(Survey.user_id == user.user_id)

        try:
            # Delete children first (in order to respect foreign keys)
            result = await self.db.execute(
                delete(SurveyResponse).where(SurveyResponse.survey_id.in_(survey_ids))
            )
            deletion_counts["responses"] = result.rowcount or 0

            result = await self.db.execute(delete(Survey).where(Survey.user_id == user.user_id))
            deletion_counts["surveys"] = result.rowcount or 0

            result = await self.db.execute(
                delete(RefreshToken).where(RefreshToken.user_id == user.user_id)
            )
            deletion_counts["refresh_tokens"] = result.rowcount or 0

            result = await self.db.execute(delete(User).where(User.user_id == user.user_id))
            deletion_counts["users"] = result.rowcount or 0

            await self.db.commit()
        except Exception:
            await self.db.rollback()
            logger.error("Failed to delete user %s", user_id, exc_info=True)
            raise

        logger.info("Deleted user %s and related data: %s", user_id, deletion_counts)
        return deletion_counts
