"""
Tests for AuthService - registration, verification, JWT and refresh tokens.
"""
from datetime import UTC, datetime, timedelta
import uuid

import jwt
import pytest
from sqlalchemy import select

from survetic.config import get_settings
from survetic.errors import (
    AlreadyVerifiedError,
    ConflictError,
    EmailNotVerifiedError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from survetic.models.refresh_token import RefreshToken
from survetic.models.user import User
from survetic.services.auth_service import AuthService
from survetic.utils.passwords import hash_password, hash_rounds, verify_password

from conftest import DEFAULT_PASSWORD, unique_email


async def _register(db_session, email_service, email=None, password=DEFAULT_PASSWORD):
    return await AuthService(db_session).register(
        email=email or unique_email("reg"),
        password=password,
        first_name="Reg",
        last_name="Istered",
        email_service=email_service,
    )


class TestRegistration:

    @pytest.mark.asyncio
    async def test_register_creates_unverified_user(self, db_session, email_service):
        user, email_sent = await _register(db_session, email_service)

        assert email_sent is True
        assert user.is_verified is False
        assert user.verification_token
        assert email_service.sent[-1]["token"] == user.verification_token
        assert verify_password(DEFAULT_PASSWORD, user.password_hash)

    @pytest.mark.asyncio
    async def test_register_survives_email_failure(self, db_session, email_service):
        email_service.succeed = False

        user, email_sent = await _register(db_session, email_service)

        assert email_sent is False
        assert user.user_id is not None

    @pytest.mark.asyncio
    async def test_duplicate_email_is_case_insensitive(self, db_session, email_service):
        email = unique_email("dup")
        await _register(db_session, email_service, email=email)

        with pytest.raises(ConflictError):
            await _register(db_session, email_service, email=f"  {email.upper()} ")

    @pytest.mark.asyncio
    async def test_short_password_rejected(self, db_session, email_service):
        with pytest.raises(ValidationError):
            await _register(db_session, email_service, password="abc")


class TestVerification:

    @pytest.mark.asyncio
    async def test_token_works_once(self, db_session, email_service):
        user, _ = await _register(db_session, email_service)
        token = user.verification_token
        auth_service = AuthService(db_session)

        verified = await auth_service.verify_email(token)
        assert verified.is_verified is True
        assert verified.verification_token is None

        with pytest.raises(NotFoundError):
            await auth_service.verify_email(token)

    @pytest.mark.asyncio
    async def test_resend_issues_new_token(self, db_session, email_service):
        user, _ = await _register(db_session, email_service)
        first_token = user.verification_token

        sent = await AuthService(db_session).resend_verification(user.email, email_service)

        assert sent is True
        assert user.verification_token != first_token
        assert email_service.last_token_for(user.email) == user.verification_token

    @pytest.mark.asyncio
    async def test_resend_unknown_and_verified(self, db_session, email_service, user_factory):
        auth_service = AuthService(db_session)
        with pytest.raises(NotFoundError):
            await auth_service.resend_verification(unique_email("nobody"), email_service)

        verified_user = await user_factory()
        with pytest.raises(AlreadyVerifiedError):
            await auth_service.resend_verification(verified_user.email, email_service)


class TestAuthentication:

    @pytest.mark.asyncio
    async def test_login_success_updates_last_login(self, db_session, user_factory):
        user = await user_factory()

        authenticated = await AuthService(db_session).authenticate_user(user.email.upper(), DEFAULT_PASSWORD)

        assert authenticated.user_id == user.user_id
        assert authenticated.last_login_date is not None

    @pytest.mark.asyncio
    async def test_unknown_email_and_wrong_password_look_alike(self, db_session, user_factory):
        user = await user_factory()
        auth_service = AuthService(db_session)

        with pytest.raises(UnauthorizedError) as wrong_password:
            await auth_service.authenticate_user(user.email, "not-the-password")
        with pytest.raises(UnauthorizedError) as unknown_email:
            await auth_service.authenticate_user(unique_email("ghost"), DEFAULT_PASSWORD)

        assert wrong_password.value.message == unknown_email.value.message

    @pytest.mark.asyncio
    async def test_unverified_user_rejected_after_password_check(self, db_session, user_factory):
        user = await user_factory(is_verified=False)
        auth_service = AuthService(db_session)

        with pytest.raises(EmailNotVerifiedError):
            await auth_service.authenticate_user(user.email, DEFAULT_PASSWORD)

        with pytest.raises(UnauthorizedError) as exc_info:
            await auth_service.authenticate_user(user.email, "not-the-password")
        assert not isinstance(exc_info.value, EmailNotVerifiedError)

    @pytest.mark.asyncio
    async def test_cheap_hash_upgraded_on_login(self, db_session, user_factory):
        user = await user_factory()
        user.password_hash = hash_password(DEFAULT_PASSWORD, rounds=4)
        await db_session.commit()

        authenticated = await AuthService(db_session).authenticate_user(user.email, DEFAULT_PASSWORD)

        assert hash_rounds(authenticated.password_hash) == get_settings().bcrypt_rounds
        assert verify_password(DEFAULT_PASSWORD, authenticated.password_hash)


class TestAccessTokens:

    @pytest.mark.asyncio
    async def test_token_round_trip(self, db_session, user_factory):
        user = await user_factory()
        auth_service = AuthService(db_session)

        token, expires_in = auth_service.create_access_token(user)
        payload = auth_service.decode_access_token(token)

        assert payload["sub"] == str(user.user_id)
        assert payload["type"] == "access"
        assert expires_in == get_settings().access_token_exp_minutes * 60
        assert (await auth_service.authenticate_token(token)).user_id == user.user_id

    @pytest.mark.asyncio
    async def test_expired_token_rejected(self, db_session, user_factory):
        user = await user_factory()
        settings = get_settings()
        past = datetime.now(UTC) - timedelta(minutes=5)
        token = jwt.encode(
            {"sub": str(user.user_id), "type": "access", "exp": int(past.timestamp())},
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(UnauthorizedError):
            await AuthService(db_session).authenticate_token(token)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "claims,key",
        [
            ({"type": "refresh"}, None),
            ({"type": "access"}, "some-other-secret"),
        ],
    )
    async def test_wrong_type_or_signature_rejected(self, db_session, user_factory, claims, key):
        user = await user_factory()
        settings = get_settings()
        future = datetime.now(UTC) + timedelta(minutes=5)
        token = jwt.encode(
            {"sub": str(user.user_id), "exp": int(future.timestamp()), **claims},
            key or settings.secret_key,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(UnauthorizedError):
            await AuthService(db_session).authenticate_token(token)

    @pytest.mark.asyncio
    async def test_garbage_token_rejected(self, db_session):
        with pytest.raises(UnauthorizedError):
            await AuthService(db_session).authenticate_token("not.a.jwt")

    @pytest.mark.asyncio
    async def test_token_for_missing_user_rejected(self, db_session):
        ghost = User(user_id=uuid.uuid4(), email=unique_email("ghost"))
        token, _ = AuthService(db_session).create_access_token(ghost)

        with pytest.raises(UnauthorizedError):
            await AuthService(db_session).authenticate_token(token)


class TestRefreshTokens:

    @pytest.mark.asyncio
    async def test_refresh_rotates_token(self, db_session, user_factory):
        user = await user_factory()
        auth_service = AuthService(db_session)
        _, refresh_token, _ = await auth_service.issue_tokens(user)

        same_user, access_token, new_refresh, _ = await auth_service.exchange_refresh_token(refresh_token)

        assert same_user.user_id == user.user_id
        assert new_refresh != refresh_token
        assert access_token
        with pytest.raises(UnauthorizedError):
            await auth_service.exchange_refresh_token(refresh_token)

    @pytest.mark.asyncio
    async def test_revoked_token_cannot_refresh(self, db_session, user_factory):
        user = await user_factory()
        auth_service = AuthService(db_session)
        _, refresh_token, _ = await auth_service.issue_tokens(user)

        await auth_service.revoke_refresh_token(refresh_token)

        with pytest.raises(UnauthorizedError):
            await auth_service.exchange_refresh_token(refresh_token)

    @pytest.mark.asyncio
    async def test_unknown_token_cannot_refresh(self, db_session):
        with pytest.raises(UnauthorizedError):
            await AuthService(db_session).exchange_refresh_token("never-issued")

    @pytest.mark.asyncio
    async def test_issue_tokens_stores_only_hash(self, db_session, user_factory):
        user = await user_factory()
        _, refresh_token, _ = await AuthService(db_session).issue_tokens(user)

        result = await db_session.execute(select(RefreshToken).where(RefreshToken.user_id == user.user_id))
        stored = result.scalars().all()

        assert len(stored) == 1
        assert stored[0].token_hash != refresh_token
        assert stored[0].is_active()


class TestChangePassword:

    @pytest.mark.asyncio
    async def test_change_password_revokes_old_sessions(self, db_session, user_factory):
        user = await user_factory()
        auth_service = AuthService(db_session)
        _, old_refresh, _ = await auth_service.issue_tokens(user)

        _, new_refresh, _ = await auth_service.change_password(user, DEFAULT_PASSWORD, "BrandNewPass1")

        assert verify_password("BrandNewPass1", user.password_hash)
        with pytest.raises(UnauthorizedError):
            await auth_service.exchange_refresh_token(old_refresh)
        await auth_service.exchange_refresh_token(new_refresh)

    @pytest.mark.asyncio
    async def test_wrong_current_password(self, db_session, user_factory):
        user = await user_factory()

        with pytest.raises(UnauthorizedError):
            await AuthService(db_session).change_password(user, "wrong-password", "BrandNewPass1")

    @pytest.mark.asyncio
    async def test_unchanged_password_rejected(self, db_session, user_factory):
        user = await user_factory()

        with pytest.raises(ValidationError):
            await AuthService(db_session).change_password(user, DEFAULT_PASSWORD, DEFAULT_PASSWORD)
