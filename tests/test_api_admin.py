"""Tests for admin user management endpoints."""
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import func, select

from survetic.models.refresh_token import RefreshToken
from survetic.models.response import SurveyResponse
from survetic.models.survey import Survey
from survetic.models.user import User
from survetic.services.auth_service import AuthService

from conftest import DEFAULT_PASSWORD, unique_email


API_BASE_URL = "http://test/api"


def _admin_requests(target_id):
    return [
        ("GET", "/admin/users", None),
        ("POST", "/admin/users", {
            "email": unique_email("made"), "password": DEFAULT_PASSWORD, "firstName": "A", "lastName": "B",
        }),
        ("DELETE", f"/admin/users/{target_id}", None),
        ("PATCH", f"/admin/users/{target_id}/verification", {"isVerified": True}),
        ("PATCH", f"/admin/users/{target_id}/password", {"newPassword": "AnotherPass1"}),
    ]


@pytest.mark.asyncio
async def test_non_admin_forbidden_everywhere(test_app, user_factory, auth_headers):
    regular = await user_factory()
    target = await user_factory()

    async with AsyncClient(transport=ASGITransport(app=test_app), base_url=API_BASE_URL) as client:
        for method, path, body in _admin_requests(target.user_id):
            forbidden = await client.request(method, path, json=body, headers=auth_headers(regular))
            anonymous = await client.request(method, path, json=body)

            assert forbidden.status_code == 403, (method, path)
            assert forbidden.json() == {"message": "Admin access required"}
            assert anonymous.status_code == 401, (method, path)


@pytest.mark.asyncio
async def test_list_users_hides_secrets(test_app, user_factory, auth_headers):
    admin = await user_factory(is_admin=True)
    await user_factory()

    async with AsyncClient(transport=ASGITransport(app=test_app), base_url=API_BASE_URL) as client:
        response = await client.get("/admin/users", headers=auth_headers(admin))

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == len(data["users"])
    assert str(admin.user_id) in {user["id"] for user in data["users"]}
    for user in data["users"]:
        assert "passwordHash" not in user
        assert "verificationToken" not in user


@pytest.mark.asyncio
async def test_admin_creates_verified_user_without_email(test_app, user_factory, auth_headers, email_service):
    admin = await user_factory(is_admin=True)
    email = unique_email("created")
    payload = {"email": email, "password": DEFAULT_PASSWORD, "firstName": "New", "lastName": "Member"}

    async with AsyncClient(transport=ASGITransport(app=test_app), base_url=API_BASE_URL) as client:
        created = await client.post("/admin/users", json=payload, headers=auth_headers(admin))
        duplicate = await client.post("/admin/users", json=payload, headers=auth_headers(admin))
        login = await client.post("/auth/login", json={"email": email, "password": DEFAULT_PASSWORD})
        promoted = await client.post(
            "/admin/users",
            json={**payload, "email": unique_email("boss"), "isAdmin": True, "isVerified": False},
            headers=auth_headers(admin),
        )

    assert created.status_code == 201
    assert created.json()["isVerified"] is True
    assert created.json()["isAdmin"] is False
    assert email_service.sent == []
    assert duplicate.status_code == 409
    assert login.status_code == 200
    assert promoted.status_code == 201
    assert promoted.json()["isAdmin"] is True
    assert promoted.json()["isVerified"] is False


@pytest.mark.asyncio
async def test_delete_user_cascades(
    test_app, db_session, session_factory, user_factory, survey_factory, auth_headers
):
    admin = await user_factory(is_admin=True)
    doomed = await user_factory()
    survey = await survey_factory(doomed, is_published=True)
    await AuthService(db_session).issue_tokens(doomed)
    doomed_headers = auth_headers(doomed)

    async with AsyncClient(transport=ASGITransport(app=test_app), base_url=API_BASE_URL) as client:
        await client.post(
            f"/surveys/{survey.survey_id}/responses", json={"answers": [{"questionId": "q1", "answer": "Red"}]}
        )
        before = await client.get("/auth/user", headers=doomed_headers)
        deleted = await client.delete(f"/admin/users/{doomed.user_id}", headers=auth_headers(admin))
        again = await client.delete(f"/admin/users/{doomed.user_id}", headers=auth_headers(admin))
        after = await client.get("/auth/user", headers=doomed_headers)

    assert before.status_code == 200
    assert deleted.status_code == 200
    assert deleted.json()["deletionCounts"] == {
        "responses": 1, "surveys": 1, "refresh_tokens": 1, "users": 1,
    }
    assert again.status_code == 404
    # A token issued before deletion no longer authenticates
    assert after.status_code == 401

    async with session_factory() as session:
        for model, column, value in [
            (User, User.user_id, doomed.user_id),
            (Survey, Survey.user_id, doomed.user_id),
            (SurveyResponse, SurveyResponse.survey_id, survey.survey_id),
            (RefreshToken, RefreshToken.user_id, doomed.user_id),
        ]:
            count = await session.scalar(select(func.count()).select_from(model).where(column == value))
            assert count == 0, model.__name__


@pytest.mark.asyncio
async def test_admin_cannot_delete_self(test_app, user_factory, auth_headers):
    admin = await user_factory(is_admin=True)

    async with AsyncClient(transport=ASGITransport(app=test_app), base_url=API_BASE_URL) as client:
        response = await client.delete(f"/admin/users/{admin.user_id}", headers=auth_headers(admin))

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_set_verification(test_app, user_factory, auth_headers):
    admin = await user_factory(is_admin=True)
    pending = await user_factory(is_verified=False)

    async with AsyncClient(transport=ASGITransport(app=test_app), base_url=API_BASE_URL) as client:
        blocked = await client.post("/auth/login", json={"email": pending.email, "password": DEFAULT_PASSWORD})
        verified = await client.patch(
            f"/admin/users/{pending.user_id}/verification",
            json={"isVerified": True},
            headers=auth_headers(admin),
        )
        allowed = await client.post("/auth/login", json={"email": pending.email, "password": DEFAULT_PASSWORD})
        stale_token = await client.get("/auth/verify-email", params={"token": pending.verification_token})
        unknown = await client.patch(
            "/admin/users/00000000-0000-0000-0000-000000000000/verification",
            json={"isVerified": True},
            headers=auth_headers(admin),
        )

    assert blocked.status_code == 401
    assert verified.status_code == 200
    assert verified.json()["isVerified"] is True
    assert allowed.status_code == 200
    assert stale_token.status_code == 404
    assert unknown.status_code == 404


@pytest.mark.asyncio
async def test_reset_password(test_app, db_session, user_factory, auth_headers):
    admin = await user_factory(is_admin=True)
    target = await user_factory()
    _, refresh_token, _ = await AuthService(db_session).issue_tokens(target)

    async with AsyncClient(transport=ASGITransport(app=test_app), base_url=API_BASE_URL) as client:
        too_short = await client.patch(
            f"/admin/users/{target.user_id}/password", json={"newPassword": "abc"}, headers=auth_headers(admin)
        )
        chosen = await client.patch(
            f"/admin/users/{target.user_id}/password",
            json={"newPassword": "AdminChosen1"},
            headers=auth_headers(admin),
        )
        revoked = await client.post("/auth/refresh", json={"refreshToken": refresh_token})
        login = await client.post("/auth/login", json={"email": target.email, "password": "AdminChosen1"})
        generated = await client.patch(
            f"/admin/users/{target.user_id}/password", json={}, headers=auth_headers(admin)
        )
        temporary = generated.json()["temporaryPassword"]
        temp_login = await client.post("/auth/login", json={"email": target.email, "password": temporary})

    assert too_short.status_code == 400
    assert chosen.status_code == 200
    assert chosen.json()["temporaryPassword"] is None
    assert revoked.status_code == 401
    assert login.status_code == 200
    assert generated.status_code == 200
    assert len(temporary) == 12
    assert temp_login.status_code == 200
