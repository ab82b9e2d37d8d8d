"""Pytest configuration and fixtures."""
import os
import uuid
from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config as AlembicConfig
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Ensure the application uses a dedicated SQLite database during tests
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
# Cheapest cost the password policy allows
os.environ["BCRYPT_ROUNDS"] = "10"
# Never talk to the real mail provider
os.environ["RESEND_API_KEY"] = ""

from survetic.config import get_settings
from survetic.services.email_service import EmailService


BASE_DIR = Path(__file__).resolve().parent.parent
TEST_DB_PATH = BASE_DIR / "test.db"
settings = get_settings()

DEFAULT_PASSWORD = "TestPassword123!"


@pytest.fixture(scope="session", autouse=True)
def apply_migrations():
    """Apply database migrations against the test database."""
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()

    alembic_cfg = AlembicConfig(str(BASE_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)
    # Keep the application's logging configuration intact
    alembic_cfg.attributes["configure_logger"] = False
    command.upgrade(alembic_cfg, "head")

    yield

    if TEST_DB_PATH.exists():
        try:
            TEST_DB_PATH.unlink()
        except PermissionError:
            # On Windows the file may still be in use; the next run removes it
            pass


@pytest.fixture
async def test_engine():
    """Create test database engine using the same database as migrations."""
    engine = create_async_engine(settings.database_url, echo=False, pool_pre_ping=True)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Create test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


class RecordingEmailService(EmailService):
    """Email service that records messages instead of sending them."""

    def __init__(self):
        super().__init__(settings)
        self.sent: list[dict] = []
        self.succeed = True

    async def send_verification_email(self, email: str, first_name: str, token: str) -> bool:
        self.sent.append({"email": email, "first_name": first_name, "token": token})
        return self.succeed

    def last_token_for(self, email: str) -> str | None:
        for message in reversed(self.sent):
            if message["email"] == email:
                return message["token"]
        return None


@pytest.fixture
def email_service():
    return RecordingEmailService()


@pytest.fixture
async def test_app(test_engine, session_factory, email_service):
    """Create test app with database and email overrides."""
    from survetic.main import app
    from survetic.database import get_db
    from survetic.dependencies import get_email_service

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
            finally:
                await session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_service] = lambda: email_service
    app.state.engine = test_engine
    yield app
    app.dependency_overrides.clear()


def unique_email(prefix: str = "user") -> str:
    return f"{prefix}_{uuid.uuid4().hex[:8]}@example.com"


@pytest.fixture
async def user_factory(db_session):
    """Factory for creating users directly in the database."""
    from survetic.services.user_service import UserService

    user_service = UserService(db_session)

    async def _create_user(
        email: str | None = None,
        password: str = DEFAULT_PASSWORD,
        *,
        first_name: str = "Test",
        last_name: str = "User",
        is_verified: bool = True,
        is_admin: bool = False,
    ):
        return await user_service.create_user(
            email=email or unique_email(),
            password=password,
            first_name=first_name,
            last_name=last_name,
            is_verified=is_verified,
            is_admin=is_admin,
        )

    return _create_user


@pytest.fixture
def auth_headers(db_session):
    """Build an Authorization header carrying a fresh access token for a user."""
    from survetic.services.auth_service import AuthService

    def _headers(user) -> dict[str, str]:
        token, _ = AuthService(db_session).create_access_token(user)
        return {"Authorization": f"Bearer {token}"}

    return _headers


SAMPLE_QUESTIONS = [
    {
        "id": "q1",
        "type": "multiple-choice",
        "title": "Favorite color?",
        "required": True,
        "options": ["Red", "Blue"],
    },
    {
        "id": "q2",
        "type": "rating",
        "title": "How satisfied are you?",
        "ratingScale": 5,
    },
    {
        "id": "q3",
        "type": "text-input",
        "title": "Anything else?",
        "placeholder": "Tell us",
    },
]


@pytest.fixture
async def survey_factory(db_session):
    """Factory for creating surveys owned by a given user."""
    from survetic.services.survey_service import SurveyService

    survey_service = SurveyService(db_session)

    async def _create_survey(owner, *, title: str = "Customer feedback", is_published: bool = False, questions=None):
        return await survey_service.create(
            owner,
            title=title,
            questions=[dict(q) for q in (questions if questions is not None else SAMPLE_QUESTIONS)],
            is_published=is_published,
        )

    return _create_survey
