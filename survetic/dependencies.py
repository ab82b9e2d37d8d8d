"""FastAPI dependencies."""
import logging

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from survetic.config import get_settings
from survetic.database import get_db
from survetic.errors import UnauthorizedError
from survetic.models.user import User
from survetic.services.access_control import require_admin
from survetic.services.auth_service import AuthService
from survetic.services.email_service import EmailService

logger = logging.getLogger(__name__)


def _mask_identifier(identifier: str | None) -> str:
    """Mask a sensitive identifier for logging (e.g., user_id, token)."""
    if not identifier:
        return "<missing>"
    if len(identifier) <= 8:
        return f"{identifier[:2]}...{identifier[-2:]}"
    return f"{identifier[:4]}...{identifier[-4:]}"


def extract_access_token(request: Request, authorization: str | None) -> tuple[str | None, str]:
    """Find the access token and report where it came from.

    Checks, in order:
    1. ``Authorization: Bearer`` header
    2. ``?token=`` query parameter
    3. HTTP-only access token cookie

    A present but malformed Authorization header is rejected outright.
    """
    if authorization:
        scheme, _, token = authorization.partition(" ")
        token = token.strip()
        if scheme.lower() != "bearer" or not token:
            raise UnauthorizedError("Invalid authorization header")
        return token, "header"

    token = request.query_params.get("token")
    if token:
        return token, "query"

    token = request.cookies.get(get_settings().access_token_cookie_name)
    if token:
        return token, "cookie"
    return None, "none"


async def get_current_user(
        request: Request,
        authorization: str | None = Header(default=None, alias="Authorization"),
        db: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the current authenticated user via JWT access token."""
    token, token_source = extract_access_token(request, authorization)
    if not token:
        raise UnauthorizedError("Authentication required")

    try:
        user = await AuthService(db).authenticate_token(token)
    except UnauthorizedError:
        logger.info("Rejected %s token %s", token_source, _mask_identifier(token))
        raise

    logger.debug(f"Authenticated user via JWT {token_source}: {_mask_identifier(str(user.user_id))}")
    return user


async def get_admin_user(user: User = Depends(get_current_user)) -> User:
    """Verify that the current authenticated user is an admin."""
    return require_admin(user)


def get_email_service(request: Request) -> EmailService:
    """Return the application's shared email service."""
    return request.app.state.email_service
