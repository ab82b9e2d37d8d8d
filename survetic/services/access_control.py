"""Authorization rules shared by every survey-facing operation.

Ownership failures and missing rows are deliberately indistinguishable to the
caller: both raise ``NotFoundError`` with the same message.
"""
from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from survetic.errors import ForbiddenError, NotFoundError, UnauthorizedError
from survetic.models.survey import Survey
from survetic.models.user import User

logger = logging.getLogger(__name__)

SURVEY_NOT_FOUND = "Survey not found"


async def _load_survey(db: AsyncSession, survey_id: int) -> Survey | None:
    result = await db.execute(select(Survey).where(Survey.survey_id == survey_id))
    return result.scalar_one_or_none()


async def require_owned_survey(db: AsyncSession, survey_id: int, user: User | None) -> Survey:
    """Return the survey if ``user`` owns it."""
    if user is None:
        raise UnauthorizedError("Authentication required")
    survey = await _load_survey(db, survey_id)
    if survey is None or not survey.is_owned_by(user.user_id):
        if survey is not None:
            logger.info("User %s denied access to survey %s", user.user_id, survey_id)
        raise NotFoundError(SURVEY_NOT_FOUND)
    return survey


async def require_published_survey(db: AsyncSession, survey_id: int) -> Survey:
    """Return the survey if anyone may view it or respond to it."""
    survey = await _load_survey(db, survey_id)
    if survey is None or not survey.is_published:
        raise NotFoundError(SURVEY_NOT_FOUND)
    return survey


def require_admin(user: User | None) -> User:
    if user is None:
        raise UnauthorizedError("Authentication required")
    if not user.is_admin:
        logger.warning("Non-admin user %s attempted an admin operation", user.user_id)
        raise ForbiddenError()
    return user
