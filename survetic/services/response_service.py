"""Anonymous survey submissions."""
from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from survetic.errors import ValidationError
from survetic.models.response import SurveyResponse
from survetic.models.survey import Survey
from survetic.models.user import User
from survetic.services.access_control import require_owned_survey, require_published_survey

logger = logging.getLogger(__name__)


def is_answered(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, list):
        return len(value) > 0
    return True


def _rating_value(value):
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def check_answer_shape(question: dict, value) -> None:
    """Raise ``ValidationError`` unless ``value`` fits the question's type."""
    question_type = question.get("type")
    label = question.get("id")
    options = question.get("options") or []

    if question_type == "multiple-choice":
        choices = value if isinstance(value, list) else [value]
        if not all(isinstance(choice, str) and choice in options for choice in choices):
            raise ValidationError(f"Answer for {label} must be one or more of the listed options")
    elif question_type == "dropdown":
        if not isinstance(value, str) or value not in options:
            raise ValidationError(f"Answer for {label} must be one of the listed options")
    elif question_type == "rating":
        scale = question.get("ratingScale") or 5
        rating = _rating_value(value)
        if rating is None or not 1 <= rating <= scale:
            raise ValidationError(f"Answer for {label} must be a whole number from 1 to {scale}")
    elif question_type == "text-input":
        if not isinstance(value, str):
            raise ValidationError(f"Answer for {label} must be text")
    else:
        raise ValidationError(f"Unsupported question type for {label}")


def validate_answers(survey: Survey, answers: list[dict]) -> None:
    """Check answers against the survey's questions.

    Every answer must reference a question of the survey (at most once),
    match that question's type, and every required question needs a
    non-empty answer. Blank answers are treated as unanswered.
    """
    questions = {q.get("id"): q for q in survey.questions or []}
    seen = set()
    for entry in answers:
        question_id = entry.get("questionId")
        if question_id not in questions:
            raise ValidationError(f"Unknown question: {question_id}")
        if question_id in seen:
            raise ValidationError(f"Question answered more than once: {question_id}")
        seen.add(question_id)
        value = entry.get("answer")
        if is_answered(value):
            check_answer_shape(questions[question_id], value)

    provided = {entry["questionId"]: entry.get("answer") for entry in answers}
    missing = [
        q.get("title") or q.get("id")
        for q in survey.questions or []
        if q.get("required") and not is_answered(provided.get(q.get("id")))
    ]
    if missing:
        raise ValidationError(f"Required questions not answered: {', '.join(missing)}")


class ResponseService:
    """Stores and lists survey responses."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def submit(self, survey_id: int, answers: list[dict]) -> SurveyResponse:
        """Record an anonymous submission to a published survey.

        ``answers`` are ``{"questionId", "answer"}`` dicts and are stored as given.
        """
        survey = await require_published_survey(self.db, survey_id)
        validate_answers(survey, answers)

        response = SurveyResponse(
            survey_id=survey.survey_id,
            answers=answers,
            is_complete=True,
            submitted_at=datetime.now(UTC),
        )
        self.db.add(response)
        await self.db.commit()
        await self.db.refresh(response)
        logger.info("Recorded response %s for survey %s", response.response_id, survey_id)
        return response

    async def list_for_survey(self, survey_id: int, user: User) -> list[SurveyResponse]:
        survey = await require_owned_survey(self.db, survey_id, user)
        return await self.list_for(survey)

    async def list_for(self, survey: Survey) -> list[SurveyResponse]:
        """Responses of an already-authorized survey, newest first."""
        result = await self.db.execute(
            select(SurveyResponse)
            .where(SurveyResponse.survey_id == survey.survey_id)
            .order_by(SurveyResponse.submitted_at.desc(), SurveyResponse.response_id.desc())
        )
        return list(result.scalars().all())
