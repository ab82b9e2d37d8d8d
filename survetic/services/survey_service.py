"""Survey management, analytics and export."""
from __future__ import annotations

import csv
import io
import logging
from datetime import UTC, datetime, timedelta

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from survetic.models.response import SurveyResponse
from survetic.models.survey import Survey
from survetic.models.user import User
from survetic.services.access_control import require_owned_survey, require_published_survey
from survetic.services.response_service import ResponseService, is_answered
from survetic.utils.datetime_helpers import ensure_utc, format_utc

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("title", "description", "questions", "theme", "is_published")
CHOICE_TYPES = ("multiple-choice", "dropdown")
TREND_DAYS = 7


class SurveyService:
    """Owner-scoped survey operations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.response_service = ResponseService(db)

    async def list_for_owner(self, user: User) -> list[Survey]:
        result = await self.db.execute(
            select(Survey)
            .where(Survey.user_id == user.user_id)
            .order_by(Survey.updated_at.desc(), Survey.survey_id.desc())
        )
        return list(result.scalars().all())

    async def create(
        self,
        user: User,
        *,
        title: str,
        description: str | None = None,
        questions: list[dict] | None = None,
        theme: dict | None = None,
        is_published: bool = False,
    ) -> Survey:
        survey = Survey(
            user_id=user.user_id,
            title=title,
            description=description,
            questions=questions or [],
            theme=theme or {},
            is_published=is_published,
        )
        self.db.add(survey)
        await self.db.commit()
        await self.db.refresh(survey)
        logger.info("User %s created survey %s", user.user_id, survey.survey_id)
        return survey

    async def get_for_edit(self, survey_id: int, user: User) -> Survey:
        return await require_owned_survey(self.db, survey_id, user)

    async def get_public(self, survey_id: int) -> Survey:
        return await require_published_survey(self.db, survey_id)

    async def update(self, survey_id: int, user: User, changes: dict) -> Survey:
        """Apply a partial update; keys outside the editable columns are ignored."""
        survey = await require_owned_survey(self.db, survey_id, user)
        for field in UPDATABLE_FIELDS:
            if field in changes:
                setattr(survey, field, changes[field])
        survey.updated_at = datetime.now(UTC)
        await self.db.commit()
        await self.db.refresh(survey)
        return survey

    async def delete(self, survey_id: int, user: User) -> dict[str, int]:
        survey = await require_owned_survey(self.db, survey_id, user)
        try:
            result = await self.db.execute(
                delete(SurveyResponse).where(SurveyResponse.survey_id == survey.survey_id)
            )
            responses_deleted = result.rowcount or 0
            await self.db.execute(delete(Survey).where(Survey.survey_id == survey.survey_id))
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise
        logger.info("Deleted survey %s with %s responses", survey_id, responses_deleted)
        return {"surveys": 1, "responses": responses_deleted}

    # ------------------------------------------------------------------
    # Analytics
    # ------------------------------------------------------------------
    async def get_stats(self, survey_id: int, user: User, *, now: datetime | None = None) -> dict:
        survey = await require_owned_survey(self.db, survey_id, user)
        responses = await self.response_service.list_for(survey)
        return build_stats(survey, responses, now=now)

    async def export_csv(self, survey_id: int, user: User) -> str:
        survey = await require_owned_survey(self.db, survey_id, user)
        responses = await self.response_service.list_for(survey)
        return build_csv(survey, responses)


def _breakdown_key(value) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _question_stats(question: dict, responses: list[SurveyResponse]) -> dict:
    question_id = question.get("id")
    question_type = question.get("type")
    values = [response.answer_for(question_id) for response in responses]
    answered = [value for value in values if is_answered(value)]

    breakdown = None
    if question_type in CHOICE_TYPES:
        breakdown = {option: 0 for option in question.get("options") or []}
        for value in answered:
            for choice in value if isinstance(value, list) else [value]:
                key = _breakdown_key(choice)
                breakdown[key] = breakdown.get(key, 0) + 1
    elif question_type == "rating":
        scale = question.get("ratingScale") or 5
        breakdown = {str(point): 0 for point in range(1, scale + 1)}
        for value in answered:
            key = _breakdown_key(value)
            breakdown[key] = breakdown.get(key, 0) + 1

    return {
        "question_id": question_id,
        "title": question.get("title", ""),
        "type": question_type,
        "answered_count": len(answered),
        "breakdown": breakdown,
    }


def build_stats(survey: Survey, responses: list[SurveyResponse], *, now: datetime | None = None) -> dict:
    """Aggregate response counts for the analytics view."""
    today = (now or datetime.now(UTC)).date()
    total = len(responses)
    completed = sum(1 for response in responses if response.is_complete)
    submitted = [ensure_utc(response.submitted_at) for response in responses if response.submitted_at]

    per_day = {today - timedelta(days=offset): 0 for offset in range(TREND_DAYS - 1, -1, -1)}
    for submitted_at in submitted:
        day = submitted_at.date()
        if day in per_day:
            per_day[day] += 1

    return {
        "survey_id": survey.survey_id,
        "total_responses": total,
        "completed_responses": completed,
        "completion_rate": round(completed / total * 100, 1) if total else 0.0,
        "last_submitted_at": max(submitted) if submitted else None,
        "daily_trend": [{"date": day.isoformat(), "count": count} for day, count in per_day.items()],
        "questions": [_question_stats(question, responses) for question in survey.questions or []],
    }


def _csv_cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return "; ".join(str(item) for item in value)
    return str(value)


def build_csv(survey: Survey, responses: list[SurveyResponse]) -> str:
    """Render responses as CSV, one column per question in survey order."""
    questions = survey.questions or []
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(
        ["Response ID", "Submitted At", "Is Complete"]
        + [f"Q{index}: {question.get('title', '')}" for index, question in enumerate(questions, start=1)]
    )
    for response in responses:
        writer.writerow(
            [
                response.response_id,
                format_utc(response.submitted_at),
                "true" if response.is_complete else "false",
            ]
            + [_csv_cell(response.answer_for(question.get("id"))) for question in questions]
        )
    return buffer.getvalue()
