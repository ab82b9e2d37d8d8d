"""Survey and question schemas.

Questions are a closed set of variants discriminated on ``type``; anything
else is rejected at the request boundary.
"""
from datetime import datetime
from typing import Annotated, Literal, Optional, Union

from pydantic import Field, constr, field_validator

from survetic.schemas.base import BaseSchema


TitleStr = constr(strip_whitespace=True, min_length=1, max_length=255)
QuestionTitleStr = constr(strip_whitespace=True, min_length=1, max_length=500)
OptionStr = constr(strip_whitespace=True, min_length=1)


class QuestionBase(BaseSchema):
    id: constr(strip_whitespace=True, min_length=1, max_length=100)
    title: QuestionTitleStr
    description: Optional[str] = None
    required: bool = False


class MultipleChoiceQuestion(QuestionBase):
    type: Literal["multiple-choice"]
    options: list[OptionStr] = Field(min_length=1)


class DropdownQuestion(QuestionBase):
    type: Literal["dropdown"]
    options: list[OptionStr] = Field(min_length=1)


class TextInputQuestion(QuestionBase):
    type: Literal["text-input"]
    placeholder: Optional[str] = None


class RatingQuestion(QuestionBase):
    type: Literal["rating"]
    rating_scale: int = Field(default=5, ge=2, le=10)


Question = Annotated[
    Union[MultipleChoiceQuestion, DropdownQuestion, TextInputQuestion, RatingQuestion],
    Field(discriminator="type"),
]


def _unique_question_ids(questions):
    if questions is None:
        return questions
    seen = set()
    for question in questions:
        if question.id in seen:
            raise ValueError(f"Duplicate question id: {question.id}")
        seen.add(question.id)
    return questions


class SurveyTheme(BaseSchema):
    primary_color: Optional[str] = None
    font_family: Optional[str] = None


class SurveyCreate(BaseSchema):
    """Payload for creating a survey. The owner is always the caller."""

    title: TitleStr
    description: Optional[str] = None
    questions: list[Question] = Field(default_factory=list)
    theme: SurveyTheme = Field(default_factory=SurveyTheme)
    is_published: bool = False

    @field_validator("questions")
    @classmethod
    def question_ids_unique(cls, value):
        return _unique_question_ids(value)


class SurveyUpdate(BaseSchema):
    """Partial update; only fields present in the payload are applied."""

    title: Optional[TitleStr] = None
    description: Optional[str] = None
    questions: Optional[list[Question]] = None
    theme: Optional[SurveyTheme] = None
    is_published: Optional[bool] = None

    @field_validator("questions")
    @classmethod
    def question_ids_unique(cls, value):
        return _unique_question_ids(value)


class SurveyOut(BaseSchema):
    survey_id: int = Field(serialization_alias="id")
    user_id: str
    title: str
    description: Optional[str] = None
    is_published: bool
    status: Literal["published", "draft"]
    questions: list[Question]
    theme: SurveyTheme
    created_at: datetime
    updated_at: datetime

    @field_validator("user_id", mode="before")
    @classmethod
    def stringify_user_id(cls, value):
        return str(value)

    @field_validator("theme", mode="before")
    @classmethod
    def default_theme(cls, value):
        return value or {}


class DailyCount(BaseSchema):
    date: str
    count: int


class QuestionStats(BaseSchema):
    question_id: str
    title: str
    type: str
    answered_count: int
    breakdown: Optional[dict[str, int]] = None


class SurveyStats(BaseSchema):
    survey_id: int
    total_responses: int
    completed_responses: int
    completion_rate: float
    last_submitted_at: Optional[datetime] = None
    daily_trend: list[DailyCount]
    questions: list[QuestionStats]
