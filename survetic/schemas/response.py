"""Survey response schemas."""
from datetime import datetime
from typing import Optional, Union

from pydantic import Field, constr

from survetic.schemas.base import BaseSchema


# Ratings are whole numbers; NaN and fractional values fail the int branch.
AnswerValue = Optional[Union[str, int, list[str]]]


class Answer(BaseSchema):
    question_id: constr(strip_whitespace=True, min_length=1)
    answer: AnswerValue = None


class SubmitResponseRequest(BaseSchema):
    """Anonymous submission for the survey named in the path."""

    answers: list[Answer] = Field(default_factory=list)


class SubmitResponseWithSurvey(SubmitResponseRequest):
    """Anonymous submission that carries its survey id in the body."""

    survey_id: int


class ResponseOut(BaseSchema):
    response_id: int = Field(serialization_alias="id")
    survey_id: int
    answers: list[Answer]
    is_complete: bool
    submitted_at: datetime
