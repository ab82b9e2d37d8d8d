"""Survey response model."""
from datetime import UTC, datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer

from survetic.database import Base
from survetic.models.base import JSONType


class SurveyResponse(Base):
    """One anonymous submission to a published survey."""

    __tablename__ = "responses"

    response_id = Column(Integer, primary_key=True, autoincrement=True)
    survey_id = Column(
        Integer, ForeignKey("surveys.survey_id", ondelete="CASCADE"), nullable=False, index=True
    )
    # List of {"questionId": str, "answer": ...}
    answers = Column(JSONType, nullable=False, default=list)
    is_complete = Column(Boolean, default=False, nullable=False)
    submitted_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    def answer_for(self, question_id: str):
        """Return the stored answer for ``question_id`` or None."""
        for entry in self.answers or []:
            if isinstance(entry, dict) and entry.get("questionId") == question_id:
                return entry.get("answer")
        return None

    def __repr__(self):
        return f"<SurveyResponse(response_id={self.response_id}, survey_id={self.survey_id})>"
