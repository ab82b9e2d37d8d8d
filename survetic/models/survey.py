"""Survey model."""
from datetime import UTC, datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from survetic.database import Base
from survetic.models.base import JSONType, get_uuid_column


class Survey(Base):
    """A survey owned by exactly one user.

    ``questions`` holds the ordered list of question dicts and ``theme`` the
    presentation settings; both are validated by the API schemas before they
    are stored.
    """

    __tablename__ = "surveys"

    survey_id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = get_uuid_column(
        ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True
    )
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_published = Column(Boolean, default=False, nullable=False)
    questions = Column(JSONType, nullable=False, default=list)
    theme = Column(JSONType, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )

    @property
    def status(self) -> str:
        return "published" if self.is_published else "draft"

    def is_owned_by(self, user_id) -> bool:
        return user_id is not None and self.user_id == user_id

    def __repr__(self):
        return f"<Survey(survey_id={self.survey_id}, user_id={self.user_id}, published={self.is_published})>"
