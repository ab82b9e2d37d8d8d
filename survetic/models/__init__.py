"""Database models."""
from survetic.models.user import User
from survetic.models.survey import Survey
from survetic.models.response import SurveyResponse
from survetic.models.refresh_token import RefreshToken

__all__ = [
    "User",
    "Survey",
    "SurveyResponse",
    "RefreshToken",
]
