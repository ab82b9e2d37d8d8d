"""Refresh token persistence model."""
from datetime import datetime, UTC
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String

from survetic.database import Base
from survetic.models.base import get_uuid_column
from survetic.utils.datetime_helpers import ensure_utc


class RefreshToken(Base):
    """Stored refresh tokens for JWT authentication."""

    __tablename__ = "refresh_tokens"

    token_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    user_id = get_uuid_column(ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(255), nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    def is_active(self, now: datetime | None = None) -> bool:
        """Return True if token has not expired or been revoked."""
        current_time = now or datetime.now(UTC)
        if self.expires_at is None:
            return False

        # SQLite stores timestamps without timezone info; normalize to UTC so comparisons work.
        expires_at = ensure_utc(self.expires_at)
        return self.revoked_at is None and expires_at > current_time

    def __repr__(self):
        return (f"<{self.__class__.__name__}(token_id={self.token_id}, user_id={self.user_id}, "
                f"expires_at={self.expires_at})>")
