"""User account model."""
from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import Boolean, Column, DateTime, String

from survetic.database import Base
from survetic.models.base import get_uuid_column


class User(Base):
    """Survey author account.

    Emails are stored normalized (trimmed, lowercased) so the unique
    constraint enforces case-insensitive uniqueness.
    """

    __tablename__ = "users"

    user_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False)
    first_name = Column(String(255), nullable=False, default="")
    last_name = Column(String(255), nullable=False, default="")
    password_hash = Column(String(255), nullable=False)
    is_verified = Column(Boolean, default=False, nullable=False)
    verification_token = Column(String(255), nullable=True, unique=True)
    is_admin = Column(Boolean, default=False, nullable=False)
    profile_image_url = Column(String(1024), nullable=True)
    created_at = Column(
        DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
        nullable=False,
    )
    last_login_date = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<User(user_id={self.user_id}, email={self.email}, verified={self.is_verified})>"
