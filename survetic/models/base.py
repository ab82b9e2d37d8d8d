"""Base utilities for SQLAlchemy models."""
import uuid
from sqlalchemy import Column, JSON, String
from sqlalchemy.dialects.postgresql import JSONB, UUID as PGUUID
from sqlalchemy.sql import sqltypes


# Semi-structured payloads (questions, theme, answers) use JSONB on Postgres.
JSONType = JSON().with_variant(JSONB(), "postgresql")


class AdaptiveUUID(sqltypes.TypeDecorator):
    """UUID type stored natively on Postgres and as lowercase hex elsewhere."""

    impl = sqltypes.String
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(PGUUID(as_uuid=True))
        return dialect.type_descriptor(String(36))

    @staticmethod
    def _coerce_uuid(value):
        if value is None or isinstance(value, uuid.UUID):
            return value
        return uuid.UUID(str(value))

    def process_bind_param(self, value, dialect):
        value = self._coerce_uuid(value)
        if value is None:
            return None
        if dialect.name == "postgresql":
            return value
        # Store as lowercase hex so every row shares one format.
        return value.hex

    def process_result_value(self, value, dialect):
        return self._coerce_uuid(value)


def get_uuid_column(*args, **kwargs):
    """Get UUID column type based on database dialect.

    Args:
        *args: Positional arguments to pass to Column (e.g., ForeignKey)
        **kwargs: Keyword arguments to pass to Column (e.g., primary_key=True)

    Returns:
        Column: Configured SQLAlchemy Column for UUID storage

    Example:
        user_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
        owner_id = get_uuid_column(ForeignKey("users.user_id"), nullable=False)
    """
    return Column(
        AdaptiveUUID(),
        *args,
        **kwargs
    )
