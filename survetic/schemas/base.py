"""Base schemas with common configuration."""
from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel
from datetime import datetime, UTC


def serialize_datetime_utc(dt: datetime) -> str:
    """
    Serialize datetime to ISO 8601 with explicit UTC timezone.

    This ensures JavaScript's Date constructor interprets the timestamp correctly.
    SQLite stores datetimes as naive strings, so we treat them as UTC.
    """
    if dt.tzinfo is None:
        # Treat naive datetimes as UTC
        dt = dt.replace(tzinfo=UTC)
    # Convert to UTC and format with 'Z' suffix
    return dt.astimezone(UTC).isoformat().replace('+00:00', 'Z')


class BaseSchema(BaseModel):
    """Base schema for the JSON API.

    Fields are exposed in camelCase (``isPublished``, ``firstName``) to match
    the web client; snake_case names are accepted on input as well.
    """

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    @field_serializer("*", mode="wrap")
    def serialize_datetimes(self, value, handler):
        """Render datetime fields as UTC with a ``Z`` suffix, in python and JSON mode."""
        if isinstance(value, datetime):
            return serialize_datetime_utc(value)
        return handler(value)


class MessageResponse(BaseSchema):
    """Plain acknowledgement."""

    message: str
