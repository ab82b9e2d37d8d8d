"""Utility functions for Alembic migrations."""
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID
from alembic import op


def _dialect_name() -> str:
    bind = op.get_bind()
    return bind.dialect.name if bind else 'postgresql'


def get_uuid_type():
    """Get the appropriate UUID column type for the current database dialect.

    Returns:
        Column type compatible with the current database dialect:
        - PostgreSQL: native UUID type (with as_uuid=True for Python UUID objects)
        - SQLite/other: String(36) for hex-formatted UUID strings
    """
    if _dialect_name() == 'postgresql':
        return UUID(as_uuid=True)
    return sa.String(length=36)


def get_json_type():
    """JSONB on PostgreSQL, generic JSON elsewhere."""
    if _dialect_name() == 'postgresql':
        return JSONB(astext_type=sa.Text())
    return sa.JSON()


def get_timestamp_default():
    """Get the appropriate server default for timestamp columns.

    Returns:
        Server default compatible with the current database dialect:
        - PostgreSQL: timezone('utc', now())
        - SQLite: CURRENT_TIMESTAMP
    """
    if _dialect_name() == 'postgresql':
        return sa.text("timezone('utc', now())")
    return sa.text('CURRENT_TIMESTAMP')
