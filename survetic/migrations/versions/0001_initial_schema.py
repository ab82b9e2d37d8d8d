"""initial schema: users, surveys, responses, refresh tokens

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-17 12:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

from survetic.migrations.util import get_json_type, get_timestamp_default, get_uuid_type


# revision identifiers, used by Alembic.
revision: str = '0001_initial_schema'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    uuid_type = get_uuid_type()
    json_type = get_json_type()
    now_default = get_timestamp_default()

    op.create_table(
        'users',
        sa.Column('user_id', uuid_type, nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=255), nullable=False),
        sa.Column('last_name', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('verification_token', sa.String(length=255), nullable=True),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('profile_image_url', sa.String(length=1024), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=now_default),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=now_default),
        sa.Column('last_login_date', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('user_id'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sa.UniqueConstraint('verification_token', name='uq_users_verification_token'),
    )

    op.create_table(
        'surveys',
        sa.Column('survey_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('user_id', uuid_type, nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('is_published', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('questions', json_type, nullable=False),
        sa.Column('theme', json_type, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=now_default),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=now_default),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('survey_id'),
    )
    op.create_index('ix_surveys_user_id', 'surveys', ['user_id'], unique=False)

    op.create_table(
        'responses',
        sa.Column('response_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('survey_id', sa.Integer(), nullable=False),
        sa.Column('answers', json_type, nullable=False),
        sa.Column('is_complete', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=False, server_default=now_default),
        sa.ForeignKeyConstraint(['survey_id'], ['surveys.survey_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('response_id'),
    )
    op.create_index('ix_responses_survey_id', 'responses', ['survey_id'], unique=False)

    op.create_table(
        'refresh_tokens',
        sa.Column('token_id', uuid_type, nullable=False),
        sa.Column('user_id', uuid_type, nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=now_default),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('token_id'),
    )
    op.create_index('ix_refresh_tokens_user_id', 'refresh_tokens', ['user_id'], unique=False)
    op.create_index('ix_refresh_tokens_token_hash', 'refresh_tokens', ['token_hash'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_refresh_tokens_token_hash', table_name='refresh_tokens')
    op.drop_index('ix_refresh_tokens_user_id', table_name='refresh_tokens')
    op.drop_table('refresh_tokens')
    op.drop_index('ix_responses_survey_id', table_name='responses')
    op.drop_table('responses')
    op.drop_index('ix_surveys_user_id', table_name='surveys')
    op.drop_table('surveys')
    op.drop_table('users')
