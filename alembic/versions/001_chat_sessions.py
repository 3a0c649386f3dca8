"""Create chat_sessions table

Revision ID: 001
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "chat_sessions",
        sa.Column("id", sa.String(24), primary_key=True),
        sa.Column("external_id", sa.String(64), nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(255), nullable=True),
        sa.Column("status", sa.String(16), server_default="active", nullable=False),
        sa.Column("messages", JSONB, server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_activity_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version", sa.Integer, server_default="0", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    )
    op.create_index("ix_chat_sessions_external_id", "chat_sessions", ["external_id"], unique=True)
    op.create_index("ix_chat_sessions_owner_started", "chat_sessions", ["owner_id", "started_at"])

    # Internal ids are always 24 lowercase hex characters
    op.execute(
        "ALTER TABLE chat_sessions ADD CONSTRAINT ck_chat_sessions_id_hex "
        "CHECK (id ~ '^[0-9a-f]{24}$');"
    )
    op.execute(
        "ALTER TABLE chat_sessions ADD CONSTRAINT ck_chat_sessions_status "
        "CHECK (status IN ('active', 'closed'));"
    )


def downgrade() -> None:
    op.drop_index("ix_chat_sessions_owner_started", table_name="chat_sessions")
    op.drop_index("ix_chat_sessions_external_id", table_name="chat_sessions")
    op.drop_table("chat_sessions")
