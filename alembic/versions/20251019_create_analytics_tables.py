"""Create conversation analytics and page statistics tables

Revision ID: 20251019_create_analytics_tables
Revises:
Create Date: 2025-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20251019_create_analytics_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
    ]


def upgrade() -> None:
    op.create_table(
        "conversation",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("nonce", sa.String(128), nullable=False),
        sa.Column("kb_id", sa.String(64), nullable=False),
        sa.Column("app_id", sa.String(64), nullable=False),
        sa.Column("subject", sa.String(500), nullable=True),
        sa.Column("remote_ip", sa.String(64), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "conversation_message",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "conversation_id",
            sa.String(36),
            sa.ForeignKey("conversation.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("app_id", sa.String(64), nullable=False),
        sa.Column("role", sa.String(16), nullable=False),  # 'user' or 'assistant'
        sa.Column("content", sa.Text, nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "conversation_reference",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "conversation_id",
            sa.String(36),
            sa.ForeignKey("conversation.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "message_id",
            sa.String(36),
            sa.ForeignKey("conversation_message.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("app_id", sa.String(64), nullable=False),
        sa.Column("position", sa.Integer, nullable=False, server_default="0"),
        sa.Column("ordinal", sa.Text, nullable=False),
        sa.Column("name", sa.Text, nullable=False),
        sa.Column("url", sa.Text, nullable=False),
        *_timestamps(),
    )

    op.create_table(
        "conversation_nonce",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("conversation_id", sa.String(36), nullable=False),
        sa.Column("nonce", sa.String(128), nullable=False, unique=True),
        sa.Column("used_at", sa.TIMESTAMP(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "stat_page",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("kb_id", sa.String(64), nullable=False),
        sa.Column("node_id", sa.String(64), nullable=True),
        sa.Column("session_id", sa.String(64), nullable=True),
        sa.Column("remote_ip", sa.String(64), nullable=True),
        sa.Column("user_agent", sa.Text, nullable=True),
        *_timestamps(),
    )

    # Indexes for listing, detail reads and retention sweeps
    op.create_index("ix_conversation_kb_id", "conversation", ["kb_id"])
    op.create_index("ix_conversation_app_id", "conversation", ["app_id"])
    op.create_index(
        "ix_conversation_message_conversation_id_created_at",
        "conversation_message",
        ["conversation_id", "created_at"],
    )
    op.create_index(
        "ix_conversation_reference_conversation_id",
        "conversation_reference",
        ["conversation_id"],
    )
    op.create_index(
        "ix_conversation_nonce_conversation_id", "conversation_nonce", ["conversation_id"]
    )
    op.create_index("ix_stat_page_created_at", "stat_page", ["created_at"])
    op.create_index("ix_stat_page_kb_id", "stat_page", ["kb_id"])


def downgrade() -> None:
    op.drop_index("ix_stat_page_kb_id", table_name="stat_page")
    op.drop_index("ix_stat_page_created_at", table_name="stat_page")
    op.drop_index("ix_conversation_nonce_conversation_id", table_name="conversation_nonce")
    op.drop_index(
        "ix_conversation_reference_conversation_id", table_name="conversation_reference"
    )
    op.drop_index(
        "ix_conversation_message_conversation_id_created_at",
        table_name="conversation_message",
    )
    op.drop_index("ix_conversation_app_id", table_name="conversation")
    op.drop_index("ix_conversation_kb_id", table_name="conversation")

    op.drop_table("stat_page")
    op.drop_table("conversation_nonce")
    op.drop_table("conversation_reference")
    op.drop_table("conversation_message")
    op.drop_table("conversation")
