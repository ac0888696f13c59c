"""Create the ``chat_messages`` table."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


revision = "001_create_chat_messages"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create ``chat_messages`` with its lookup indexes."""

    op.create_table(
        "chat_messages",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("shipment_id", sa.Integer(), nullable=True),
        sa.Column("pool_id", sa.Integer(), nullable=True),
        sa.Column("sender_id", sa.Integer(), nullable=False),
        sa.Column("sender_type", sa.String(length=32), nullable=False),
        sa.Column("receiver_id", sa.Integer(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column(
            "is_read",
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_chat_messages_shipment_id", "chat_messages", ["shipment_id"])
    op.create_index("ix_chat_messages_pool_id", "chat_messages", ["pool_id"])
    op.create_index("ix_chat_messages_sender_id", "chat_messages", ["sender_id"])
    op.create_index(
        "ix_chat_messages_receiver_unread",
        "chat_messages",
        ["receiver_id", "is_read"],
    )
    op.create_index("ix_chat_messages_created_at", "chat_messages", ["created_at"])


def downgrade() -> None:
    """Drop ``chat_messages`` and its indexes."""

    for name in (
        "ix_chat_messages_created_at",
        "ix_chat_messages_receiver_unread",
        "ix_chat_messages_sender_id",
        "ix_chat_messages_pool_id",
        "ix_chat_messages_shipment_id",
    ):
        op.drop_index(name, table_name="chat_messages")
    op.drop_table("chat_messages")
