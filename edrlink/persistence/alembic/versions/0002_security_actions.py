"""add security actions audit trail

Revision ID: 0002_security_actions
Revises: 0001_init
Create Date: 2026-10-07
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0002_security_actions"
down_revision = "0001_init"
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Append-only record of isolate/restore requests per device.
    op.create_table(
        "security_actions",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("device_id", sa.String(), nullable=False),
        sa.Column("action", sa.String(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_security_actions_user_timestamp",
        "security_actions",
        ["user_id", "timestamp"],
        unique=False,
    )
    op.create_index("ix_security_actions_device_id", "security_actions", ["device_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_security_actions_device_id", table_name="security_actions")
    op.drop_index("ix_security_actions_user_timestamp", table_name="security_actions")
    op.drop_table("security_actions")
