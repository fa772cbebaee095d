"""add activation wizard and installer links

Revision ID: 0003_activation_wizard
Revises: 0002_security_actions
Create Date: 2026-10-12
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


revision = "0003_activation_wizard"
down_revision = "0002_security_actions"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "activation_statuses",
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("current_step", sa.String(), nullable=False, server_default="DOWNLOAD_INSTALLER"),
        sa.Column("installer_downloaded", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("installer_downloaded_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("device_installed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("device_installed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("email_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("email_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("wizard_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("wizard_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    # One live installer link per user; regenerating overwrites it.
    op.create_table(
        "installers",
        sa.Column("user_id", sa.String(), sa.ForeignKey("users.id"), primary_key=True),
        sa.Column("url", sa.String(), nullable=False),
        sa.Column("os", sa.String(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("installers")
    op.drop_table("activation_statuses")
