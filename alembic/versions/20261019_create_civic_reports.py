"""Create civic_reports table.

Revision ID: 20261019_create_civic_reports
Revises:
Create Date: 2026-10-19

"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy import inspect


# revision identifiers, used by Alembic.
revision: str = "20261019_create_civic_reports"
down_revision: str | None = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    inspector = inspect(bind)

    if "civic_reports" in inspector.get_table_names():
        return

    op.create_table(
        "civic_reports",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", sa.String(length=64), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("priority", sa.String(length=16), nullable=False),
        sa.Column("department", sa.String(length=120), nullable=False),
        sa.Column("media_urls", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("audio_url", sa.String(length=1024), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("address", sa.String(length=500), nullable=True),
        sa.Column("is_resolved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("time_taken_to_resolve", sa.Float(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("NOW()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "(is_resolved AND resolved_at IS NOT NULL AND time_taken_to_resolve >= 0)"
            " OR (NOT is_resolved AND resolved_at IS NULL AND time_taken_to_resolve IS NULL)",
            name="ck_civic_reports_resolution_consistent",
        ),
    )

    op.create_index("ix_civic_reports_user_id", "civic_reports", ["user_id"])
    op.create_index("ix_civic_reports_category", "civic_reports", ["category"])
    op.create_index("ix_civic_reports_priority", "civic_reports", ["priority"])
    op.create_index("ix_civic_reports_is_resolved", "civic_reports", ["is_resolved"])
    op.create_index("ix_civic_reports_created_at", "civic_reports", ["created_at"])
    op.create_index("ix_civic_reports_latitude", "civic_reports", ["latitude"])
    op.create_index("ix_civic_reports_longitude", "civic_reports", ["longitude"])


def downgrade() -> None:
    op.drop_index("ix_civic_reports_longitude", table_name="civic_reports")
    op.drop_index("ix_civic_reports_latitude", table_name="civic_reports")
    op.drop_index("ix_civic_reports_created_at", table_name="civic_reports")
    op.drop_index("ix_civic_reports_is_resolved", table_name="civic_reports")
    op.drop_index("ix_civic_reports_priority", table_name="civic_reports")
    op.drop_index("ix_civic_reports_category", table_name="civic_reports")
    op.drop_index("ix_civic_reports_user_id", table_name="civic_reports")
    op.drop_table("civic_reports")
