"""example schema for the bundled fixtures

Revision ID: 0001_example_schema
Revises: None
Create Date: 2026-10-18
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


revision = "0001_example_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "regions",
        sa.Column("id", sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        "campus_info",
        sa.Column("id", sa.Integer(), sa.Identity(always=True), primary_key=True),
        sa.Column("region_id", sa.Integer(), sa.ForeignKey("regions.id"), nullable=False),
        sa.Column("campus_name", sa.Text(), nullable=False),
        sa.Column("details", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
    )
    op.create_index("ix_campus_info_region_id", "campus_info", ["region_id"])

    # Plain integer key, no identity: seeded without any identity toggling.
    op.create_table(
        "region_tags",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("region_id", sa.Integer(), sa.ForeignKey("regions.id"), nullable=False),
        sa.Column("tag", sa.Text(), nullable=False),
    )


def downgrade() -> None:
    op.drop_table("region_tags")
    op.drop_index("ix_campus_info_region_id", table_name="campus_info")
    op.drop_table("campus_info")
    op.drop_table("regions")
