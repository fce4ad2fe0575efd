"""Judicial entity table

Revision ID: 0001_judicial_entity
Revises:
Create Date: 2026-09-28
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "0001_judicial_entity"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "judicial_entity",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("external_id", sa.String(length=100), nullable=False),
        sa.Column("display_name", sa.String(length=512), nullable=False),
        sa.Column("court_name", sa.String(length=512), nullable=True),
        sa.Column("external_court_id", sa.String(length=100), nullable=True),
        sa.Column("jurisdiction_code", sa.String(length=16), nullable=False),
        sa.Column("appointed_date", sa.Date(), nullable=True),
        sa.Column("education_summary", sa.Text(), nullable=True),
        sa.Column("biography_summary", sa.Text(), nullable=True),
        sa.Column("raw_external_payload", sa.JSON(), nullable=False, server_default=sa.text("'{}'::json")),
        sa.Column("sync_source", sa.String(length=50), nullable=False, server_default="courtlistener"),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.UniqueConstraint("external_id", name="uq_judicial_entity_external_id"),
    )

    op.create_index("ix_judicial_entity_jurisdiction", "judicial_entity", ["jurisdiction_code"])
    op.create_index("ix_judicial_entity_updated_at", "judicial_entity", ["updated_at"])
    op.create_index("ix_judicial_entity_last_synced_at", "judicial_entity", ["last_synced_at"])


def downgrade() -> None:
    op.drop_index("ix_judicial_entity_last_synced_at", table_name="judicial_entity")
    op.drop_index("ix_judicial_entity_updated_at", table_name="judicial_entity")
    op.drop_index("ix_judicial_entity_jurisdiction", table_name="judicial_entity")
    op.drop_table("judicial_entity")
