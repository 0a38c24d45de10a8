"""ingested records and snapshots

Revision ID: 0001_ingested_records
Revises:
Create Date: 2026-10-17 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_ingested_records"
down_revision = None
branch_labels = None
depends_on = None

scan_source = sa.Enum("oferta24", "partner_metrics", "rantanofertas", name="scan_source")


def upgrade() -> None:
    op.create_table(
        "ingested_records",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("source", scan_source, nullable=False),
        sa.Column("external_id", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=500), nullable=False),
        sa.Column("url", sa.String(length=2048), nullable=True),
        sa.Column("start_at", sa.DateTime(), nullable=True),
        sa.Column("end_at", sa.DateTime(), nullable=True),
        sa.Column("quantity_sold", sa.Float(), nullable=False),
        sa.Column("net_revenue", sa.Float(), nullable=False),
        sa.Column("margin", sa.Float(), nullable=False),
        sa.Column("offer_price", sa.Float(), nullable=False),
        sa.Column("original_price", sa.Float(), nullable=False),
        sa.Column("metadata", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("first_seen_at", sa.DateTime(), nullable=False),
        sa.Column("last_seen_at", sa.DateTime(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ingested_records_source", "ingested_records", ["source"])
    op.create_index("ix_ingested_records_last_seen_at", "ingested_records", ["last_seen_at"])
    op.create_index("idx_records_source_external", "ingested_records", ["source", "external_id"], unique=True)
    op.create_index("idx_records_source_seen", "ingested_records", ["source", "last_seen_at"])

    op.create_table(
        "record_snapshots",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("record_id", sa.BigInteger(), nullable=False),
        sa.Column("quantity_sold", sa.Float(), nullable=False),
        sa.Column("net_revenue", sa.Float(), nullable=False),
        sa.Column("margin", sa.Float(), nullable=False),
        sa.Column("offer_price", sa.Float(), nullable=False),
        sa.Column("original_price", sa.Float(), nullable=False),
        sa.Column("captured_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["record_id"], ["ingested_records.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_snapshots_record_captured", "record_snapshots", ["record_id", "captured_at"])


def downgrade() -> None:
    op.drop_index("idx_snapshots_record_captured", table_name="record_snapshots")
    op.drop_table("record_snapshots")
    op.drop_index("idx_records_source_seen", table_name="ingested_records")
    op.drop_index("idx_records_source_external", table_name="ingested_records")
    op.drop_index("ix_ingested_records_last_seen_at", table_name="ingested_records")
    op.drop_index("ix_ingested_records_source", table_name="ingested_records")
    op.drop_table("ingested_records")
    scan_source.drop(op.get_bind(), checkfirst=True)
