"""Per-location last successful sync timestamps"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0002_add_sync_status"
down_revision = "0001_create_ge_sync_tables"
branch_labels = None
depends_on = None

ID_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def upgrade() -> None:
    op.create_table(
        "sync_status",
        sa.Column("id", ID_TYPE, autoincrement=True, nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("location_id", sa.String(length=64), nullable=False),
        sa.Column("sync_type", sa.String(length=32), nullable=False),
        sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("run_id", sa.String(length=64), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("location_id", "sync_type", name="uq_sync_status_key"),
    )


def downgrade() -> None:
    op.drop_table("sync_status")
