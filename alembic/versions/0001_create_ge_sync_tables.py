"""Orders, inbound receipts and inventory reconciliation tables"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision = "0001_create_ge_sync_tables"
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")
ID_TYPE = sa.BigInteger().with_variant(sa.Integer(), "sqlite")


def _id() -> sa.Column:
    return sa.Column("id", ID_TYPE, autoincrement=True, nullable=False)


def upgrade() -> None:
    op.create_table(
        "orders",
        _id(),
        sa.Column("cso", sa.String(length=32), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("location_id", sa.String(length=64), nullable=False),
        sa.Column("order_type", sa.String(length=32), nullable=True),
        sa.Column("order_date", sa.Date(), nullable=True),
        sa.Column("customer_name", sa.Text(), nullable=True),
        sa.Column("customer_account", sa.String(length=64), nullable=True),
        sa.Column("customer_phone", sa.String(length=64), nullable=True),
        sa.Column("freight_terms", sa.String(length=64), nullable=True),
        sa.Column("shipping_instructions", sa.Text(), nullable=True),
        sa.Column("shipping_method", sa.String(length=64), nullable=True),
        sa.Column("additional_service", sa.Text(), nullable=True),
        sa.Column("points", sa.Float(), nullable=True),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("cso", "location_id", name="uq_orders_cso_location"),
    )
    op.create_table(
        "order_deliveries",
        _id(),
        sa.Column("delivery_id", sa.String(length=32), nullable=False),
        sa.Column("cso", sa.String(length=32), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("location_id", sa.String(length=64), nullable=False),
        sa.Column("delivery_status", sa.String(length=32), nullable=True),
        sa.Column("cso_type", sa.String(length=32), nullable=True),
        sa.Column("customer_po_number", sa.String(length=64), nullable=True),
        sa.Column("rap", sa.String(length=32), nullable=True),
        sa.Column("zip_group", sa.String(length=32), nullable=True),
        sa.Column("delivery_date", sa.Date(), nullable=True),
        sa.Column("delivery_name", sa.Text(), nullable=True),
        sa.Column("delivery_address_1", sa.Text(), nullable=True),
        sa.Column("delivery_address_2", sa.Text(), nullable=True),
        sa.Column("delivery_city", sa.String(length=64), nullable=True),
        sa.Column("delivery_state", sa.String(length=16), nullable=True),
        sa.Column("delivery_zip", sa.String(length=16), nullable=True),
        sa.Column("delivery_phone", JSON_TYPE, nullable=True),
        sa.Column("last_updated_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("delivery_id", "cso", "location_id", name="uq_order_deliveries_key"),
    )
    op.create_table(
        "order_lines",
        _id(),
        sa.Column("cso", sa.String(length=32), nullable=False),
        sa.Column("delivery_id", sa.String(length=32), nullable=False),
        sa.Column("line_number", sa.String(length=16), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("location_id", sa.String(length=64), nullable=False),
        sa.Column("line_status", sa.String(length=32), nullable=True),
        sa.Column("line_type", sa.String(length=16), nullable=True),
        sa.Column("item_type", sa.String(length=32), nullable=True),
        sa.Column("item", sa.String(length=64), nullable=True),
        sa.Column("product_type", sa.String(length=64), nullable=True),
        sa.Column("crated_indicator", sa.String(length=8), nullable=True),
        sa.Column("anti_tip_indicator", sa.String(length=8), nullable=True),
        sa.Column("product_weight", sa.Integer(), nullable=True),
        sa.Column("nmfc", sa.String(length=32), nullable=True),
        sa.Column("carton_code", sa.String(length=32), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=True),
        sa.Column("points", sa.Float(), nullable=True),
        sa.Column("shipment_number", sa.String(length=32), nullable=True),
        sa.Column("customer_tracking_number", sa.String(length=64), nullable=True),
        sa.Column("serials", JSON_TYPE, nullable=True),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("cso", "delivery_id", "line_number", "location_id", name="uq_order_lines_key"),
    )
    op.create_table(
        "inbound_receipts",
        _id(),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("location_id", sa.String(length=64), nullable=False),
        sa.Column("inbound_shipment_no", sa.String(length=32), nullable=False),
        sa.Column("mp_org_code", sa.String(length=16), nullable=True),
        sa.Column("vendor_id", sa.String(length=32), nullable=True),
        sa.Column("wts_stop_seqno", sa.String(length=16), nullable=True),
        sa.Column("scac", sa.String(length=16), nullable=True),
        sa.Column("truck_number", sa.String(length=32), nullable=True),
        sa.Column("scheduled_arrival_date", sa.String(length=32), nullable=True),
        sa.Column("scheduled_arrival_time", sa.String(length=32), nullable=True),
        sa.Column("receipt_date", sa.String(length=32), nullable=True),
        sa.Column("receipt_time", sa.String(length=32), nullable=True),
        sa.Column("total_units", sa.Integer(), nullable=True),
        sa.Column("summary_units", sa.Integer(), nullable=True),
        sa.Column("summary_points", sa.Float(), nullable=True),
        sa.Column("item_count", sa.Integer(), nullable=True),
        sa.Column("units_gap", sa.Integer(), nullable=True),
        sa.Column("parse_source", sa.String(length=16), nullable=True),
        sa.Column("last_seen_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "company_id", "location_id", "inbound_shipment_no", name="uq_inbound_receipts_key"
        ),
    )
    op.create_table(
        "inbound_receipt_items",
        _id(),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("location_id", sa.String(length=64), nullable=False),
        sa.Column("inbound_shipment_no", sa.String(length=32), nullable=False),
        sa.Column("line_index", sa.Integer(), nullable=False),
        sa.Column("cso", sa.String(length=32), nullable=True),
        sa.Column("tracking_number", sa.String(length=64), nullable=True),
        sa.Column("model", sa.String(length=64), nullable=True),
        sa.Column("serial", sa.String(length=64), nullable=True),
        sa.Column("inbound_replacement", sa.String(length=64), nullable=True),
        sa.Column("qty", sa.Integer(), nullable=True),
        sa.Column("rcvd", sa.Integer(), nullable=True),
        sa.Column("short", sa.Integer(), nullable=True),
        sa.Column("damage", sa.Integer(), nullable=True),
        sa.Column("serial_mix", sa.String(length=64), nullable=True),
        sa.Column("raw_line", sa.Text(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "company_id",
            "location_id",
            "inbound_shipment_no",
            "line_index",
            name="uq_inbound_receipt_items_key",
        ),
    )
    op.create_table(
        "products",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("model", sa.String(length=64), nullable=False),
        sa.Column("product_type", sa.String(length=64), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("model"),
    )
    op.create_table(
        "inventory_items",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("location_id", sa.String(length=64), nullable=False),
        sa.Column("cso", sa.String(length=32), nullable=True),
        sa.Column("model", sa.String(length=64), nullable=True),
        sa.Column("serial", sa.String(length=64), nullable=True),
        sa.Column("qty", sa.Integer(), nullable=True),
        sa.Column("product_type", sa.String(length=64), nullable=True),
        sa.Column("product_fk", sa.String(length=36), nullable=True),
        sa.Column("inventory_type", sa.String(length=32), nullable=False),
        sa.Column("sub_inventory", sa.String(length=64), nullable=True),
        sa.Column("is_scanned", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("scanned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("scanned_by", sa.String(length=64), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=True),
        sa.Column("source_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ge_model", sa.String(length=64), nullable=True),
        sa.Column("ge_serial", sa.String(length=64), nullable=True),
        sa.Column("ge_inv_qty", sa.Integer(), nullable=True),
        sa.Column("ge_availability_status", sa.String(length=64), nullable=True),
        sa.Column("ge_availability_message", sa.Text(), nullable=True),
        sa.Column("ge_ordc", sa.String(length=32), nullable=True),
        sa.Column("ge_orphaned", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("ge_orphaned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_inventory_items_location_serial", "inventory_items", ["location_id", "serial"])
    op.create_table(
        "load_conflicts",
        _id(),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("location_id", sa.String(length=64), nullable=False),
        sa.Column("inventory_type", sa.String(length=32), nullable=True),
        sa.Column("load_number", sa.String(length=64), nullable=False),
        sa.Column("serial", sa.String(length=64), nullable=False),
        sa.Column("conflicting_load", sa.String(length=64), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("detected_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("location_id", "load_number", "serial", name="uq_load_conflicts_key"),
    )
    op.create_table(
        "load_metadata",
        _id(),
        sa.Column("company_id", sa.String(length=64), nullable=False),
        sa.Column("location_id", sa.String(length=64), nullable=False),
        sa.Column("inventory_type", sa.String(length=32), nullable=True),
        sa.Column("sub_inventory_name", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=True),
        sa.Column("ge_cso", sa.String(length=32), nullable=True),
        sa.Column("ge_cso_status", sa.String(length=32), nullable=True),
        sa.Column("ge_inv_org", sa.String(length=16), nullable=True),
        sa.Column("ge_notes", sa.Text(), nullable=True),
        sa.Column("ge_pricing", sa.String(length=64), nullable=True),
        sa.Column("ge_scanned_at", sa.String(length=64), nullable=True),
        sa.Column("ge_source_status", sa.String(length=32), nullable=True),
        sa.Column("ge_submitted_date", sa.String(length=32), nullable=True),
        sa.Column("ge_units", sa.Integer(), nullable=True),
        sa.Column("item_count", sa.Integer(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("location_id", "sub_inventory_name", name="uq_load_metadata_key"),
    )


def downgrade() -> None:
    op.drop_table("load_metadata")
    op.drop_table("load_conflicts")
    op.drop_index("ix_inventory_items_location_serial", table_name="inventory_items")
    op.drop_table("inventory_items")
    op.drop_table("products")
    op.drop_table("inbound_receipt_items")
    op.drop_table("inbound_receipts")
    op.drop_table("order_lines")
    op.drop_table("order_deliveries")
    op.drop_table("orders")
