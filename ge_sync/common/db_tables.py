from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

metadata = sa.MetaData()

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def _id_column() -> sa.Column:
    return sa.Column(
        "id",
        sa.BigInteger().with_variant(sa.Integer(), "sqlite"),
        primary_key=True,
        autoincrement=True,
    )


orders = sa.Table(
    "orders",
    metadata,
    _id_column(),
    sa.Column("cso", sa.String(length=32), nullable=False),
    sa.Column("company_id", sa.String(length=64), nullable=False),
    sa.Column("location_id", sa.String(length=64), nullable=False),
    sa.Column("order_type", sa.String(length=32)),
    sa.Column("order_date", sa.Date()),
    sa.Column("customer_name", sa.Text()),
    sa.Column("customer_account", sa.String(length=64)),
    sa.Column("customer_phone", sa.String(length=64)),
    sa.Column("freight_terms", sa.String(length=64)),
    sa.Column("shipping_instructions", sa.Text()),
    sa.Column("shipping_method", sa.String(length=64)),
    sa.Column("additional_service", sa.Text()),
    sa.Column("points", sa.Float()),
    sa.Column("last_seen_at", sa.DateTime(timezone=True)),
    sa.Column("updated_at", sa.DateTime(timezone=True)),
    sa.UniqueConstraint("cso", "location_id", name="uq_orders_cso_location"),
)


order_deliveries = sa.Table(
    "order_deliveries",
    metadata,
    _id_column(),
    sa.Column("delivery_id", sa.String(length=32), nullable=False),
    sa.Column("cso", sa.String(length=32), nullable=False),
    sa.Column("company_id", sa.String(length=64), nullable=False),
    sa.Column("location_id", sa.String(length=64), nullable=False),
    sa.Column("delivery_status", sa.String(length=32)),
    sa.Column("cso_type", sa.String(length=32)),
    sa.Column("customer_po_number", sa.String(length=64)),
    sa.Column("rap", sa.String(length=32)),
    sa.Column("zip_group", sa.String(length=32)),
    sa.Column("delivery_date", sa.Date()),
    sa.Column("delivery_name", sa.Text()),
    sa.Column("delivery_address_1", sa.Text()),
    sa.Column("delivery_address_2", sa.Text()),
    sa.Column("delivery_city", sa.String(length=64)),
    sa.Column("delivery_state", sa.String(length=16)),
    sa.Column("delivery_zip", sa.String(length=16)),
    sa.Column("delivery_phone", JSON_TYPE),
    sa.Column("last_updated_date", sa.DateTime(timezone=True)),
    sa.Column("last_seen_at", sa.DateTime(timezone=True)),
    sa.Column("updated_at", sa.DateTime(timezone=True)),
    sa.UniqueConstraint("delivery_id", "cso", "location_id", name="uq_order_deliveries_key"),
)


order_lines = sa.Table(
    "order_lines",
    metadata,
    _id_column(),
    sa.Column("cso", sa.String(length=32), nullable=False),
    sa.Column("delivery_id", sa.String(length=32), nullable=False),
    sa.Column("line_number", sa.String(length=16), nullable=False),
    sa.Column("company_id", sa.String(length=64), nullable=False),
    sa.Column("location_id", sa.String(length=64), nullable=False),
    sa.Column("line_status", sa.String(length=32)),
    sa.Column("line_type", sa.String(length=16)),
    sa.Column("item_type", sa.String(length=32)),
    sa.Column("item", sa.String(length=64)),
    sa.Column("product_type", sa.String(length=64)),
    sa.Column("crated_indicator", sa.String(length=8)),
    sa.Column("anti_tip_indicator", sa.String(length=8)),
    sa.Column("product_weight", sa.Integer()),
    sa.Column("nmfc", sa.String(length=32)),
    sa.Column("carton_code", sa.String(length=32)),
    sa.Column("quantity", sa.Integer()),
    sa.Column("points", sa.Float()),
    sa.Column("shipment_number", sa.String(length=32)),
    sa.Column("customer_tracking_number", sa.String(length=64)),
    sa.Column("serials", JSON_TYPE),
    sa.Column("last_seen_at", sa.DateTime(timezone=True)),
    sa.Column("updated_at", sa.DateTime(timezone=True)),
    sa.UniqueConstraint("cso", "delivery_id", "line_number", "location_id", name="uq_order_lines_key"),
)


inbound_receipts = sa.Table(
    "inbound_receipts",
    metadata,
    _id_column(),
    sa.Column("company_id", sa.String(length=64), nullable=False),
    sa.Column("location_id", sa.String(length=64), nullable=False),
    sa.Column("inbound_shipment_no", sa.String(length=32), nullable=False),
    sa.Column("mp_org_code", sa.String(length=16)),
    sa.Column("vendor_id", sa.String(length=32)),
    sa.Column("wts_stop_seqno", sa.String(length=16)),
    sa.Column("scac", sa.String(length=16)),
    sa.Column("truck_number", sa.String(length=32)),
    sa.Column("scheduled_arrival_date", sa.String(length=32)),
    sa.Column("scheduled_arrival_time", sa.String(length=32)),
    sa.Column("receipt_date", sa.String(length=32)),
    sa.Column("receipt_time", sa.String(length=32)),
    sa.Column("total_units", sa.Integer()),
    sa.Column("summary_units", sa.Integer()),
    sa.Column("summary_points", sa.Float()),
    sa.Column("item_count", sa.Integer()),
    sa.Column("units_gap", sa.Integer()),
    sa.Column("parse_source", sa.String(length=16)),
    sa.Column("last_seen_at", sa.DateTime(timezone=True)),
    sa.Column("updated_at", sa.DateTime(timezone=True)),
    sa.UniqueConstraint("company_id", "location_id", "inbound_shipment_no", name="uq_inbound_receipts_key"),
)


inbound_receipt_items = sa.Table(
    "inbound_receipt_items",
    metadata,
    _id_column(),
    sa.Column("company_id", sa.String(length=64), nullable=False),
    sa.Column("location_id", sa.String(length=64), nullable=False),
    sa.Column("inbound_shipment_no", sa.String(length=32), nullable=False),
    sa.Column("line_index", sa.Integer(), nullable=False),
    sa.Column("cso", sa.String(length=32)),
    sa.Column("tracking_number", sa.String(length=64)),
    sa.Column("model", sa.String(length=64)),
    sa.Column("serial", sa.String(length=64)),
    sa.Column("inbound_replacement", sa.String(length=64)),
    sa.Column("qty", sa.Integer()),
    sa.Column("rcvd", sa.Integer()),
    sa.Column("short", sa.Integer()),
    sa.Column("damage", sa.Integer()),
    sa.Column("serial_mix", sa.String(length=64)),
    sa.Column("raw_line", sa.Text()),
    sa.Column("updated_at", sa.DateTime(timezone=True)),
    sa.UniqueConstraint(
        "company_id",
        "location_id",
        "inbound_shipment_no",
        "line_index",
        name="uq_inbound_receipt_items_key",
    ),
)


products = sa.Table(
    "products",
    metadata,
    sa.Column("id", sa.String(length=36), primary_key=True),
    sa.Column("model", sa.String(length=64), nullable=False, unique=True),
    sa.Column("product_type", sa.String(length=64)),
    sa.Column("description", sa.Text()),
)


inventory_items = sa.Table(
    "inventory_items",
    metadata,
    sa.Column("id", sa.String(length=36), primary_key=True),
    sa.Column("company_id", sa.String(length=64), nullable=False),
    sa.Column("location_id", sa.String(length=64), nullable=False),
    sa.Column("cso", sa.String(length=32)),
    sa.Column("model", sa.String(length=64)),
    sa.Column("serial", sa.String(length=64)),
    sa.Column("qty", sa.Integer()),
    sa.Column("product_type", sa.String(length=64)),
    sa.Column("product_fk", sa.String(length=36)),
    sa.Column("inventory_type", sa.String(length=32), nullable=False),
    sa.Column("sub_inventory", sa.String(length=64)),
    sa.Column("is_scanned", sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column("scanned_at", sa.DateTime(timezone=True)),
    sa.Column("scanned_by", sa.String(length=64)),
    sa.Column("notes", sa.Text()),
    sa.Column("status", sa.String(length=32)),
    sa.Column("source_timestamp", sa.DateTime(timezone=True)),
    sa.Column("ge_model", sa.String(length=64)),
    sa.Column("ge_serial", sa.String(length=64)),
    sa.Column("ge_inv_qty", sa.Integer()),
    sa.Column("ge_availability_status", sa.String(length=64)),
    sa.Column("ge_availability_message", sa.Text()),
    sa.Column("ge_ordc", sa.String(length=32)),
    sa.Column("ge_orphaned", sa.Boolean(), nullable=False, server_default=sa.false()),
    sa.Column("ge_orphaned_at", sa.DateTime(timezone=True)),
    sa.Column("updated_at", sa.DateTime(timezone=True)),
    sa.Index("ix_inventory_items_location_serial", "location_id", "serial"),
)


load_conflicts = sa.Table(
    "load_conflicts",
    metadata,
    _id_column(),
    sa.Column("company_id", sa.String(length=64), nullable=False),
    sa.Column("location_id", sa.String(length=64), nullable=False),
    sa.Column("inventory_type", sa.String(length=32)),
    sa.Column("load_number", sa.String(length=64), nullable=False),
    sa.Column("serial", sa.String(length=64), nullable=False),
    sa.Column("conflicting_load", sa.String(length=64)),
    sa.Column("status", sa.String(length=16)),
    sa.Column("notes", sa.Text()),
    sa.Column("detected_at", sa.DateTime(timezone=True)),
    sa.UniqueConstraint("location_id", "load_number", "serial", name="uq_load_conflicts_key"),
)


load_metadata = sa.Table(
    "load_metadata",
    metadata,
    _id_column(),
    sa.Column("company_id", sa.String(length=64), nullable=False),
    sa.Column("location_id", sa.String(length=64), nullable=False),
    sa.Column("inventory_type", sa.String(length=32)),
    sa.Column("sub_inventory_name", sa.String(length=64), nullable=False),
    sa.Column("status", sa.String(length=32)),
    sa.Column("ge_cso", sa.String(length=32)),
    sa.Column("ge_cso_status", sa.String(length=32)),
    sa.Column("ge_inv_org", sa.String(length=16)),
    sa.Column("ge_notes", sa.Text()),
    sa.Column("ge_pricing", sa.String(length=64)),
    sa.Column("ge_scanned_at", sa.String(length=64)),
    sa.Column("ge_source_status", sa.String(length=32)),
    sa.Column("ge_submitted_date", sa.String(length=32)),
    sa.Column("ge_units", sa.Integer()),
    sa.Column("item_count", sa.Integer()),
    sa.Column("updated_at", sa.DateTime(timezone=True)),
    sa.UniqueConstraint("location_id", "sub_inventory_name", name="uq_load_metadata_key"),
)


sync_status = sa.Table(
    "sync_status",
    metadata,
    _id_column(),
    sa.Column("company_id", sa.String(length=64), nullable=False),
    sa.Column("location_id", sa.String(length=64), nullable=False),
    sa.Column("sync_type", sa.String(length=32), nullable=False),
    sa.Column("last_synced_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("run_id", sa.String(length=64)),
    sa.Column("updated_at", sa.DateTime(timezone=True)),
    sa.UniqueConstraint("location_id", "sync_type", name="uq_sync_status_key"),
)


TABLES: dict[str, sa.Table] = {table.name: table for table in metadata.sorted_tables}


def get_table(name: str) -> sa.Table:
    try:
        return TABLES[name]
    except KeyError:
        raise KeyError(f"Unknown table: {name}") from None
