"""GE DMS sync and reconciliation."""

from typing import Any

__all__ = [
    "SyncConfig",
    "SyncResult",
    "import_inventory_snapshot",
    "sync_asis_inventory",
    "sync_inbound_receipts",
    "sync_orders",
]


def __getattr__(name: str) -> Any:
    if name == "SyncConfig":
        from .config import SyncConfig as _SyncConfig

        return _SyncConfig
    if name == "SyncResult":
        from .sync.result import SyncResult as _SyncResult

        return _SyncResult
    if name == "sync_orders":
        from .sync.orders import sync_orders as _sync_orders

        return _sync_orders
    if name == "sync_inbound_receipts":
        from .sync.inbound import sync_inbound_receipts as _sync_inbound_receipts

        return _sync_inbound_receipts
    if name == "sync_asis_inventory":
        from .sync.inventory import sync_asis_inventory as _sync_asis_inventory

        return _sync_asis_inventory
    if name == "import_inventory_snapshot":
        from .sync.inventory import import_inventory_snapshot as _import_inventory_snapshot

        return _import_inventory_snapshot
    raise AttributeError(name)
