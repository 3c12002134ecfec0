"""
Inventory reconciliation: the ASIS feed and spreadsheet snapshots.

Both paths share one pipeline: cross-type guard, dedup by serial, classify
against persisted rows, upsert by id, then flag persisted rows that were not
seen as orphans. Scan fields (``is_scanned``, ``scanned_at``, ``scanned_by``,
``notes``) are only written on insert.
"""

from __future__ import annotations

import uuid
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ge_sync.common.store import UpsertStore
from ge_sync.config import SyncConfig
from ge_sync.dms.client import DmsTransport, open_dms_client
from ge_sync.dms.endpoints import AsisEndpoints
from ge_sync.dms.session import SessionProvider
from ge_sync.errors import UpstreamError
from ge_sync.json_logger import JsonLogger
from ge_sync.parsers.asis import (
    LoadInfo,
    LoadItem,
    document_rows,
    parse_inventory,
    parse_load_items,
    parse_loads,
)
from ge_sync.parsers.snapshot import SnapshotRow, read_snapshot
from ge_sync.parsers.values import utcnow
from ge_sync.sync.reconcile import (
    ORPHAN_STATUS,
    LoadConflict,
    classify,
    dedupe_by_serial,
    exclude_cross_type,
    find_orphans,
    index_existing,
    orphan_update,
)
from ge_sync.sync.result import SyncResult, SyncRun, run_sync
from ge_sync.sync.status import record_sync_timestamp

ASIS_TYPE = "ASIS"
ASIS_CSO = "ASIS"
UNKNOWN_PRODUCT_TYPE = "UNKNOWN"
CONFLICT_KEY = ("location_id", "load_number", "serial")
LOAD_METADATA_KEY = ("location_id", "sub_inventory_name")


@dataclass
class InventoryRecord:
    serial: Optional[str]
    model: Optional[str] = None
    qty: Optional[int] = None
    cso: Optional[str] = None
    load_number: Optional[str] = None
    availability_status: Optional[str] = None
    availability_message: Optional[str] = None
    ordc: Optional[str] = None
    source_timestamp: Optional[datetime] = None
    batch_index: int = 0


@dataclass
class InventoryWriteOutcome:
    new_items: int = 0
    updated_items: int = 0
    cross_type_skipped: int = 0
    duplicates_dropped: int = 0
    orphaned: int = 0
    conflicts: List[LoadConflict] = field(default_factory=list)


async def _product_lookup(store: UpsertStore, models: Iterable[Optional[str]]) -> Dict[str, Tuple[Any, Any]]:
    wanted = sorted({model for model in models if model})
    if not wanted:
        return {}
    rows = await store.select("products", ["id", "model", "product_type"], where_in={"model": wanted})
    return {row["model"]: (row["id"], row["product_type"]) for row in rows}


async def _cross_type_serials(
    store: UpsertStore,
    *,
    location_id: str,
    inventory_type: str,
    serials: Sequence[str],
) -> set[str]:
    if not serials:
        return set()
    rows = await store.select(
        "inventory_items",
        ["serial"],
        where={"location_id": location_id},
        where_not={"inventory_type": inventory_type},
        where_in={"serial": list(serials)},
    )
    return {row["serial"] for row in rows if row.get("serial")}


def _inventory_row(
    record: InventoryRecord,
    *,
    company_id: str,
    location_id: str,
    inventory_type: str,
    product: Optional[Tuple[Any, Any]],
    now: datetime,
) -> Dict[str, Any]:
    qty = record.qty
    return {
        "company_id": company_id,
        "location_id": location_id,
        "serial": record.serial,
        "model": record.model,
        "cso": record.cso,
        "qty": qty if qty is not None and qty > 0 else 1,
        "product_type": product[1] if product and product[1] else UNKNOWN_PRODUCT_TYPE,
        "product_fk": product[0] if product else None,
        "inventory_type": inventory_type,
        "sub_inventory": record.load_number,
        "source_timestamp": record.source_timestamp,
        "ge_model": record.model,
        "ge_serial": record.serial,
        "ge_inv_qty": qty,
        "ge_availability_status": record.availability_status,
        "ge_availability_message": record.availability_message,
        "ge_ordc": record.ordc,
        "ge_orphaned": False,
        "ge_orphaned_at": None,
        "updated_at": now,
    }


async def reconcile_inventory(
    run: SyncRun,
    store: UpsertStore,
    records: List[InventoryRecord],
    *,
    company_id: str,
    location_id: str,
    inventory_type: str,
) -> InventoryWriteOutcome:
    outcome = InventoryWriteOutcome()
    trail = run.trail
    now = utcnow()

    serials = sorted({record.serial for record in records if record.serial})
    cross_type = await _cross_type_serials(
        store, location_id=location_id, inventory_type=inventory_type, serials=serials
    )
    records, outcome.cross_type_skipped = exclude_cross_type(records, cross_type)
    if outcome.cross_type_skipped:
        trail.warn(f"Skipped {outcome.cross_type_skipped} item(s) already tracked under another inventory type")

    deduped = dedupe_by_serial(records)
    records = deduped.items
    outcome.duplicates_dropped = deduped.duplicates_dropped
    outcome.conflicts = deduped.conflicts
    if outcome.conflicts:
        trail.warn(f"Serials listed under more than one sub-inventory: {len(outcome.conflicts)}")
        await store.upsert(
            "load_conflicts",
            _conflict_rows(
                outcome.conflicts,
                company_id=company_id,
                location_id=location_id,
                inventory_type=inventory_type,
                now=now,
            ),
            on_conflict=CONFLICT_KEY,
        )

    existing = await store.select(
        "inventory_items",
        ["id", "serial", "status", "ge_orphaned"],
        where={"company_id": company_id, "location_id": location_id, "inventory_type": inventory_type},
    )
    status_by_id = {row["id"]: row.get("status") for row in existing}
    classification = classify(records, index_existing(existing))
    products = await _product_lookup(store, (record.model for record in records))

    rows: List[Dict[str, Any]] = []
    for record in classification.new:
        row = _inventory_row(
            record,
            company_id=company_id,
            location_id=location_id,
            inventory_type=inventory_type,
            product=products.get(record.model or ""),
            now=now,
        )
        rows.append(
            {
                "id": str(uuid.uuid4()),
                **row,
                "is_scanned": False,
                "scanned_at": None,
                "scanned_by": None,
                "notes": None,
                "status": None,
            }
        )
    for record, existing_id in classification.updated:
        row = _inventory_row(
            record,
            company_id=company_id,
            location_id=location_id,
            inventory_type=inventory_type,
            product=products.get(record.model or ""),
            now=now,
        )
        if status_by_id.get(existing_id) == ORPHAN_STATUS:
            row["status"] = None
        rows.append({"id": existing_id, **row})

    await store.upsert("inventory_items", rows, on_conflict=("id",))
    outcome.new_items = len(classification.new)
    outcome.updated_items = len(classification.updated)

    orphan_ids = find_orphans(existing, classification.matched_ids)
    if orphan_ids:
        await store.update_by_ids("inventory_items", orphan_update(now), orphan_ids)
        trail.push(f"Marked {len(orphan_ids)} item(s) as {ORPHAN_STATUS}")
    outcome.orphaned = len(orphan_ids)

    run.stats.new_items = outcome.new_items
    run.stats.updated_items = outcome.updated_items
    run.count("crossTypeSkipped", outcome.cross_type_skipped)
    run.count("duplicatesDropped", outcome.duplicates_dropped)
    run.count("conflicts", len(outcome.conflicts))
    run.count("orphanedItems", outcome.orphaned)
    return outcome


async def _fetch_rows(client: DmsTransport, url: str) -> List[Mapping[str, Any]]:
    response = await client.get(url)
    return document_rows(response.raise_for_status().text)


async def _load_items(
    client: DmsTransport,
    endpoints: AsisEndpoints,
    load: LoadInfo,
    *,
    batch_index: int,
    run: SyncRun,
) -> List[LoadItem]:
    """Items of one load; the report-history document first, the load-list document as fallback."""

    for url in (endpoints.report_history_items(load.load_number), endpoints.load_data_items(load.load_number)):
        try:
            rows = await _fetch_rows(client, url)
        except UpstreamError as exc:
            run.trail.warn(f"Load {load.load_number} items unavailable at {url}: {exc}")
            continue
        if rows:
            return parse_load_items(load, rows, batch_index=batch_index)
    run.trail.warn(f"Could not fetch items for load {load.load_number}")
    return []


def _conflict_rows(
    conflicts: Sequence[LoadConflict],
    *,
    company_id: str,
    location_id: str,
    inventory_type: str,
    now: datetime,
) -> List[Dict[str, Any]]:
    return [
        {
            "company_id": company_id,
            "location_id": location_id,
            "inventory_type": inventory_type,
            "load_number": conflict.load_number,
            "serial": conflict.serial,
            "conflicting_load": conflict.conflicting_load,
            "status": "open",
            "notes": f"Serial also listed on load {conflict.conflicting_load}",
            "detected_at": now,
        }
        for conflict in conflicts
    ]


def _load_metadata_rows(
    loads: Sequence[LoadInfo],
    item_counts: Mapping[str, int],
    *,
    company_id: str,
    location_id: str,
    now: datetime,
) -> List[Dict[str, Any]]:
    return [
        {
            "company_id": company_id,
            "location_id": location_id,
            "inventory_type": ASIS_TYPE,
            "sub_inventory_name": load.load_number,
            "status": load.status,
            "ge_cso": load.cso,
            "ge_cso_status": load.cso_status,
            "ge_inv_org": load.inv_org,
            "ge_notes": load.notes,
            "ge_pricing": load.pricing,
            "ge_scanned_at": load.scanned_at,
            "ge_source_status": load.source_status,
            "ge_submitted_date": load.submitted_date,
            "ge_units": load.units,
            "item_count": item_counts.get(load.load_number, 0),
            "updated_at": now,
        }
        for load in loads
    ]


async def sync_asis_inventory(
    location_id: str,
    *,
    config: SyncConfig,
    session: SessionProvider,
    store: UpsertStore,
    logger: JsonLogger,
    client: DmsTransport | None = None,
) -> SyncResult:
    async def body(run: SyncRun) -> None:
        trail = run.trail
        company_id = config.require_company()
        endpoints = AsisEndpoints(config.asis_base_url)
        trail.push("Starting ASIS inventory sync")
        trail.push(f"Company {company_id} / Location {location_id}")

        async with AsyncExitStack() as stack:
            transport = client
            if transport is None:
                cookie_header = await session.get_cookie_header(location_id)
                transport = await stack.enter_async_context(open_dms_client(cookie_header))

            inventory = parse_inventory(await _fetch_rows(transport, endpoints.inventory))
            load_data = await _fetch_rows(transport, endpoints.load_data)
            report_history = await _fetch_rows(transport, endpoints.report_history)
            loads = parse_loads(report_history, load_data)
            trail.push(f"GE inventory rows: {len(inventory)}")
            trail.push(f"GE loads: {len(loads)}")

            run.stats.for_sale_loads = sum(1 for load in loads if load.is_for_sale)
            run.stats.picked_loads = sum(1 for load in loads if load.is_picked)
            on_floor = [load for load in loads if load.on_floor]
            trail.push(
                f"Loads on floor: {len(on_floor)} "
                f"(for sale {run.stats.for_sale_loads}, picked {run.stats.picked_loads})"
            )

            load_items: List[LoadItem] = []
            for index, load in enumerate(on_floor):
                load_items.extend(await _load_items(transport, endpoints, load, batch_index=index, run=run))

        assignment = dedupe_by_serial(load_items)
        serial_to_load = {item.serial: item for item in assignment.items if item.serial}
        item_counts: Dict[str, int] = {}
        for item in serial_to_load.values():
            item_counts[item.load_number] = item_counts.get(item.load_number, 0) + 1
        if assignment.conflicts:
            trail.warn(f"Serials listed on more than one load: {len(assignment.conflicts)}")
        run.count("conflicts", len(assignment.conflicts))

        now = utcnow()
        await store.upsert(
            "load_conflicts",
            _conflict_rows(
                assignment.conflicts,
                company_id=company_id,
                location_id=location_id,
                inventory_type=ASIS_TYPE,
                now=now,
            ),
            on_conflict=CONFLICT_KEY,
        )
        await store.upsert(
            "load_metadata",
            _load_metadata_rows(loads, item_counts, company_id=company_id, location_id=location_id, now=now),
            on_conflict=LOAD_METADATA_KEY,
        )

        records: List[InventoryRecord] = []
        for index, row in enumerate(inventory):
            if not row.serial:
                run.count("itemsWithoutSerial")
                continue
            load_item = serial_to_load.get(row.serial)
            records.append(
                InventoryRecord(
                    serial=row.serial,
                    model=row.model,
                    qty=row.inv_qty,
                    cso=ASIS_CSO,
                    load_number=load_item.load_number if load_item else None,
                    availability_status=row.availability_status,
                    availability_message=row.availability_message,
                    ordc=load_item.ordc if load_item else None,
                    source_timestamp=load_item.source_timestamp if load_item else None,
                    batch_index=index,
                )
            )

        run.stats.total_ge_items = len(inventory)
        run.stats.items_in_loads = sum(1 for record in records if record.load_number)
        run.stats.unassigned_items = run.stats.total_ge_items - run.stats.items_in_loads

        outcome = await reconcile_inventory(
            run,
            store,
            records,
            company_id=company_id,
            location_id=location_id,
            inventory_type=ASIS_TYPE,
        )
        run.stats.changes_logged = len(assignment.conflicts) + len(outcome.conflicts) + outcome.orphaned
        trail.push(
            f"ASIS items: {outcome.new_items} new, {outcome.updated_items} updated, "
            f"{outcome.orphaned} orphaned"
        )
        await record_sync_timestamp(store, run, company_id=company_id, location_id=location_id, sync_type="asis")

    return await run_sync("asis", logger, body)


def _snapshot_record(row: SnapshotRow, *, index: int, sub_inventory: Optional[str]) -> InventoryRecord:
    return InventoryRecord(
        serial=row.serial,
        model=row.model,
        qty=row.qty,
        cso=row.cso,
        load_number=sub_inventory or row.sub_inventory,
        availability_status=row.availability_status,
        availability_message=row.availability_message,
        batch_index=index,
    )


async def import_inventory_snapshot(
    location_id: str,
    path: Path,
    *,
    inventory_type: str,
    config: SyncConfig,
    store: UpsertStore,
    logger: JsonLogger,
    sub_inventory: Optional[str] = None,
) -> SyncResult:
    async def body(run: SyncRun) -> None:
        trail = run.trail
        company_id = config.require_company()
        trail.push(f"Importing {inventory_type} snapshot {path.name}")
        snapshot = read_snapshot(path)
        for problem in snapshot.invalid:
            trail.warn(f"Skipped invalid snapshot {problem}")
        run.count("invalidRows", len(snapshot.invalid))
        records = [
            _snapshot_record(row, index=index, sub_inventory=sub_inventory)
            for index, row in enumerate(snapshot.rows)
        ]
        run.count("totalRows", len(records))
        run.stats.total_ge_items = len(records)
        run.stats.items_in_loads = sum(1 for record in records if record.load_number)
        run.stats.unassigned_items = len(records) - run.stats.items_in_loads

        outcome = await reconcile_inventory(
            run,
            store,
            records,
            company_id=company_id,
            location_id=location_id,
            inventory_type=inventory_type,
        )
        processed = outcome.new_items + outcome.updated_items
        run.count("processedRows", processed)
        run.stats.changes_logged = len(outcome.conflicts) + outcome.orphaned
        trail.push(
            f"Snapshot rows: {len(records)}, processed: {processed}, "
            f"cross-type skipped: {outcome.cross_type_skipped}, conflicts: {len(outcome.conflicts)}"
        )
        await record_sync_timestamp(
            store, run, company_id=company_id, location_id=location_id, sync_type="inventory_import"
        )

    return await run_sync("inventory-import", logger, body)
