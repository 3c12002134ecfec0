"""ASIS inventory, load list and report-history documents."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from dateutil import parser as date_parser

from ge_sync.extract.html import extract_embedded_json
from ge_sync.parsers.values import to_int, to_text

FOR_SALE = "FOR SALE"
SOLD = "SOLD"
PICKED = "Picked"


@dataclass
class AsisInventoryRow:
    model: Optional[str]
    serial: Optional[str]
    inv_qty: Optional[int]
    availability_status: Optional[str]
    availability_message: Optional[str]


@dataclass
class LoadInfo:
    load_number: str
    status: Optional[str] = None
    cso_status: Optional[str] = None
    units: int = 0
    notes: Optional[str] = None
    submitted_date: Optional[str] = None
    cso: Optional[str] = None
    inv_org: Optional[str] = None
    pricing: Optional[str] = None
    scanned_at: Optional[str] = None
    source_status: Optional[str] = None

    @property
    def is_for_sale(self) -> bool:
        return self.status == FOR_SALE

    @property
    def is_picked(self) -> bool:
        return self.status == SOLD and self.cso_status == PICKED

    @property
    def on_floor(self) -> bool:
        return self.is_for_sale or self.is_picked

    @property
    def source_timestamp(self) -> Optional[datetime]:
        for raw in (self.scanned_at, self.submitted_date):
            parsed = parse_loose_timestamp(raw)
            if parsed is not None:
                return parsed
        return None


@dataclass
class LoadItem:
    load_number: str
    serial: Optional[str]
    model: Optional[str]
    qty: Optional[int]
    ordc: Optional[str]
    source_timestamp: Optional[datetime] = None
    batch_index: int = 0


def parse_loose_timestamp(value: Any) -> Optional[datetime]:
    text = to_text(value)
    if text is None:
        return None
    try:
        parsed = date_parser.parse(text)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def document_rows(body: str | None) -> List[Mapping[str, Any]]:
    """Rows of a JSON document that may arrive raw or embedded in an HTML page."""

    payload = extract_embedded_json(body)
    if isinstance(payload, Mapping):
        for key in ("data", "rows", "items"):
            if isinstance(payload.get(key), list):
                payload = payload[key]
                break
    if not isinstance(payload, list):
        return []
    return [row for row in payload if isinstance(row, Mapping)]


def parse_inventory(rows: List[Mapping[str, Any]]) -> List[AsisInventoryRow]:
    return [
        AsisInventoryRow(
            model=to_text(row.get("Model #")),
            serial=to_text(row.get("Serial #")),
            inv_qty=to_int(row.get("Inv Qty")),
            availability_status=to_text(row.get("Availability Status")),
            availability_message=to_text(row.get("Availability Message")),
        )
        for row in rows
    ]


def parse_loads(
    report_history: List[Mapping[str, Any]],
    load_data: List[Mapping[str, Any]],
) -> List[LoadInfo]:
    """Report history is authoritative; the load list contributes notes and scan times."""

    loads: Dict[str, LoadInfo] = {}
    for row in report_history:
        load_number = to_text(row.get("Load Number"))
        if not load_number:
            continue
        loads[load_number] = LoadInfo(
            load_number=load_number,
            status=to_text(row.get("Status")),
            cso_status=to_text(row.get("CSO Status")),
            units=to_int(row.get("Units")) or 0,
            submitted_date=to_text(row.get("Submitted Date")),
            cso=to_text(row.get("CSO")),
            inv_org=to_text(row.get("Inv Org")),
            pricing=to_text(row.get("Pricing")),
        )
    for row in load_data:
        load = loads.get(to_text(row.get("Load Number")) or "")
        if load is None:
            continue
        load.notes = to_text(row.get("Notes"))
        load.scanned_at = to_text(row.get("Scanned Date/Time"))
        load.source_status = to_text(row.get("Status"))
    return list(loads.values())


def parse_load_items(load: LoadInfo, rows: List[Mapping[str, Any]], *, batch_index: int) -> List[LoadItem]:
    timestamp = load.source_timestamp
    return [
        LoadItem(
            load_number=to_text(row.get("LOAD NUMBER")) or load.load_number,
            serial=to_text(row.get("SERIALS")),
            model=to_text(row.get("MODELS")),
            qty=to_int(row.get("QTY")),
            ordc=to_text(row.get("ORDC")),
            source_timestamp=timestamp,
            batch_index=batch_index,
        )
        for row in rows
    ]
