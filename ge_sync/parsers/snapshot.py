"""Inventory spreadsheet exports (XLSX or CSV) to validated rows."""
from __future__ import annotations

import csv
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

import openpyxl
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ge_sync.parsers.values import to_int, to_text

# canonical field -> accepted header spellings
SNAPSHOT_COLUMNS: Dict[str, tuple[str, ...]] = {
    "model": ("model #", "model", "models"),
    "serial": ("serial #", "serial", "serials"),
    "qty": ("inv qty", "qty", "quantity"),
    "cso": ("cso",),
    "sub_inventory": ("load number", "sub inventory", "sub_inventory"),
    "availability_status": ("availability status",),
    "availability_message": ("availability message",),
}


class SnapshotRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    serial: Optional[str] = None
    model: Optional[str] = None
    qty: Optional[int] = None
    cso: Optional[str] = None
    sub_inventory: Optional[str] = None
    availability_status: Optional[str] = None
    availability_message: Optional[str] = None

    @field_validator(
        "serial", "model", "cso", "sub_inventory", "availability_status", "availability_message", mode="before"
    )
    @classmethod
    def _strip(cls, value: Any) -> Optional[str]:
        return to_text(value)

    @field_validator("qty", mode="before")
    @classmethod
    def _quantity(cls, value: Any) -> Optional[int]:
        if to_text(value) is None:
            return None
        parsed = to_int(value)
        if parsed is None:
            raise ValueError(f"not a quantity: {value!r}")
        return parsed


def _normalize_variants(header: str) -> set[str]:
    normalized = " ".join(header.strip().lower().split())
    if not normalized:
        return set()
    return {
        normalized,
        normalized.replace(" ", ""),
        normalized.replace(" ", "_"),
        normalized.replace("_", " "),
        normalized.replace("#", "").strip(),
    }


def header_positions(header: Sequence[Any]) -> Dict[str, int]:
    """Map canonical field names to column positions; the first matching column wins."""

    lookup: Dict[str, str] = {}
    for field_name, spellings in SNAPSHOT_COLUMNS.items():
        for spelling in spellings:
            for variant in _normalize_variants(spelling):
                lookup.setdefault(variant, field_name)

    positions: Dict[str, int] = {}
    for index, cell in enumerate(header):
        text = to_text(cell)
        if text is None:
            continue
        for variant in _normalize_variants(text):
            field_name = lookup.get(variant)
            if field_name is not None:
                positions.setdefault(field_name, index)
                break
    return positions


class SnapshotReadResult(BaseModel):
    rows: List[SnapshotRow] = []
    invalid: List[str] = []


def parse_snapshot_rows(raw_rows: Iterable[Sequence[Any]]) -> SnapshotReadResult:
    result = SnapshotReadResult()
    iterator = iter(raw_rows)
    header = next(iterator, None)
    if header is None:
        return result
    positions = header_positions(header)
    for line_number, raw in enumerate(iterator, start=2):
        values = {name: raw[pos] for name, pos in positions.items() if pos < len(raw)}
        if not any(to_text(value) for value in values.values()):
            continue
        try:
            result.rows.append(SnapshotRow(**values))
        except ValidationError as err:
            result.invalid.append(f"row {line_number}: {err.errors()[0]['msg']}")
    return result


def read_snapshot(path: Path) -> SnapshotReadResult:
    if path.suffix.lower() in {".xlsx", ".xlsm"}:
        workbook = openpyxl.load_workbook(path, read_only=True, data_only=True)
        try:
            return parse_snapshot_rows(workbook.active.iter_rows(values_only=True))
        finally:
            workbook.close()
    with path.open("r", newline="", encoding="utf-8-sig") as handle:
        return parse_snapshot_rows(csv.reader(handle))
