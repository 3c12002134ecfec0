"""Inbound pages: the shipment listing (hidden inputs correlated with the summary table) and ASN search results."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from ge_sync.extract.html import (
    HtmlTable,
    extract_hidden_inputs,
    extract_selected_values,
    find_table,
    parse_html_table,
)
from ge_sync.parsers.receiving import ReceivingReportItem
from ge_sync.parsers.values import to_digits, to_number, to_text

SUMMARY_TABLE_ID = "tb_list_inboundSummary"
HISTORY_TABLE_ID = "tbl_list_inboundHistory"
LINE_ID_SUFFIX = re.compile(r"_(\d+)(?:_\d+)?$")
SHIPMENT_NO = re.compile(r"[A-Z]\d{7}")
EMPTY_TABLE_MARKER = "no rows were found"
ASN_TABLE_MARKER = "erp shipment"
DIGITS_ONLY = re.compile(r"^\d+$")


@dataclass
class InboundHistoryRow:
    line_id: int
    shipment_number: str
    mp_org_code: str = ""
    vendor_id: str = ""
    wts_stop_seqno: str = ""
    schd_arrival_date: str = ""
    schd_arrival_time: str = ""
    truck_number: str = ""
    scac: str = ""
    summary_units: Optional[int] = None
    summary_points: Optional[float] = None

    def form_overrides(self) -> Dict[str, str]:
        """Per-row fields the receiving-report export reads instead of the page selection."""

        return {
            "rowRecNo": str(self.line_id),
            "selShipmentNumVal": self.shipment_number,
            "selMpOrgCodeVal": self.mp_org_code,
            "selVendorIdVal": self.vendor_id,
            "selWtsStopSeqnoVal": self.wts_stop_seqno,
            "selSchdArrivalDateVal": self.schd_arrival_date,
            "selSchdArrivalTimeVal": self.schd_arrival_time,
            "selTruckNumberVal": self.truck_number,
            "selScacVal": self.scac,
        }


@dataclass
class InboundListing:
    rows: List[InboundHistoryRow] = field(default_factory=list)
    total_rows: int = 0
    inputs: Dict[str, str] = field(default_factory=dict)


def normalize_shipment_no(value: str) -> str:
    trimmed = (value or "").strip()
    match = SHIPMENT_NO.search(trimmed)
    if match:
        return match.group(0)
    return re.split(r"\s*-\s*", trimmed)[0]


def parse_summary_table(html: str) -> Dict[str, Tuple[Optional[int], Optional[float]]]:
    table = parse_html_table(html, SUMMARY_TABLE_ID)
    shipment_index = table.column("inbound shipment")
    units_index = table.column("units")
    points_index = table.column("points")
    summary: Dict[str, Tuple[Optional[int], Optional[float]]] = {}
    if shipment_index < 0:
        return summary
    for row in table.rows:
        if EMPTY_TABLE_MARKER in " ".join(row).lower():
            continue
        shipment = normalize_shipment_no(row[shipment_index] if shipment_index < len(row) else "")
        if not shipment or shipment in summary:
            continue
        units = to_digits(row[units_index]) if 0 <= units_index < len(row) else None
        points = to_number(row[points_index]) if 0 <= points_index < len(row) else None
        summary[shipment] = (units, points)
    return summary


def _line_ids(inputs: Dict[str, str]) -> List[int]:
    ids = set()
    for key in inputs:
        match = LINE_ID_SUFFIX.search(key)
        if match:
            ids.add(int(match.group(1)))
    return sorted(ids)


def _shipment_for_line(inputs: Dict[str, str], line_id: int) -> str:
    count = to_digits(inputs.get(f"eachRowShipmentList_{line_id}")) or 0
    shipment = ""
    for index in range(count + 1):
        value = inputs.get(f"shipmentNum_{line_id}_{index}")
        if value:
            shipment = value
    return shipment or inputs.get(f"shipmentNum_{line_id}", "")


def parse_inbound_history(html: str) -> InboundListing:
    inputs = extract_hidden_inputs(html)
    summary = parse_summary_table(html)
    line_ids = _line_ids(inputs)
    listing = InboundListing(total_rows=len(line_ids), inputs={**inputs, **extract_selected_values(html)})

    def pick(line_id: int, field_name: str, page_key: str) -> str:
        return inputs.get(f"{field_name}_{line_id}") or inputs.get(page_key) or ""

    for line_id in line_ids:
        raw_shipment = _shipment_for_line(inputs, line_id)
        if not raw_shipment:
            continue
        shipment = normalize_shipment_no(raw_shipment)
        units, points = summary.get(shipment, (None, None))
        listing.rows.append(
            InboundHistoryRow(
                line_id=line_id,
                shipment_number=shipment,
                mp_org_code=pick(line_id, "mpOrgCode", "selMpOrgCodeVal"),
                vendor_id=pick(line_id, "vendorId", "selVendorIdVal"),
                wts_stop_seqno=pick(line_id, "wtsStopSeqno", "selWtsStopSeqnoVal"),
                schd_arrival_date=pick(line_id, "schdArrivalDate", "selSchdArrivalDateVal"),
                schd_arrival_time=pick(line_id, "schdArrivalTime", "selSchdArrivalTimeVal"),
                truck_number=pick(line_id, "truckNumber", "selTruckNumberVal"),
                scac=pick(line_id, "scac", "selScacVal"),
                summary_units=units,
                summary_points=points,
            )
        )
    return listing


def parse_inbound_asn(html: str | None) -> HtmlTable:
    """ASN search results: the table headed by an ERP shipment column, empty-state rows dropped."""

    table = find_table(html, lambda parsed: ASN_TABLE_MARKER in " ".join(parsed.headers).lower())
    table.rows = [row for row in table.rows if EMPTY_TABLE_MARKER not in " ".join(row).lower()]
    return table


def asn_items(table: HtmlTable) -> List[ReceivingReportItem]:
    cso_index = table.column("cso")
    tracking_index = table.column("tracking")
    status_index = table.column("tracking # status")
    model_index = table.column("model")
    serial_index = table.column("serial")

    def cell(row: List[str], index: int) -> Optional[str]:
        return to_text(row[index]) if 0 <= index < len(row) else None

    items: List[ReceivingReportItem] = []
    for line_index, row in enumerate(table.rows):
        status = cell(row, status_index) or ""
        items.append(
            ReceivingReportItem(
                line_index=line_index,
                cso=cell(row, cso_index),
                tracking_number=cell(row, tracking_index),
                model=cell(row, model_index),
                serial=cell(row, serial_index),
                qty=int(status) if DIGITS_ONLY.match(status) else None,
                raw_line=" | ".join(row),
            )
        )
    return items
