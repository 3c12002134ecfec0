"""Receiving-report PDFs to header and item records."""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import List, Optional, Sequence, Tuple

from ge_sync.errors import GeSyncError
from ge_sync.extract.pdf_layout import TextFragment, fragments_from_pdf, parse_layout, text_from_pdf
from ge_sync.extract.receiving_text import TextReport, find_header_line, parse_header_line, parse_receiving_text
from ge_sync.parsers.values import to_digits, to_text

PDF_MAGIC = b"%PDF"


class ReceivingReportParseError(GeSyncError):
    """The receiving-report body could not be read as a PDF."""


@dataclass
class ReceivingReportHeader:
    inbound_shipment_no: Optional[str] = None
    scac: Optional[str] = None
    truck_number: Optional[str] = None
    receipt_date: Optional[str] = None
    receipt_time: Optional[str] = None
    total_units: Optional[int] = None

    def merged_with(self, fallback: "ReceivingReportHeader") -> "ReceivingReportHeader":
        values = {}
        for item in fields(self):
            own = getattr(self, item.name)
            values[item.name] = own if own not in (None, "") else getattr(fallback, item.name)
        return ReceivingReportHeader(**values)


@dataclass
class ReceivingReportItem:
    line_index: int
    shipment: Optional[str] = None
    cso: Optional[str] = None
    tracking_number: Optional[str] = None
    model: Optional[str] = None
    serial: Optional[str] = None
    inbound_replacement: Optional[str] = None
    qty: Optional[int] = None
    rcvd: Optional[int] = None
    short: Optional[int] = None
    damage: Optional[int] = None
    serial_mix: Optional[str] = None
    raw_line: str = ""


@dataclass
class ReceivingReport:
    layout_header: ReceivingReportHeader = field(default_factory=ReceivingReportHeader)
    layout_items: List[ReceivingReportItem] = field(default_factory=list)
    text_header: ReceivingReportHeader = field(default_factory=ReceivingReportHeader)
    text_items: List[ReceivingReportItem] = field(default_factory=list)
    # Set only when the inbound ASN page stood in for an unusable PDF.
    asn_items: Optional[List[ReceivingReportItem]] = None

    @property
    def source(self) -> str:
        if self.layout_items:
            return "layout"
        if not self.text_items and self.asn_items is not None:
            return "asn"
        return "text"

    @property
    def final_header(self) -> ReceivingReportHeader:
        if self.layout_items:
            return self.layout_header.merged_with(self.text_header)
        return self.text_header.merged_with(self.layout_header)

    @property
    def final_items(self) -> List[ReceivingReportItem]:
        return self.layout_items or self.text_items or self.asn_items or []


def _header_from_line(line: Optional[str]) -> ReceivingReportHeader:
    if not line:
        return ReceivingReportHeader()
    parsed = parse_header_line(line)
    return ReceivingReportHeader(
        inbound_shipment_no=parsed.shipment_number,
        scac=parsed.scac,
        truck_number=parsed.truck_number,
        receipt_date=parsed.receipt_date,
        receipt_time=parsed.receipt_time,
        total_units=parsed.total_units,
    )


def parse_receiving_report_from_layout(
    pages: Sequence[Sequence[TextFragment]],
) -> Tuple[ReceivingReportHeader, List[ReceivingReportItem]]:
    table = parse_layout(pages)
    if not table.found_header:
        return ReceivingReportHeader(), []
    header = _header_from_line(find_header_line(table.preamble))
    items = [
        ReceivingReportItem(
            line_index=index,
            shipment=to_text(row.get("Shipment")),
            cso=to_text(row.get("CSO")),
            tracking_number=to_text(row.get("Tracking #")),
            model=to_text(row.get("Model")),
            serial=to_text(row.get("Serial")),
            inbound_replacement=to_text(row.get("Inbound Replacement")),
            qty=to_digits(row.get("Qty")),
            rcvd=to_digits(row.get("RCVD")),
            short=to_digits(row.get("Short")),
            damage=to_digits(row.get("Damage")),
            serial_mix=to_text(row.get("Serial Mix")),
            raw_line=raw_line,
        )
        for index, (row, raw_line) in enumerate(zip(table.rows, table.raw_lines))
    ]
    return header, items


def parse_receiving_report_from_text(text: str) -> Tuple[ReceivingReportHeader, List[ReceivingReportItem]]:
    report: TextReport = parse_receiving_text(text)
    parsed = report.header
    header = ReceivingReportHeader(
        inbound_shipment_no=parsed.shipment_number,
        scac=parsed.scac,
        truck_number=parsed.truck_number,
        receipt_date=parsed.receipt_date,
        receipt_time=parsed.receipt_time,
        total_units=parsed.total_units,
    )
    items = [
        ReceivingReportItem(
            line_index=index,
            shipment=item.shipment,
            cso=item.cso,
            model=item.model,
            serial=item.serial,
            qty=item.qty,
            raw_line=item.raw_line,
        )
        for index, item in enumerate(report.items)
    ]
    return header, items


def parse_receiving_report(
    pages: Sequence[Sequence[TextFragment]],
    text: str,
) -> ReceivingReport:
    report = ReceivingReport()
    report.layout_header, report.layout_items = parse_receiving_report_from_layout(pages)
    if not report.layout_items:
        report.text_header, report.text_items = parse_receiving_report_from_text(text)
    else:
        report.text_header = _header_from_line(find_header_line([line for line in text.splitlines() if line.strip()]))
    return report


def parse_receiving_pdf(data: bytes) -> ReceivingReport:
    if data.lstrip()[:4] != PDF_MAGIC:
        raise ReceivingReportParseError("Body is not a PDF document")
    try:
        pages = fragments_from_pdf(data)
        text = text_from_pdf(data)
    except Exception as exc:
        raise ReceivingReportParseError(f"PDF parse failed: {exc}") from exc
    return parse_receiving_report(pages, text)
