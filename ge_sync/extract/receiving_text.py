"""Plain-text heuristics for receiving reports whose layout could not be recovered.

Lower fidelity than :mod:`ge_sync.extract.pdf_layout`; only used when the
coordinate parse yields no items.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Optional

SHIPMENT_TOKEN = re.compile(r"[A-Z]\d{7}(?:-\d)?")
ITEM_START = re.compile(r"^[A-Z]\d{7}-\d$")
DATE_TOKEN = re.compile(r"^(?:\d{1,2}[/-]\d{1,2}[/-]\d{2,4}|\d{4}-\d{2}-\d{2})$")
TIME_TOKEN = re.compile(r"^\d{1,2}:\d{2}(?::\d{2})?$")
MERIDIEM = {"AM", "PM"}


@dataclass
class TextHeader:
    shipment_number: Optional[str] = None
    scac: Optional[str] = None
    truck_number: Optional[str] = None
    receipt_date: Optional[str] = None
    receipt_time: Optional[str] = None
    total_units: Optional[int] = None
    line: str = ""


@dataclass
class TextItem:
    shipment: str
    cso: Optional[str] = None
    model: Optional[str] = None
    serial: Optional[str] = None
    qty: Optional[int] = None
    raw_line: str = ""


@dataclass
class TextReport:
    header: TextHeader = field(default_factory=TextHeader)
    items: List[TextItem] = field(default_factory=list)


def _lines(text: str) -> List[str]:
    return [" ".join(line.split()) for line in (text or "").splitlines() if line.strip()]


def _at(tokens: List[str], index: int) -> Optional[str]:
    if 0 <= index < len(tokens):
        return tokens[index]
    return None


def parse_header_line(line: str) -> TextHeader:
    header = TextHeader(line=line)
    tokens = line.split()
    match = SHIPMENT_TOKEN.search(line)
    if match:
        header.shipment_number = match.group(0).split("-")[0]
    date_index = next((i for i, token in enumerate(tokens) if DATE_TOKEN.match(token)), None)
    if date_index is None:
        return header
    header.receipt_date = tokens[date_index]
    scac = _at(tokens, date_index - 2)
    truck = _at(tokens, date_index - 1)
    header.scac = scac if scac and not SHIPMENT_TOKEN.fullmatch(scac) else None
    header.truck_number = truck if truck and not SHIPMENT_TOKEN.fullmatch(truck) else None

    cursor = date_index + 1
    time_token = _at(tokens, cursor)
    if time_token and TIME_TOKEN.match(time_token):
        cursor += 1
        meridiem = _at(tokens, cursor)
        if meridiem and meridiem.upper() in MERIDIEM:
            time_token = f"{time_token} {meridiem.upper()}"
            cursor += 1
        header.receipt_time = time_token
    units = next((token for token in tokens[cursor:] if token.isdigit()), None)
    header.total_units = int(units) if units is not None else None
    return header


def find_header_line(lines: List[str]) -> Optional[str]:
    """The first line carrying a shipment token and a date; else the first with a shipment token.

    Item lines also start with a shipment token (``A7654321-1``) and can come
    before the header in extracted text, so the first shipment line alone
    would often pick an item. Only the header carries the receipt date.
    """

    candidates = [line for line in lines if SHIPMENT_TOKEN.search(line)]
    if not candidates:
        return None
    dated = next((line for line in candidates if any(DATE_TOKEN.match(t) for t in line.split())), None)
    return dated or candidates[0]


def _parse_item(raw: str) -> TextItem:
    tokens = raw.split()
    item = TextItem(shipment=tokens[0], raw_line=raw)
    qty_index = next((i for i in range(len(tokens) - 1, 0, -1) if tokens[i].isdigit()), None)
    if qty_index is None:
        return item
    item.qty = int(tokens[qty_index])
    serial = _at(tokens, qty_index - 1) if qty_index - 1 >= 1 else None
    model = _at(tokens, qty_index - 2) if qty_index - 2 >= 1 else None
    item.serial = serial if serial and not serial.isdigit() else None
    item.model = model
    cso = _at(tokens, 1)
    if cso and cso.isdigit() and qty_index - 2 > 1:
        item.cso = cso
    return item


def parse_receiving_text(text: str) -> TextReport:
    lines = _lines(text)
    report = TextReport()
    header_line = find_header_line(lines)
    if header_line:
        report.header = parse_header_line(header_line)

    current: List[str] = []
    for line in lines:
        first = line.split()[0]
        if ITEM_START.match(first):
            if current:
                report.items.append(_parse_item(" ".join(current)))
            current = [line]
        elif current:
            current.append(line)
    if current:
        report.items.append(_parse_item(" ".join(current)))
    return report
