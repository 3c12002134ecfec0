"""
Coordinate-based table extraction for receiving-report PDFs.

Fragments carry PDF coordinates (``y`` grows upwards). Rows are clustered by
rounded ``y``; the table header row fixes the column x-positions and every
later fragment is assigned to the column whose midpoint-bounded band holds it.
"""

from __future__ import annotations

import io
import math
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pdfplumber

RECEIVING_COLUMNS: Tuple[str, ...] = (
    "Shipment",
    "CSO",
    "Tracking #",
    "Model",
    "Serial",
    "Inbound Replacement",
    "Qty",
    "RCVD",
    "Short",
    "Damage",
    "Serial Mix",
)
MIN_HEADER_COLUMNS = 3
ITEM_ROW_PATTERN = re.compile(r"^[A-Z]\d{7}-\d$")
TOKEN_RE = re.compile(r"[a-z0-9]+")


@dataclass(frozen=True)
class TextFragment:
    text: str
    x: float
    y: float


@dataclass
class ColumnBand:
    name: str
    x: float
    left: float = -math.inf
    right: float = math.inf

    def holds(self, x: float) -> bool:
        return self.left <= x < self.right


@dataclass
class LayoutTable:
    bands: List[ColumnBand] = field(default_factory=list)
    preamble: List[str] = field(default_factory=list)
    rows: List[Dict[str, str]] = field(default_factory=list)
    raw_lines: List[str] = field(default_factory=list)

    @property
    def found_header(self) -> bool:
        return bool(self.bands)


def _tokens(text: str) -> List[str]:
    return TOKEN_RE.findall(text.lower())


def group_rows(fragments: Iterable[TextFragment]) -> List[List[TextFragment]]:
    """Cluster fragments sharing ``round(y, 1)``; top of page first, left to right."""

    buckets: Dict[float, List[TextFragment]] = {}
    for fragment in fragments:
        if not fragment.text or not fragment.text.strip():
            continue
        buckets.setdefault(round(fragment.y, 1), []).append(fragment)
    return [sorted(buckets[y], key=lambda f: f.x) for y in sorted(buckets, reverse=True)]


def _match_column(text: str, columns: Sequence[str]) -> Optional[str]:
    fragment_tokens = set(_tokens(text))
    best: Optional[str] = None
    best_size = 0
    for column in columns:
        column_tokens = _tokens(column)
        if column_tokens and all(token in fragment_tokens for token in column_tokens):
            if len(column_tokens) > best_size:
                best, best_size = column, len(column_tokens)
    return best


def detect_header(row: Sequence[TextFragment], columns: Sequence[str] = RECEIVING_COLUMNS) -> List[ColumnBand]:
    positions: Dict[str, float] = {}
    for fragment in row:
        column = _match_column(fragment.text, columns)
        if column and column not in positions:
            positions[column] = fragment.x
    if len(positions) < MIN_HEADER_COLUMNS:
        return []
    return column_bands(positions)


def column_bands(positions: Dict[str, float]) -> List[ColumnBand]:
    ordered = sorted(positions.items(), key=lambda item: item[1])
    bands = [ColumnBand(name=name, x=x) for name, x in ordered]
    for left, right in zip(bands, bands[1:]):
        boundary = (left.x + right.x) / 2.0
        left.right = boundary
        right.left = boundary
    return bands


def _assign(row: Sequence[TextFragment], bands: Sequence[ColumnBand]) -> Dict[str, str]:
    cells: Dict[str, List[str]] = {}
    for fragment in row:
        band = next((b for b in bands if b.holds(fragment.x)), None)
        if band is None:
            continue
        cells.setdefault(band.name, []).append(" ".join(fragment.text.split()))
    return {name: " ".join(parts) for name, parts in cells.items()}


def is_item_row(row: Sequence[TextFragment]) -> bool:
    if not row:
        return False
    first = row[0].text.split()
    return bool(first) and bool(ITEM_ROW_PATTERN.match(first[0]))


def _line_text(row: Sequence[TextFragment]) -> str:
    return " ".join(" ".join(fragment.text.split()) for fragment in row)


def parse_layout(
    pages: Sequence[Sequence[TextFragment]],
    columns: Sequence[str] = RECEIVING_COLUMNS,
) -> LayoutTable:
    """Split item rows into named columns.

    Pages without their own header row reuse the bands of the last header
    seen. Without any header the result is empty.
    """

    table = LayoutTable()
    bands: List[ColumnBand] = []
    for page in pages:
        in_table = bool(bands)
        for row in group_rows(page):
            page_bands = detect_header(row, columns)
            if page_bands:
                bands = page_bands
                if not table.bands:
                    table.bands = page_bands
                in_table = True
                continue
            if not in_table:
                if not table.bands:
                    table.preamble.append(_line_text(row))
                continue
            if is_item_row(row):
                table.rows.append(_assign(row, bands))
                table.raw_lines.append(_line_text(row))
    if not table.bands:
        return LayoutTable()
    return table


def fragments_from_pdf(data: bytes) -> List[List[TextFragment]]:
    pages: List[List[TextFragment]] = []
    with pdfplumber.open(io.BytesIO(data)) as pdf:
        for page in pdf.pages:
            words = page.extract_words(keep_blank_chars=True)
            pages.append(
                [TextFragment(text=w["text"], x=float(w["x0"]), y=float(page.height - w["bottom"])) for w in words]
            )
    return pages


def text_from_pdf(data: bytes) -> str:
    with pdfplumber.open(io.BytesIO(data)) as pdf:
        return "\n".join(page.extract_text() or "" for page in pdf.pages)
