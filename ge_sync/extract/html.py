"""Tolerant extraction helpers for DMS HTML pages.

All helpers accept arbitrary (possibly truncated or malformed) markup and
return empty results instead of raising.
"""
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from bs4 import BeautifulSoup, Tag

ONCLICK_SHOW_PATTERN = re.compile(r"ClickShow\w+\(\s*[\"']([^\"']+)[\"']\s*\)", re.I)
ORDER_NUMBER_ID_PATTERN = re.compile(r"^orderNumber(\d+)$")


@dataclass
class RadioSelection:
    radio_value: Optional[str] = None
    hidden_value: Optional[str] = None


@dataclass
class SelectOption:
    value: str
    label: str
    selected: bool = False


@dataclass
class HtmlTable:
    headers: List[str] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)

    def column(self, needle: str) -> int:
        """Index of the first header containing ``needle`` (case-insensitive), or -1."""

        lowered = needle.lower()
        for index, header in enumerate(self.headers):
            if lowered in header.lower():
                return index
        return -1

    def records(self) -> List[Dict[str, str]]:
        return [
            {header: (row[index] if index < len(row) else "") for index, header in enumerate(self.headers)}
            for row in self.rows
        ]


@dataclass
class OrderRow:
    index: int
    cso: str
    tracking_number: str = ""
    delivery_number: str = ""
    delivery_date: str = ""


def clean_text(value: str | None) -> str:
    if not value:
        return ""
    return " ".join(value.split())


def _soup(html: str | None) -> BeautifulSoup:
    return BeautifulSoup(html or "", "html.parser")


def _attr(tag: Tag, name: str) -> str:
    value = tag.get(name)
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def extract_inputs(html: str | None) -> Dict[str, str]:
    inputs: Dict[str, str] = {}
    for tag in _soup(html).find_all("input"):
        name = _attr(tag, "name")
        if name:
            inputs[name] = _attr(tag, "value")
    return inputs


def extract_hidden_inputs(html: str | None) -> Dict[str, str]:
    """Every input value keyed by both its ``name`` and its ``id``."""

    values: Dict[str, str] = {}
    for tag in _soup(html).find_all("input"):
        value = _attr(tag, "value")
        for key in (_attr(tag, "name"), _attr(tag, "id")):
            if key:
                values[key] = value
    return values


def _option_value(option: Tag) -> str:
    value = _attr(option, "value")
    return value if value else clean_text(option.get_text())


def extract_selected_option(html: str | None, select_name: str) -> Optional[str]:
    select = _soup(html).find("select", attrs={"name": select_name})
    if select is None:
        return None
    options = select.find_all("option")
    if not options:
        return None
    for option in options:
        if option.has_attr("selected"):
            return _option_value(option)
    return _option_value(options[0])


def extract_select_options(html: str | None) -> Dict[str, List[SelectOption]]:
    options_by_name: Dict[str, List[SelectOption]] = {}
    for select in _soup(html).find_all("select"):
        name = _attr(select, "name")
        if not name:
            continue
        options_by_name[name] = [
            SelectOption(
                value=_option_value(option),
                label=clean_text(option.get_text()),
                selected=option.has_attr("selected"),
            )
            for option in select.find_all("option")
        ]
    return options_by_name


def extract_selected_values(html: str | None) -> Dict[str, str]:
    """Current value of every named select, as a browser would submit it."""

    values: Dict[str, str] = {}
    for name, options in extract_select_options(html).items():
        chosen = next((option for option in options if option.selected), options[0] if options else None)
        if chosen is not None and chosen.value:
            values[name] = chosen.value
    return values


def extract_radio_selection(html: str | None, name: str) -> RadioSelection:
    for radio in _soup(html).find_all("input", attrs={"name": name}):
        if _attr(radio, "type").lower() != "radio" or not radio.has_attr("checked"):
            continue
        match = ONCLICK_SHOW_PATTERN.search(_attr(radio, "onclick"))
        return RadioSelection(
            radio_value=_attr(radio, "value") or None,
            hidden_value=match.group(1) if match else None,
        )
    return RadioSelection()


def _table_from_tag(table: Tag) -> HtmlTable:
    parsed = HtmlTable()
    for row in table.find_all("tr"):
        cells = row.find_all(["td", "th"], recursive=False)
        if not cells:
            continue
        texts = [clean_text(cell.get_text(" ")) for cell in cells]
        if not parsed.headers:
            parsed.headers = texts
            continue
        parsed.rows.append(texts)
    return parsed


def parse_html_table(html: str | None, table_id: str) -> HtmlTable:
    table = _soup(html).find("table", id=table_id)
    if table is None:
        return HtmlTable()
    return _table_from_tag(table)


def find_table(html: str | None, predicate: Callable[[HtmlTable], bool]) -> HtmlTable:
    for table in _soup(html).find_all("table"):
        parsed = _table_from_tag(table)
        if parsed.headers and predicate(parsed):
            return parsed
    return HtmlTable()


def extract_order_rows(html: str | None) -> List[OrderRow]:
    """CSOs listed on an order-data results page, with their companion hidden fields."""

    soup = _soup(html)
    rows: List[OrderRow] = []
    for tag in soup.find_all("input", id=ORDER_NUMBER_ID_PATTERN):
        cso = clean_text(_attr(tag, "value"))
        if not cso:
            continue
        index = int(ORDER_NUMBER_ID_PATTERN.match(_attr(tag, "id")).group(1))

        def companion(prefix: str) -> str:
            match = soup.find("input", id=f"{prefix}{index}")
            return clean_text(_attr(match, "value")) if match is not None else ""

        rows.append(
            OrderRow(
                index=index,
                cso=cso,
                tracking_number=companion("trackingNumber"),
                delivery_number=companion("deliveryNumber"),
                delivery_date=companion("deliveryDate"),
            )
        )
    return rows


def extract_message_display(html: str | None) -> Optional[str]:
    banner = _soup(html).find(class_="messageDisplay")
    if banner is None:
        return None
    return clean_text(banner.get_text(" ")) or None


def extract_embedded_json(text: str | None) -> Any:
    """Decode a JSON document served raw, inside ``<pre>`` or inside a JSON script block."""

    if not text:
        return None
    stripped = text.strip()
    if stripped[:1] in ("{", "["):
        try:
            return json.loads(stripped)
        except json.JSONDecodeError:
            return None
    soup = _soup(stripped)
    candidates = [tag.string for tag in soup.find_all("script", attrs={"type": "application/json"})]
    candidates.extend(tag.get_text() for tag in soup.find_all("pre"))
    for candidate in candidates:
        if not candidate:
            continue
        try:
            return json.loads(candidate.strip())
        except json.JSONDecodeError:
            continue
    return None
