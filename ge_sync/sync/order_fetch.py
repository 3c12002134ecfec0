"""
Order-data retrieval for one date chunk.

The DMS sometimes answers a valid JSON download with an empty body. Each
chunk therefore walks an explicit escalation:

    json -> html -> browser -> daily-split -> per-cso -> done

and records the states it visited on the returned :class:`ChunkOutcome`.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from ge_sync.config import ORDER_DATE_FORMAT, SyncConfig
from ge_sync.dms.browser import OrderHtmlFetcher
from ge_sync.dms.client import DmsResponse, DmsTransport
from ge_sync.dms.endpoints import DmsEndpoints
from ge_sync.errors import UpstreamContentError, UpstreamPayloadError, snippet
from ge_sync.extract.html import (
    extract_inputs,
    extract_message_display,
    extract_order_rows,
    extract_radio_selection,
    extract_selected_option,
    parse_html_table,
)
from ge_sync.parsers.orders import order_list
from ge_sync.sync.result import SyncTrail

RESULTS_TABLE_ID = "table_list"
DEFAULT_JSON_VERSION = "V2"
DEFAULT_RADIO_VALUE = "ALL"
DEFAULT_HIDDEN_SHOW = "a"


class FetchState(str, Enum):
    JSON = "json"
    HTML = "html"
    BROWSER = "browser"
    DAILY_SPLIT = "daily-split"
    PER_CSO = "per-cso"
    DONE = "done"


def format_order_date(value: date) -> str:
    return value.strftime(ORDER_DATE_FORMAT)


@dataclass(frozen=True)
class DateRange:
    label: str
    start: date
    days: int


@dataclass(frozen=True)
class DateChunk:
    start: date
    days: int

    @property
    def start_text(self) -> str:
        return format_order_date(self.start)

    def single_days(self) -> List["DateChunk"]:
        return [DateChunk(start=self.start + timedelta(days=offset), days=1) for offset in range(self.days)]


@dataclass
class ChunkOutcome:
    chunk: DateChunk
    orders: List[Mapping[str, Any]] = field(default_factory=list)
    csos: List[str] = field(default_factory=list)
    states: List[FetchState] = field(default_factory=list)
    per_cso_requests: int = 0


def plan_ranges(config: SyncConfig, today: date) -> List[DateRange]:
    if config.use_ui_range:
        return [DateRange(label="ui", start=config.ui_start_date or today, days=config.ui_days)]
    ranges: List[DateRange] = []
    if config.days_back > 0:
        ranges.append(DateRange(label="past", start=today - timedelta(days=config.days_back), days=config.days_back))
    if config.days_forward > 0:
        ranges.append(DateRange(label="future", start=today, days=config.days_forward))
    if not ranges:
        ranges.append(DateRange(label="default", start=today, days=1))
    return ranges


def plan_chunks(date_range: DateRange, max_days: int) -> List[DateChunk]:
    size = max(1, max_days)
    return [
        DateChunk(start=date_range.start + timedelta(days=offset), days=min(size, date_range.days - offset))
        for offset in range(0, date_range.days, size)
    ]


def decode_order_json(response: DmsResponse, *, cso: Optional[str] = None) -> Optional[List[Mapping[str, Any]]]:
    """Orders in a JSON download; ``None`` for an empty body.

    An HTML page or an undecodable body is a hard error.
    """

    body = response.text.strip()
    if not body:
        return None
    suffix = f" for CSO {cso}" if cso else ""
    if body.startswith("<"):
        raise UpstreamContentError(f"Order data JSON returned HTML{suffix}: {snippet(body)}")
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise UpstreamPayloadError(f"Order data JSON parse failed{suffix}: {exc}. Snippet: {snippet(body)}") from exc
    return order_list(payload)


class OrderDataFetcher:
    def __init__(
        self,
        *,
        client: DmsTransport,
        config: SyncConfig,
        location_id: str,
        dms_loc: str,
        trail: SyncTrail,
        browser: OrderHtmlFetcher | None = None,
    ) -> None:
        self.client = client
        self.config = config
        self.location_id = location_id
        self.dms_loc = dms_loc
        self.trail = trail
        self.browser = browser if config.browser_fallback else None
        self.endpoints = DmsEndpoints(config.dms_base_url)

    async def search_page(self) -> str:
        response = await self.client.get(self.endpoints.order_data, referer=self.endpoints.order_data)
        return response.raise_for_status().text

    def form_body(
        self,
        page_html: str,
        chunk: DateChunk,
        *,
        cso: str = "",
        tracking: str = "",
        shipment: str = "",
        for_json: bool = False,
    ) -> Dict[str, str]:
        show_orders = extract_radio_selection(page_html, "radShowOrders")
        show_status = extract_radio_selection(page_html, "radShowStatus")
        start = chunk.start_text
        days = str(chunk.days)
        body = {
            **extract_inputs(page_html),
            "cbDmsLoc": self.dms_loc,
            "radShowOrders": show_orders.radio_value or DEFAULT_RADIO_VALUE,
            "radShowStatus": show_status.radio_value or DEFAULT_RADIO_VALUE,
            "txtOrderDate": start,
            "txtNumberOfDays": days,
            "hDmsLoc": self.dms_loc,
            "hShowOrders": show_orders.hidden_value or DEFAULT_HIDDEN_SHOW,
            "hShowStatus": show_status.hidden_value or DEFAULT_HIDDEN_SHOW,
            "hDeliveryDate": start,
            "hNumberOfDays": days,
            "hCso": cso,
            "htrackingNumber": tracking,
            "hShipment": shipment,
            "txtOrderCSO": cso,
            "trackingNumber": tracking,
            "txtOrdrShipment": shipment,
            "orderCSO": cso,
            "hCsvView": "",
            "hExportType": "",
        }
        if for_json:
            body["jsonDataVersion"] = extract_selected_option(page_html, "jsonDataVersion") or DEFAULT_JSON_VERSION
        return body

    async def request_json(self, chunk: DateChunk, *, cso: str = "") -> DmsResponse:
        page_html = await self.search_page()
        response = await self.client.post_form(
            self.endpoints.order_data_json,
            self.form_body(page_html, chunk, cso=cso, for_json=True),
            referer=self.endpoints.order_data,
        )
        return response.raise_for_status()

    async def request_html(self, chunk: DateChunk) -> str:
        page_html = await self.search_page()
        response = await self.client.post_form(
            self.endpoints.order_data,
            self.form_body(page_html, chunk),
            referer=self.endpoints.order_data,
        )
        return response.raise_for_status().text

    async def _browser_csos(self, chunk: DateChunk) -> List[str]:
        try:
            html = await self.browser.fetch_order_html(
                location_id=self.location_id,
                dms_loc=self.dms_loc,
                start_date=chunk.start_text,
                days=chunk.days,
            )
        except Exception as exc:
            self.trail.warn(f"Order data Playwright failed: {exc}")
            return []
        table = parse_html_table(html, RESULTS_TABLE_ID)
        self.trail.push(f"Order data Playwright rows: {len(table.rows)}")
        return [row.cso for row in extract_order_rows(html)]

    async def fetch_chunk(self, chunk: DateChunk) -> ChunkOutcome:
        outcome = ChunkOutcome(chunk=chunk)
        csos: List[str] = []
        state = FetchState.JSON
        while state is not FetchState.DONE:
            outcome.states.append(state)

            if state is FetchState.JSON:
                response = await self.request_json(chunk)
                orders = decode_order_json(response)
                if orders is None:
                    self.trail.push(
                        f"Order data chunk empty (status {response.status}, "
                        f"content-type {response.content_type or 'unknown'})"
                    )
                    state = FetchState.HTML
                    continue
                self.trail.push(f"Order data chunk records: {len(orders)}")
                outcome.orders.extend(orders)
                state = FetchState.DONE

            elif state is FetchState.HTML:
                html = await self.request_html(chunk)
                table = parse_html_table(html, RESULTS_TABLE_ID)
                self.trail.push(f"Order data HTML rows: {len(table.rows)}")
                csos = [row.cso for row in extract_order_rows(html)]
                if csos:
                    state = FetchState.PER_CSO
                    continue
                banner = extract_message_display(html)
                if banner:
                    self.trail.push(f"Order data message: {banner}")
                if self.browser is not None:
                    state = FetchState.BROWSER
                else:
                    self.trail.push("Order data HTML returned no CSOs")
                    state = FetchState.DAILY_SPLIT

            elif state is FetchState.BROWSER:
                csos = await self._browser_csos(chunk)
                if csos:
                    state = FetchState.PER_CSO
                else:
                    self.trail.push("Order data HTML returned no CSOs")
                    state = FetchState.DAILY_SPLIT

            elif state is FetchState.DAILY_SPLIT:
                if chunk.days > 1:
                    self.trail.push("Splitting HTML range into daily queries")
                    for day in chunk.single_days():
                        csos.extend(row.cso for row in extract_order_rows(await self.request_html(day)))
                if csos:
                    state = FetchState.PER_CSO
                else:
                    self.trail.push("Order data HTML daily split returned no CSOs")
                    state = FetchState.DONE

            elif state is FetchState.PER_CSO:
                await self._per_cso(chunk, csos, outcome)
                state = FetchState.DONE

        outcome.states.append(FetchState.DONE)
        return outcome

    async def _per_cso(self, chunk: DateChunk, csos: List[str], outcome: ChunkOutcome) -> None:
        unique = list(dict.fromkeys(csos))
        cap = self.config.max_csos_per_chunk
        limited = unique[:cap] if cap > 0 else unique
        suffix = f" (limited to {len(limited)})" if cap > 0 else ""
        self.trail.push(f"Order data CSOs: {len(unique)}{suffix}")
        outcome.csos = limited
        for cso in limited:
            outcome.per_cso_requests += 1
            orders = decode_order_json(await self.request_json(chunk, cso=cso), cso=cso)
            if not orders:
                self.trail.push(f"Order data JSON empty for CSO {cso}")
                continue
            outcome.orders.extend(orders)
