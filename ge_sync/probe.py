"""Dump one order-data round trip to disk for offline inspection."""
from __future__ import annotations

import json
from contextlib import AsyncExitStack
from datetime import date
from pathlib import Path
from typing import Dict, Optional

from ge_sync.config import SyncConfig
from ge_sync.dms.client import DmsTransport, open_dms_client
from ge_sync.dms.session import SessionProvider
from ge_sync.extract.html import parse_html_table
from ge_sync.json_logger import JsonLogger, log_event
from ge_sync.sync.order_fetch import RESULTS_TABLE_ID, DateChunk, OrderDataFetcher
from ge_sync.sync.result import SyncTrail


async def run_probe(
    location_id: str,
    *,
    config: SyncConfig,
    session: SessionProvider,
    out_dir: Path,
    logger: JsonLogger,
    client: DmsTransport | None = None,
    start: Optional[date] = None,
    days: Optional[int] = None,
    cso: str = "",
) -> Dict[str, Path]:
    """Write the search page, the JSON POST body and the JSON/HTML answers into ``out_dir``.

    Returns the written paths keyed by artifact name.
    """

    out_dir.mkdir(parents=True, exist_ok=True)
    chunk = DateChunk(start=start or config.ui_start_date or date.today(), days=days or config.ui_days)
    written: Dict[str, Path] = {}

    def dump(name: str, filename: str, content: str) -> None:
        path = out_dir / filename
        path.write_text(content, encoding="utf-8")
        written[name] = path
        log_event(logger=logger, phase="probe", message=f"wrote {name}", path=str(path), size=len(content))

    async with AsyncExitStack() as stack:
        transport = client
        if transport is None:
            cookie_header = await session.get_cookie_header(location_id)
            transport = await stack.enter_async_context(open_dms_client(cookie_header))
        fetcher = OrderDataFetcher(
            client=transport,
            config=config.with_overrides(browser_fallback=False),
            location_id=location_id,
            dms_loc=config.order_dms_loc,
            trail=SyncTrail(logger, flow="probe"),
        )

        page_html = await fetcher.search_page()
        dump("search_page", "orderdata_page.html", page_html)
        form = fetcher.form_body(page_html, chunk, cso=cso, for_json=True)
        dump("post_body", "orderdata_post_body.json", json.dumps(form, indent=2, sort_keys=True))

        response = await transport.post_form(
            fetcher.endpoints.order_data_json, form, referer=fetcher.endpoints.order_data
        )
        log_event(
            logger=logger,
            phase="probe",
            message="order data JSON response",
            status_code=response.status,
            content_type=response.content_type,
            size=len(response.body),
        )
        dump("json", "orderdata.json", response.text)

        html = await fetcher.request_html(chunk)
        dump("html", "orderdata_results.html", html)
        log_event(
            logger=logger,
            phase="probe",
            message="order data HTML rows",
            rows=len(parse_html_table(html, RESULTS_TABLE_ID).rows),
        )
    return written
