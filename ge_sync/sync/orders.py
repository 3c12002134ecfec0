from __future__ import annotations

from contextlib import AsyncExitStack
from datetime import date
from typing import Any, List, Mapping, Optional

from ge_sync.common.store import UpsertStore
from ge_sync.config import SyncConfig
from ge_sync.dms.browser import BrowserOrderFetcher, OrderHtmlFetcher
from ge_sync.dms.client import DmsTransport, open_dms_client
from ge_sync.dms.session import SessionProvider
from ge_sync.json_logger import JsonLogger
from ge_sync.parsers.orders import build_rows, parse_orders
from ge_sync.parsers.values import utcnow
from ge_sync.sync.order_fetch import OrderDataFetcher, format_order_date, plan_chunks, plan_ranges
from ge_sync.sync.result import SyncResult, SyncRun, run_sync
from ge_sync.sync.status import record_sync_timestamp

ORDER_CONFLICT = ("cso", "location_id")
DELIVERY_CONFLICT = ("delivery_id", "cso", "location_id")
LINE_CONFLICT = ("cso", "delivery_id", "line_number", "location_id")


async def sync_orders(
    location_id: str,
    *,
    config: SyncConfig,
    session: SessionProvider,
    store: UpsertStore,
    logger: JsonLogger,
    client: DmsTransport | None = None,
    browser: OrderHtmlFetcher | None = None,
    today: Optional[date] = None,
) -> SyncResult:
    """Pull order data for every planned date chunk and upsert orders, deliveries and lines."""

    async def body(run: SyncRun) -> None:
        trail = run.trail
        company_id = config.require_company()
        dms_loc = config.order_dms_loc
        run_day = today or date.today()

        trail.push("Starting orders sync")
        trail.push(f"Company {company_id} / Location {location_id}")
        trail.push(f"DMS location code: {dms_loc}")
        trail.push(
            f"Order window: {config.days_back} days back, {config.days_forward} days forward "
            f"({max(1, config.days_back + config.days_forward)} total)"
        )
        if config.use_ui_range:
            start = config.ui_start_date or run_day
            trail.push(f"Order UI range: {format_order_date(start)} + {config.ui_days} days")
        trail.push(f"Order data chunk size: {config.max_days_per_request} days")

        async with AsyncExitStack() as stack:
            transport = client
            if transport is None:
                cookie_header = await session.get_cookie_header(location_id)
                transport = await stack.enter_async_context(open_dms_client(cookie_header))
            fetcher = OrderDataFetcher(
                client=transport,
                config=config,
                location_id=location_id,
                dms_loc=dms_loc,
                trail=trail,
                browser=browser or BrowserOrderFetcher(config=config, session=session, logger=logger),
            )

            raw_orders: List[Mapping[str, Any]] = []
            for date_range in plan_ranges(config, run_day):
                trail.push(
                    f"Order data range ({date_range.label}): "
                    f"{format_order_date(date_range.start)} + {date_range.days} days"
                )
                for chunk in plan_chunks(date_range, config.max_days_per_request):
                    trail.push(f"Order data chunk: {chunk.start_text} + {chunk.days} days")
                    outcome = await fetcher.fetch_chunk(chunk)
                    run.count("chunks")
                    run.count("perCsoRequests", outcome.per_cso_requests)
                    raw_orders.extend(outcome.orders)

        orders = parse_orders(raw_orders)
        trail.push(f"Order data records: {len(orders)}")
        run.stats.total_ge_items = len(orders)

        existing = await store.select(
            "orders",
            ["cso"],
            where={"location_id": location_id},
            where_in={"cso": [order.cso for order in orders]},
        )
        existing_csos = {row["cso"] for row in existing}
        run.stats.updated_items = sum(1 for order in orders if order.cso in existing_csos)
        run.stats.new_items = len(orders) - run.stats.updated_items

        order_rows, delivery_rows, line_rows = build_rows(
            orders, company_id=company_id, location_id=location_id, now=utcnow()
        )
        written = await store.upsert("orders", order_rows, on_conflict=ORDER_CONFLICT)
        trail.push(f"Orders upserted: {written}")
        run.count("ordersUpserted", written)
        written = await store.upsert("order_deliveries", delivery_rows, on_conflict=DELIVERY_CONFLICT)
        trail.push(f"Deliveries upserted: {written}")
        run.count("deliveriesUpserted", written)
        written = await store.upsert("order_lines", line_rows, on_conflict=LINE_CONFLICT)
        trail.push(f"Lines upserted: {written}")
        run.count("linesUpserted", written)
        await record_sync_timestamp(store, run, company_id=company_id, location_id=location_id, sync_type="orders")

    return await run_sync("orders", logger, body)
