from __future__ import annotations

import json
from datetime import date
from typing import Mapping

import pytest
import sqlalchemy as sa

from ge_sync.config import SyncConfig
from ge_sync.dms.client import DmsResponse
from ge_sync.dms.endpoints import DmsEndpoints
from ge_sync.sync.order_fetch import (
    DateChunk,
    DateRange,
    FetchState,
    OrderDataFetcher,
    decode_order_json,
    plan_chunks,
    plan_ranges,
)
from ge_sync.sync.orders import sync_orders
from ge_sync.sync.result import SyncTrail

TODAY = date(2025, 1, 15)
CSOS = ["1000000001", "1000000002", "1000000003"]

SEARCH_PAGE = """
<form>
  <input type="hidden" name="csrfToken" value="tok">
  <input type="radio" name="radShowOrders" value="ALL" checked onclick="ClickShowOrders('a')">
  <select name="jsonDataVersion"><option value="V2" selected>V2</option></select>
</form>
"""

RESULTS_PAGE = (
    "<table id='table_list'><tr><th>CSO</th></tr>"
    + "".join(f"<tr><td>{cso}</td></tr>" for cso in CSOS)
    + "</table>"
    + "".join(f"<input type='hidden' id='orderNumber{i}' value='{cso}'>" for i, cso in enumerate(CSOS))
)


def _response(url: str, body: str, content_type: str = "text/html") -> DmsResponse:
    return DmsResponse(url=url, status=200, status_text="OK", content_type=content_type, body=body.encode())


def _order_json(cso: str) -> str:
    return json.dumps(
        {
            "order": [
                {
                    "cso": cso,
                    "customer_name": f"Customer {cso[-1]}",
                    "delivery": [
                        {
                            "delivery_id": f"D{cso[-1]}",
                            "product": [
                                {
                                    "line": [
                                        {
                                            "line_number": "1",
                                            "model_accessory": {"item": "GTW465ASNWW", "assigned_serials": ["Z1"]},
                                        }
                                    ]
                                }
                            ],
                        }
                    ],
                }
            ]
        }
    )


def _config(database_url: str, **overrides) -> SyncConfig:
    settings = dict(company_id="co", days_back=0, days_forward=1, browser_fallback=False, database_url=database_url)
    settings.update(overrides)
    return SyncConfig(**settings)


def _route_empty_chunk_then_per_cso(dms_client, endpoints: DmsEndpoints) -> None:
    def json_download(form: Mapping[str, str]) -> DmsResponse:
        cso = form.get("hCso", "")
        if not cso:
            return _response(endpoints.order_data_json, "", content_type="application/json")
        return _response(endpoints.order_data_json, _order_json(cso), content_type="application/json")

    dms_client.route("GET", endpoints.order_data, _response(endpoints.order_data, SEARCH_PAGE))
    dms_client.route("POST", endpoints.order_data, _response(endpoints.order_data, RESULTS_PAGE))
    dms_client.route("POST", endpoints.order_data_json, json_download)


def test_plan_ranges_and_chunks() -> None:
    config = SyncConfig(days_back=10, days_forward=5, max_days_per_request=4)

    ranges = plan_ranges(config, TODAY)

    assert [(r.label, r.start, r.days) for r in ranges] == [
        ("past", date(2025, 1, 5), 10),
        ("future", TODAY, 5),
    ]
    chunks = plan_chunks(ranges[0], config.max_days_per_request)
    assert [(chunk.start_text, chunk.days) for chunk in chunks] == [
        ("01-05-2025", 4),
        ("01-09-2025", 4),
        ("01-13-2025", 2),
    ]


def test_plan_ranges_ui_mode() -> None:
    config = SyncConfig(use_ui_range=True, ui_start_date=date(2025, 2, 1), ui_days=7)

    assert plan_ranges(config, TODAY) == [DateRange(label="ui", start=date(2025, 2, 1), days=7)]


def test_decode_order_json_rejects_html_and_garbage() -> None:
    from ge_sync.errors import UpstreamContentError, UpstreamPayloadError

    assert decode_order_json(_response("u", "   ")) is None
    with pytest.raises(UpstreamContentError, match="Order data JSON returned HTML"):
        decode_order_json(_response("u", "<html>login</html>"))
    with pytest.raises(UpstreamPayloadError):
        decode_order_json(_response("u", "{not json"))
    assert decode_order_json(_response("u", '{"order": []}')) == []


@pytest.mark.asyncio
async def test_empty_chunk_escalates_to_per_cso_requests(dms_client, json_logger, database_url) -> None:
    config = _config(database_url)
    endpoints = DmsEndpoints(config.dms_base_url)
    _route_empty_chunk_then_per_cso(dms_client, endpoints)
    fetcher = OrderDataFetcher(
        client=dms_client,
        config=config,
        location_id="loc",
        dms_loc=config.order_dms_loc,
        trail=SyncTrail(json_logger, flow="orders"),
    )

    outcome = await fetcher.fetch_chunk(DateChunk(start=TODAY, days=1))

    assert outcome.states == [FetchState.JSON, FetchState.HTML, FetchState.PER_CSO, FetchState.DONE]
    assert outcome.per_cso_requests == 3
    assert [order["cso"] for order in outcome.orders] == CSOS
    assert "Order data CSOs: 3" in fetcher.trail.lines
    per_cso_forms = [form for form in dms_client.posts_to(endpoints.order_data_json) if form["hCso"]]
    assert [form["orderCSO"] for form in per_cso_forms] == CSOS
    assert per_cso_forms[0]["csrfToken"] == "tok"
    assert per_cso_forms[0]["jsonDataVersion"] == "V2"
    assert per_cso_forms[0]["txtOrderDate"] == "01-15-2025"


@pytest.mark.asyncio
async def test_sync_orders_upserts_and_second_run_adds_nothing(
    dms_client, session_provider, store, json_logger, database_url
) -> None:
    config = _config(database_url)
    _route_empty_chunk_then_per_cso(dms_client, DmsEndpoints(config.dms_base_url))

    first = await sync_orders(
        "loc", config=config, session=session_provider, store=store, logger=json_logger, client=dms_client, today=TODAY
    )

    assert first.success, first.error
    assert "Order data CSOs: 3" in first.log
    assert "Orders upserted: 3" in first.log
    assert first.counters["perCsoRequests"] == 3
    assert first.stats.new_items == 3

    second = await sync_orders(
        "loc", config=config, session=session_provider, store=store, logger=json_logger, client=dms_client, today=TODAY
    )

    assert second.success, second.error
    assert second.stats.new_items == 0
    assert second.stats.updated_items == 3

    engine = sa.create_engine(database_url.replace("+aiosqlite", ""))
    with engine.connect() as connection:
        orders = connection.execute(sa.text("SELECT COUNT(*) FROM orders")).scalar_one()
        lines = connection.execute(sa.text("SELECT COUNT(*) FROM order_lines")).scalar_one()
    engine.dispose()
    assert (orders, lines) == (3, 3)
    assert "Recorded orders sync time for location loc" in second.log
    engine = sa.create_engine(database_url.replace("+aiosqlite", ""))
    with engine.connect() as connection:
        status = connection.execute(sa.text("SELECT location_id, sync_type FROM sync_status")).all()
    engine.dispose()
    assert [tuple(row) for row in status] == [("loc", "orders")]


@pytest.mark.asyncio
async def test_html_where_json_expected_fails_the_sync(
    dms_client, session_provider, store, json_logger, database_url
) -> None:
    config = _config(database_url)
    endpoints = DmsEndpoints(config.dms_base_url)
    dms_client.route("GET", endpoints.order_data, _response(endpoints.order_data, SEARCH_PAGE))
    dms_client.route("POST", endpoints.order_data_json, _response(endpoints.order_data_json, "<html>Sign in</html>"))

    result = await sync_orders(
        "loc", config=config, session=session_provider, store=store, logger=json_logger, client=dms_client, today=TODAY
    )

    assert not result.success
    assert "Order data JSON returned HTML" in result.error
    assert result.log[-1] == f"Error: {result.error}"
    assert result.as_dict()["stats"]["newItems"] == 0


@pytest.mark.asyncio
async def test_missing_company_is_reported_not_raised(dms_client, session_provider, store, json_logger) -> None:
    result = await sync_orders(
        "loc",
        config=SyncConfig(browser_fallback=False),
        session=session_provider,
        store=store,
        logger=json_logger,
        client=dms_client,
        today=TODAY,
    )

    assert not result.success
    assert "GE_SYNC_COMPANY_ID" in result.error


class _CrashingBrowser:
    def __init__(self) -> None:
        self.calls = 0

    async def fetch_order_html(self, *, location_id: str, dms_loc: str, start_date: str, days: int) -> str:
        self.calls += 1
        raise RuntimeError("browser crashed")


NO_RESULTS_PAGE = (
    "<div class='messageDisplay'> No orders found for the selected criteria </div>"
    "<table id='table_list'><tr><th>CSO</th></tr></table>"
)


@pytest.mark.asyncio
async def test_browser_failure_falls_through_to_daily_split(dms_client, json_logger, database_url) -> None:
    config = _config(database_url, browser_fallback=True)
    endpoints = DmsEndpoints(config.dms_base_url)
    found_cso = CSOS[1]

    def html_search(form: Mapping[str, str]) -> DmsResponse:
        if form["txtNumberOfDays"] == "1" and form["txtOrderDate"] == "01-16-2025":
            return _response(
                endpoints.order_data,
                f"<table id='table_list'><tr><th>CSO</th></tr><tr><td>{found_cso}</td></tr></table>"
                f"<input type='hidden' id='orderNumber0' value='{found_cso}'>",
            )
        return _response(endpoints.order_data, NO_RESULTS_PAGE)

    def json_download(form: Mapping[str, str]) -> DmsResponse:
        cso = form.get("hCso", "")
        return _response(endpoints.order_data_json, _order_json(cso) if cso else "", content_type="application/json")

    dms_client.route("GET", endpoints.order_data, _response(endpoints.order_data, SEARCH_PAGE))
    dms_client.route("POST", endpoints.order_data, html_search)
    dms_client.route("POST", endpoints.order_data_json, json_download)
    browser = _CrashingBrowser()
    fetcher = OrderDataFetcher(
        client=dms_client,
        config=config,
        location_id="loc",
        dms_loc=config.order_dms_loc,
        trail=SyncTrail(json_logger, flow="orders"),
        browser=browser,
    )

    outcome = await fetcher.fetch_chunk(DateChunk(start=TODAY, days=3))

    assert outcome.states == [
        FetchState.JSON,
        FetchState.HTML,
        FetchState.BROWSER,
        FetchState.DAILY_SPLIT,
        FetchState.PER_CSO,
        FetchState.DONE,
    ]
    assert browser.calls == 1
    assert outcome.csos == [found_cso]
    assert outcome.per_cso_requests == 1
    assert [order["cso"] for order in outcome.orders] == [found_cso]
    lines = fetcher.trail.lines
    assert "Order data message: No orders found for the selected criteria" in lines
    assert "Order data Playwright failed: browser crashed" in lines
    assert "Splitting HTML range into daily queries" in lines
    daily_forms = [form for form in dms_client.posts_to(endpoints.order_data) if form["txtNumberOfDays"] == "1"]
    assert [form["txtOrderDate"] for form in daily_forms] == ["01-15-2025", "01-16-2025", "01-17-2025"]


@pytest.mark.asyncio
async def test_search_page_server_error_fails_the_sync(
    dms_client, session_provider, store, json_logger, database_url
) -> None:
    config = _config(database_url)
    endpoints = DmsEndpoints(config.dms_base_url)
    dms_client.route(
        "GET",
        endpoints.order_data,
        DmsResponse(
            url=endpoints.order_data,
            status=500,
            status_text="Internal Server Error",
            content_type="text/html",
            body=b"<html>Oops</html>",
        ),
    )

    result = await sync_orders(
        "loc", config=config, session=session_provider, store=store, logger=json_logger, client=dms_client, today=TODAY
    )

    assert not result.success
    assert result.error.startswith("500 Internal Server Error for ")
    assert dms_client.posts_to(endpoints.order_data_json) == []
    engine = sa.create_engine(database_url.replace("+aiosqlite", ""))
    with engine.connect() as connection:
        status = connection.execute(sa.text("SELECT COUNT(*) FROM sync_status")).scalar_one()
    engine.dispose()
    assert status == 0
