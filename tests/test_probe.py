from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from ge_sync.config import SyncConfig
from ge_sync.dms.client import DmsResponse
from ge_sync.dms.endpoints import DmsEndpoints
from ge_sync.probe import run_probe

SEARCH_PAGE = """
<form>
  <input type="hidden" name="csrfToken" value="tok">
  <input type="radio" name="radShowOrders" value="ALL" checked onclick="ClickShowOrders('a')">
</form>
"""
RESULTS_PAGE = "<table id='table_list'><tr><th>CSO</th></tr><tr><td>1000000001</td></tr></table>"


def _response(url: str, body: str, content_type: str = "text/html") -> DmsResponse:
    return DmsResponse(url=url, status=200, status_text="OK", content_type=content_type, body=body.encode())


@pytest.mark.asyncio
async def test_probe_writes_each_artifact(tmp_path: Path, dms_client, session_provider, json_logger) -> None:
    config = SyncConfig(dms_base_url="https://dms.example.test")
    endpoints = DmsEndpoints(config.dms_base_url)
    dms_client.route("GET", endpoints.order_data, _response(endpoints.order_data, SEARCH_PAGE))
    dms_client.route(
        "POST",
        endpoints.order_data_json,
        _response(endpoints.order_data_json, '{"order": []}', content_type="application/json"),
    )
    dms_client.route("POST", endpoints.order_data, _response(endpoints.order_data, RESULTS_PAGE))

    written = await run_probe(
        "loc",
        config=config,
        session=session_provider,
        out_dir=tmp_path / "probe",
        logger=json_logger,
        client=dms_client,
        start=date(2025, 1, 15),
        days=3,
        cso="1000000001",
    )

    assert set(written) == {"search_page", "post_body", "json", "html"}
    body = json.loads(written["post_body"].read_text(encoding="utf-8"))
    assert body["txtOrderDate"] == "01-15-2025"
    assert body["txtNumberOfDays"] == "3"
    assert body["orderCSO"] == "1000000001"
    assert body["csrfToken"] == "tok"
    assert body["jsonDataVersion"] == "V2"
    assert written["json"].read_text(encoding="utf-8") == '{"order": []}'
    assert "1000000001" in written["html"].read_text(encoding="utf-8")
