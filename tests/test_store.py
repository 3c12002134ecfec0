from __future__ import annotations

import json

import pytest

from ge_sync.common.store import dedupe_rows
from ge_sync.errors import PersistenceError

ORDER_KEY = ("cso", "location_id")


def _order(cso: str, name: str, location_id: str = "loc") -> dict:
    return {"cso": cso, "company_id": "co", "location_id": location_id, "customer_name": name}


def test_dedupe_rows_keeps_last_row_in_first_seen_order() -> None:
    rows = [_order("1", "a"), _order("2", "b"), _order("1", "c")]

    deduped = dedupe_rows(rows, ORDER_KEY)

    assert [(row["cso"], row["customer_name"]) for row in deduped] == [("1", "c"), ("2", "b")]


@pytest.mark.asyncio
async def test_upsert_batches_and_updates_in_place(store, log_stream) -> None:
    written = await store.upsert(
        "orders",
        [_order("1", "a"), _order("2", "b"), _order("3", "c"), _order("1", "a2")],
        on_conflict=ORDER_KEY,
    )
    assert written == 3

    await store.upsert("orders", [_order("2", "b2")], on_conflict=ORDER_KEY)

    rows = await store.select("orders", ["id", "cso", "customer_name"])
    by_cso = {row["cso"]: row for row in rows}
    assert len(rows) == 3
    assert by_cso["1"]["customer_name"] == "a2"
    assert by_cso["2"]["customer_name"] == "b2"

    events = [json.loads(line) for line in log_stream.getvalue().splitlines()]
    complete = [event for event in events if event.get("message") == "upsert complete"]
    assert complete[0]["duplicates_dropped"] == 1


@pytest.mark.asyncio
async def test_upsert_rows_with_different_column_sets(store) -> None:
    await store.upsert(
        "orders",
        [_order("1", "a"), {"cso": "2", "company_id": "co", "location_id": "loc"}],
        on_conflict=ORDER_KEY,
    )

    rows = await store.select("orders", ["cso", "customer_name"], where_in={"cso": ["1", "2"]})

    assert sorted((row["cso"], row["customer_name"]) for row in rows) == [("1", "a"), ("2", None)]


@pytest.mark.asyncio
async def test_select_filters(store) -> None:
    await store.upsert(
        "orders",
        [_order("1", "a"), _order("2", "b"), _order("3", "c", location_id="other")],
        on_conflict=ORDER_KEY,
    )

    assert await store.select("orders", ["cso"], where_in={"cso": []}) == []
    local = await store.select("orders", ["cso"], where={"location_id": "loc"})
    assert sorted(row["cso"] for row in local) == ["1", "2"]
    elsewhere = await store.select("orders", ["cso"], where_not={"location_id": "loc"})
    assert [row["cso"] for row in elsewhere] == ["3"]


@pytest.mark.asyncio
async def test_update_by_ids(store) -> None:
    await store.upsert("orders", [_order("1", "a"), _order("2", "b"), _order("3", "c")], on_conflict=ORDER_KEY)
    rows = await store.select("orders", ["id", "cso"])
    ids = [row["id"] for row in rows if row["cso"] != "2"]

    updated = await store.update_by_ids("orders", {"customer_name": "gone"}, ids)

    assert updated == 2
    names = {row["cso"]: row["customer_name"] for row in await store.select("orders", ["cso", "customer_name"])}
    assert names == {"1": "gone", "2": "b", "3": "gone"}
    assert await store.update_by_ids("orders", {"customer_name": "x"}, []) == 0


@pytest.mark.asyncio
async def test_delete_where_removes_only_matching_rows(store, log_stream) -> None:
    await store.upsert(
        "orders",
        [_order("1", "a"), _order("2", "b"), _order("1", "c", location_id="other")],
        on_conflict=ORDER_KEY,
    )

    deleted = await store.delete_where("orders", {"location_id": "loc", "cso": "1"})

    assert deleted == 1
    remaining = await store.select("orders", ["cso", "location_id"])
    assert sorted((row["cso"], row["location_id"]) for row in remaining) == [("1", "other"), ("2", "loc")]
    events = [json.loads(line) for line in log_stream.getvalue().splitlines()]
    assert any(event.get("message") == "delete complete" and event.get("rows") == 1 for event in events)
    with pytest.raises(ValueError):
        await store.delete_where("orders", {})



@pytest.mark.asyncio
async def test_failed_chunk_raises_persistence_error(store) -> None:
    with pytest.raises(PersistenceError) as excinfo:
        await store.upsert("orders", [{"cso": "1", "location_id": "loc"}], on_conflict=ORDER_KEY)

    assert excinfo.value.table == "orders"
    assert str(excinfo.value).startswith("orders upsert failed: ")
