from datetime import datetime, timezone
from pathlib import Path

import openpyxl

from ge_sync.parsers.asis import document_rows, parse_inventory, parse_load_items, parse_loads
from ge_sync.parsers.snapshot import header_positions, parse_snapshot_rows, read_snapshot


def test_document_rows_unwraps_common_envelopes() -> None:
    assert document_rows('[{"a": 1}, 2]') == [{"a": 1}]
    assert document_rows('{"data": [{"a": 1}]}') == [{"a": 1}]
    assert document_rows('<html><pre>{"rows": [{"b": 2}]}</pre></html>') == [{"b": 2}]
    assert document_rows('{"unexpected": true}') == []
    assert document_rows(None) == []


def test_parse_inventory_reads_display_headers() -> None:
    rows = parse_inventory(
        [{"Model #": " GTW465ASNWW ", "Serial #": "ZA1", "Inv Qty": "2", "Availability Status": "Available"}]
    )

    assert rows[0].model == "GTW465ASNWW"
    assert rows[0].serial == "ZA1"
    assert rows[0].inv_qty == 2
    assert rows[0].availability_message is None


def test_parse_loads_merges_load_list_into_report_history() -> None:
    history = [
        {"Load Number": "L1", "Status": "FOR SALE", "Units": "3", "Submitted Date": "2025-01-02"},
        {"Load Number": "L2", "Status": "SOLD", "CSO Status": "Picked", "CSO": "999"},
        {"Load Number": "L3", "Status": "SOLD", "CSO Status": "Delivered"},
        {"Status": "FOR SALE"},
    ]
    load_data = [
        {"Load Number": "L1", "Notes": "dock 4", "Scanned Date/Time": "2025-01-05 10:00", "Status": "SCANNED"},
        {"Load Number": "L9", "Notes": "unknown load"},
    ]

    loads = {load.load_number: load for load in parse_loads(history, load_data)}

    assert set(loads) == {"L1", "L2", "L3"}
    assert loads["L1"].is_for_sale and loads["L1"].on_floor
    assert loads["L1"].notes == "dock 4"
    assert loads["L1"].source_status == "SCANNED"
    assert loads["L1"].source_timestamp == datetime(2025, 1, 5, 10, 0, tzinfo=timezone.utc)
    assert loads["L2"].is_picked and loads["L2"].on_floor
    assert not loads["L3"].on_floor
    assert loads["L3"].source_timestamp is None


def test_parse_load_items_inherits_load_timestamp() -> None:
    (load,) = parse_loads([{"Load Number": "L1", "Status": "FOR SALE", "Submitted Date": "2025-01-02"}], [])

    items = parse_load_items(load, [{"SERIALS": "ZA1", "MODELS": "M1", "QTY": "1", "ORDC": "X"}], batch_index=3)

    assert items[0].load_number == "L1"
    assert items[0].serial == "ZA1"
    assert items[0].batch_index == 3
    assert items[0].source_timestamp == datetime(2025, 1, 2, tzinfo=timezone.utc)


def test_snapshot_header_variants() -> None:
    positions = header_positions(["Serial #", "MODEL", "Inv_Qty", "Ignored", "Load Number"])

    assert positions == {"serial": 0, "model": 1, "qty": 2, "sub_inventory": 4}


def test_snapshot_rows_validate_and_report_bad_quantities() -> None:
    result = parse_snapshot_rows(
        [
            ("Model #", "Serial #", "Inv Qty"),
            ("M1", "S1", "2"),
            (None, None, None),
            ("M2", "S2", "lots"),
            ("M3", " S3 ", None),
        ]
    )

    assert [(row.model, row.serial, row.qty) for row in result.rows] == [("M1", "S1", 2), ("M3", "S3", None)]
    assert len(result.invalid) == 1
    assert result.invalid[0].startswith("row 4:")


def test_read_snapshot_from_csv_and_xlsx(tmp_path: Path) -> None:
    csv_path = tmp_path / "snapshot.csv"
    csv_path.write_text("Model #,Serial #,Inv Qty\nM1,S1,1\n", encoding="utf-8")

    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.append(["Model #", "Serial #", "Availability Status"])
    sheet.append(["M2", "S2", "Reserved"])
    xlsx_path = tmp_path / "snapshot.xlsx"
    workbook.save(xlsx_path)

    assert [row.serial for row in read_snapshot(csv_path).rows] == ["S1"]
    (row,) = read_snapshot(xlsx_path).rows
    assert (row.model, row.serial, row.availability_status) == ("M2", "S2", "Reserved")
