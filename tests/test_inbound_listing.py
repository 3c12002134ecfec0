from ge_sync.parsers.inbound import (
    asn_items,
    normalize_shipment_no,
    parse_inbound_asn,
    parse_inbound_history,
    parse_summary_table,
)

LISTING = """
<form>
  <input type="hidden" name="dmsLoc" value="19SU">
  <input type="hidden" name="selScacVal" value="PAGE">
  <input type="hidden" id="eachRowShipmentList_0" value="0">
  <input type="hidden" id="shipmentNum_0_0" value="A1111111 - 1">
  <input type="hidden" id="mpOrgCode_0" value="MP1">
  <input type="hidden" id="scac_0" value="ABCD">
  <input type="hidden" id="eachRowShipmentList_1" value="1">
  <input type="hidden" id="shipmentNum_1_0" value="A2222222">
  <input type="hidden" id="shipmentNum_1_1" value="A3333333">
  <input type="hidden" id="truckNumber_2" value="T9">
  <select name="daysBeforeDate"><option value="30" selected>30</option></select>
</form>
<table id="tb_list_inboundSummary">
  <tr><th>Inbound Shipment #</th><th>Units</th><th>Points</th></tr>
  <tr><td>A1111111-1</td><td>4</td><td>10.5</td></tr>
  <tr><td>A3333333</td><td>n/a</td><td>1,200</td></tr>
  <tr><td>A1111111</td><td>99</td><td>0</td></tr>
</table>
"""


def test_normalize_shipment_no() -> None:
    assert normalize_shipment_no(" A1234567-2 ") == "A1234567"
    assert normalize_shipment_no("XYZ - 3") == "XYZ"
    assert normalize_shipment_no("") == ""


def test_summary_table_first_row_per_shipment_wins() -> None:
    summary = parse_summary_table(LISTING)

    assert summary["A1111111"] == (4, 10.5)
    assert summary["A3333333"] == (None, 1200.0)


def test_summary_table_skips_placeholder_rows() -> None:
    html = """
    <table id="tb_list_inboundSummary">
      <tr><th>Inbound Shipment</th><th>Units</th></tr>
      <tr><td colspan="2">No rows were found</td></tr>
    </table>
    """

    assert parse_summary_table(html) == {}


def test_history_rows_correlate_hidden_inputs_with_summary() -> None:
    listing = parse_inbound_history(LISTING)

    assert listing.total_rows == 3
    assert [row.shipment_number for row in listing.rows] == ["A1111111", "A3333333"]
    first, second = listing.rows
    assert first.line_id == 0
    assert first.mp_org_code == "MP1"
    assert first.scac == "ABCD"
    assert first.summary_units == 4
    assert second.scac == "PAGE"
    assert second.summary_points == 1200.0
    assert listing.inputs["dmsLoc"] == "19SU"
    assert listing.inputs["daysBeforeDate"] == "30"


def test_form_overrides_carry_the_row_selection() -> None:
    row = parse_inbound_history(LISTING).rows[1]

    overrides = row.form_overrides()

    assert overrides["rowRecNo"] == "1"
    assert overrides["selShipmentNumVal"] == "A3333333"
    assert overrides["selScacVal"] == "PAGE"


ASN_RESULTS = """
<table><tr><th>Legend</th></tr><tr><td>Open</td></tr></table>
<table>
  <tr><th>ERP Shipment</th><th>CSO</th><th>Tracking #</th><th>Tracking # Status</th><th>Model</th><th>Serial</th></tr>
  <tr><td>A1111111</td><td>C1</td><td>T1</td><td>2</td><td>M1</td><td>S1</td></tr>
  <tr><td>A1111111</td><td>C2</td><td>T2</td><td>Shipped</td><td>M2</td><td></td></tr>
</table>
"""


def test_asn_table_is_found_by_its_shipment_header() -> None:
    table = parse_inbound_asn(ASN_RESULTS)

    assert table.headers[0] == "ERP Shipment"
    assert len(table.rows) == 2


def test_asn_placeholder_row_is_dropped() -> None:
    html = "<table><tr><th>ERP Shipment</th><th>CSO</th></tr><tr><td colspan='2'>No rows were found.</td></tr></table>"

    table = parse_inbound_asn(html)

    assert table.headers == ["ERP Shipment", "CSO"]
    assert table.rows == []
    assert parse_inbound_asn("<p>session expired</p>").headers == []


def test_asn_items_map_columns_by_header() -> None:
    items = asn_items(parse_inbound_asn(ASN_RESULTS))

    assert [(item.line_index, item.cso, item.tracking_number, item.model) for item in items] == [
        (0, "C1", "T1", "M1"),
        (1, "C2", "T2", "M2"),
    ]
    assert items[0].qty == 2
    assert items[1].qty is None
    assert items[0].serial == "S1"
    assert items[1].serial is None
    assert items[1].raw_line == "A1111111 | C2 | T2 | Shipped | M2 | "
