from ge_sync.extract.html import (
    extract_embedded_json,
    extract_hidden_inputs,
    extract_inputs,
    extract_message_display,
    extract_order_rows,
    extract_radio_selection,
    extract_selected_option,
    extract_selected_values,
    find_table,
    parse_html_table,
)

SEARCH_PAGE = """
<form>
  <input type="hidden" name="hDmsLoc" id="hDmsLocId" value="19SU">
  <input type="text" name="txtOrderDate" value="01-15-2025">
  <input type="radio" name="radShowOrders" value="ALL" onclick="ClickShowOrders('a')">
  <input type="radio" name="radShowOrders" value="OPEN" checked onclick="ClickShowOrders('o')">
  <input type="radio" name="radShowStatus" value="ALL" onclick="doSomething()">
  <select name="jsonDataVersion">
    <option value="V1">Version 1</option>
    <option value="V2" selected>Version 2</option>
  </select>
  <select name="cbDmsLoc">
    <option value="19SU">19SU</option>
    <option value="20AB">20AB</option>
  </select>
</form>
"""


def test_extract_inputs_keeps_named_inputs_only() -> None:
    inputs = extract_inputs(SEARCH_PAGE)

    assert inputs["hDmsLoc"] == "19SU"
    assert inputs["txtOrderDate"] == "01-15-2025"
    assert "hDmsLocId" not in inputs


def test_extract_hidden_inputs_indexes_by_name_and_id() -> None:
    inputs = extract_hidden_inputs(SEARCH_PAGE)

    assert inputs["hDmsLoc"] == "19SU"
    assert inputs["hDmsLocId"] == "19SU"


def test_radio_selection_reads_checked_value_and_onclick_argument() -> None:
    selection = extract_radio_selection(SEARCH_PAGE, "radShowOrders")

    assert selection.radio_value == "OPEN"
    assert selection.hidden_value == "o"


def test_radio_without_checked_option_yields_nothing() -> None:
    selection = extract_radio_selection(SEARCH_PAGE, "radShowStatus")

    assert selection.radio_value is None
    assert selection.hidden_value is None


def test_selected_option_prefers_selected_then_first() -> None:
    assert extract_selected_option(SEARCH_PAGE, "jsonDataVersion") == "V2"
    assert extract_selected_option(SEARCH_PAGE, "cbDmsLoc") == "19SU"
    assert extract_selected_option(SEARCH_PAGE, "missing") is None


def test_selected_values_cover_every_named_select() -> None:
    assert extract_selected_values(SEARCH_PAGE) == {"jsonDataVersion": "V2", "cbDmsLoc": "19SU"}


def test_parse_html_table_returns_headers_and_rows() -> None:
    html = """
    <table id="table_list">
      <tr><th>CSO</th><th> Delivery   Date </th></tr>
      <tr><td>1234567890</td><td>01/15/2025</td></tr>
      <tr><td>1234567891</td></tr>
    </table>
    """
    table = parse_html_table(html, "table_list")

    assert table.headers == ["CSO", "Delivery Date"]
    assert table.rows == [["1234567890", "01/15/2025"], ["1234567891"]]
    assert table.column("delivery") == 1
    assert table.column("nope") == -1
    assert table.records()[1] == {"CSO": "1234567891", "Delivery Date": ""}


def test_missing_table_is_empty() -> None:
    table = parse_html_table("<div>nothing here</div>", "table_list")

    assert table.headers == []
    assert table.rows == []


def test_malformed_markup_does_not_raise() -> None:
    broken = "<table id='table_list'><tr><td>1<td>2</tr"

    assert parse_html_table(broken, "absent").rows == []
    assert extract_inputs("<input name=") == {}
    assert extract_radio_selection(None, "anything").radio_value is None


def test_find_table_matches_on_headers() -> None:
    html = """
    <table><tr><th>Other</th></tr></table>
    <table><tr><th>Inbound Shipment</th><th>Units</th></tr><tr><td>A1234567</td><td>4</td></tr></table>
    """
    table = find_table(html, lambda candidate: candidate.column("inbound shipment") >= 0)

    assert table.rows == [["A1234567", "4"]]


def test_extract_order_rows_pairs_companion_fields() -> None:
    html = """
    <input type="hidden" id="orderNumber0" value="1111111111">
    <input type="hidden" id="trackingNumber0" value="TRK0">
    <input type="hidden" id="deliveryNumber0" value="D0">
    <input type="hidden" id="orderNumber1" value=" ">
    <input type="hidden" id="orderNumber2" value="2222222222">
    """
    rows = extract_order_rows(html)

    assert [row.cso for row in rows] == ["1111111111", "2222222222"]
    assert rows[0].tracking_number == "TRK0"
    assert rows[0].delivery_number == "D0"
    assert rows[1].index == 2
    assert rows[1].tracking_number == ""


def test_message_display_banner() -> None:
    assert extract_message_display('<div class="messageDisplay"> No  records </div>') == "No records"
    assert extract_message_display("<div></div>") is None


def test_embedded_json_raw_pre_and_script() -> None:
    assert extract_embedded_json('[{"a": 1}]') == [{"a": 1}]
    assert extract_embedded_json('<html><body><pre>{"data": []}</pre></body></html>') == {"data": []}
    assert extract_embedded_json('<script type="application/json">[1, 2]</script>') == [1, 2]
    assert extract_embedded_json("<html>not json</html>") is None
    assert extract_embedded_json("") is None
