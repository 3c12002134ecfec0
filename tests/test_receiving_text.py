import pytest

from ge_sync.extract.receiving_text import find_header_line, parse_header_line, parse_receiving_text
from ge_sync.parsers.receiving import ReceivingReportParseError, parse_receiving_pdf, parse_receiving_report

REPORT_TEXT = """
Receiving Report
A7654321 ABCD T-778 01/20/2025 2:05 PM 3
A7654321-1 1234567890 GTW465ASNWW ZA123456 1
A7654321-2 1234567891 GFE28GYNFS ZB654321
  2
"""


def test_header_line_tokens_around_the_date() -> None:
    header = parse_header_line("A7654321 ABCD T-778 01/20/2025 2:05 PM 3")

    assert header.shipment_number == "A7654321"
    assert header.scac == "ABCD"
    assert header.truck_number == "T-778"
    assert header.receipt_date == "01/20/2025"
    assert header.receipt_time == "2:05 PM"
    assert header.total_units == 3


def test_header_line_without_date_keeps_shipment_only() -> None:
    header = parse_header_line("Shipment A7654321")

    assert header.shipment_number == "A7654321"
    assert header.receipt_date is None
    assert header.scac is None


def test_find_header_line_prefers_dated_line() -> None:
    lines = ["A7654321-1 123 MODEL SERIAL 1", "A7654321 ABCD T1 01/20/2025"]

    assert find_header_line(lines) == "A7654321 ABCD T1 01/20/2025"
    assert find_header_line(["no shipment here"]) is None


def test_find_header_line_without_a_date_takes_first_shipment_line() -> None:
    lines = ["Receiving Report", "A7654321 ABCD T1", "A7654321-1 123 MODEL SERIAL 1"]

    assert find_header_line(lines) == "A7654321 ABCD T1"


def test_items_split_on_item_start_and_join_continuations() -> None:
    report = parse_receiving_text(REPORT_TEXT)

    assert [item.shipment for item in report.items] == ["A7654321-1", "A7654321-2"]
    first, second = report.items
    assert (first.cso, first.model, first.serial, first.qty) == ("1234567890", "GTW465ASNWW", "ZA123456", 1)
    assert (second.model, second.serial, second.qty) == ("GFE28GYNFS", "ZB654321", 2)


def test_text_fallback_used_when_layout_has_no_items() -> None:
    report = parse_receiving_report([], REPORT_TEXT)

    assert report.source == "text"
    assert len(report.final_items) == 2
    assert report.final_header.inbound_shipment_no == "A7654321"
    assert report.final_header.total_units == 3


def test_non_pdf_body_is_rejected() -> None:
    with pytest.raises(ReceivingReportParseError):
        parse_receiving_pdf(b"<html>session expired</html>")
