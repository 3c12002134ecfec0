from datetime import date, datetime, timezone

from ge_sync.parsers.orders import build_rows, order_list, parse_orders

ORDER = {
    "cso": "1234567890",
    "order_type": "SALES",
    "order_date": "20250110",
    "customer_name": "Jane Doe",
    "points": "12.5",
    "delivery": [
        {
            "delivery_id": "D1",
            "delivery_status": "OPEN",
            "delivery_date": "2025-01-20",
            "delivery_phone": "555-0100",
            "last_updated_date": "20250112 03:04:05 PM",
            "product": [
                {
                    "shipment_number": "A1234567",
                    "customer_tracking_number": "TRK1",
                    "line": [
                        {
                            "line_number": "1",
                            "line_status": "SHIPPED",
                            "model_accessory": {
                                "item": "GTW465ASNWW",
                                "product_type": "WASHER",
                                "quantity": "1",
                                "points": "3",
                                "product_weight": "150",
                                "assigned_serials": ["ZA123456", ""],
                            },
                        },
                        {"line_status": "SKIPPED"},
                    ],
                }
            ],
            "service": {
                "customer_tracking_number": "TRK-S",
                "line": {"line_number": "2", "item": "HAULAWAY", "quantity": "1"},
            },
        },
        {"delivery_status": "NO ID"},
    ],
}


def test_order_list_tolerates_odd_payloads() -> None:
    assert order_list(None) == []
    assert order_list({"order": None}) == []
    assert order_list({"order": {"cso": "1"}}) == [{"cso": "1"}]
    assert order_list({"order": [{"cso": "1"}, "junk"]}) == [{"cso": "1"}]


def test_parse_orders_builds_nested_records() -> None:
    (order,) = parse_orders([ORDER])

    assert order.order_date == date(2025, 1, 10)
    assert order.points == 12.5
    (delivery,) = order.deliveries
    assert delivery.delivery_date == date(2025, 1, 20)
    assert delivery.delivery_phone == ["555-0100"]
    assert delivery.last_updated_date == datetime(2025, 1, 12, 15, 4, 5, tzinfo=timezone.utc)
    (product,) = delivery.product_lines
    assert product.item == "GTW465ASNWW"
    assert product.shipment_number == "A1234567"
    assert product.serials == ["ZA123456"]
    (service,) = delivery.service_lines
    assert service.item == "HAULAWAY"
    assert service.customer_tracking_number == "TRK-S"


def test_parse_orders_keeps_last_occurrence_of_a_cso() -> None:
    first = {"cso": "1", "customer_name": "Old"}
    second = {"cso": "1", "customer_name": "New"}

    orders = parse_orders([first, {"cso": ""}, second])

    assert [(order.cso, order.customer_name) for order in orders] == [("1", "New")]


def test_build_rows_flattens_into_three_tables() -> None:
    now = datetime(2025, 1, 15, tzinfo=timezone.utc)

    order_rows, delivery_rows, line_rows = build_rows(
        parse_orders([ORDER]), company_id="co", location_id="loc", now=now
    )

    assert order_rows[0]["cso"] == "1234567890"
    assert "deliveries" not in order_rows[0]
    assert order_rows[0]["location_id"] == "loc"
    assert delivery_rows[0]["delivery_id"] == "D1"
    assert "product_lines" not in delivery_rows[0]
    product_row, service_row = line_rows
    assert product_row["line_type"] == "product"
    assert product_row["cso"] == "1234567890"
    assert product_row["serials"] == ["ZA123456"]
    assert service_row["line_type"] == "service"
    assert service_row["serials"] == []
    assert service_row["product_type"] is None
    assert set(product_row) == set(service_row)
