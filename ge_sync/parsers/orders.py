"""Order-data JSON to order, delivery and line records."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ge_sync.parsers.values import parse_date, parse_timestamp, to_int, to_number, to_text


@dataclass
class ProductLineRecord:
    line_number: str
    line_status: Optional[str] = None
    item_type: Optional[str] = None
    item: Optional[str] = None
    product_type: Optional[str] = None
    crated_indicator: Optional[str] = None
    anti_tip_indicator: Optional[str] = None
    product_weight: Optional[int] = None
    nmfc: Optional[str] = None
    carton_code: Optional[str] = None
    quantity: Optional[int] = None
    points: Optional[float] = None
    shipment_number: Optional[str] = None
    customer_tracking_number: Optional[str] = None
    serials: List[str] = field(default_factory=list)

    line_type = "product"


@dataclass
class ServiceLineRecord:
    line_number: str
    line_status: Optional[str] = None
    item: Optional[str] = None
    quantity: Optional[int] = None
    customer_tracking_number: Optional[str] = None

    line_type = "service"


@dataclass
class DeliveryRecord:
    cso: str
    delivery_id: str
    delivery_status: Optional[str] = None
    cso_type: Optional[str] = None
    customer_po_number: Optional[str] = None
    rap: Optional[str] = None
    zip_group: Optional[str] = None
    delivery_date: Optional[date] = None
    delivery_name: Optional[str] = None
    delivery_address_1: Optional[str] = None
    delivery_address_2: Optional[str] = None
    delivery_city: Optional[str] = None
    delivery_state: Optional[str] = None
    delivery_zip: Optional[str] = None
    delivery_phone: List[Any] = field(default_factory=list)
    last_updated_date: Optional[datetime] = None
    product_lines: List[ProductLineRecord] = field(default_factory=list)
    service_lines: List[ServiceLineRecord] = field(default_factory=list)


@dataclass
class OrderRecord:
    cso: str
    order_type: Optional[str] = None
    order_date: Optional[date] = None
    customer_name: Optional[str] = None
    customer_account: Optional[str] = None
    customer_phone: Optional[str] = None
    freight_terms: Optional[str] = None
    shipping_instructions: Optional[str] = None
    shipping_method: Optional[str] = None
    additional_service: Optional[str] = None
    points: Optional[float] = None
    deliveries: List[DeliveryRecord] = field(default_factory=list)


def _list(value: Any) -> List[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, dict):
        return [value]
    return []


def order_list(payload: Any) -> List[Mapping[str, Any]]:
    """The ``order`` array of an order-data download, tolerating a missing or scalar value."""

    if not isinstance(payload, Mapping):
        return []
    return [order for order in _list(payload.get("order")) if isinstance(order, Mapping)]


def _product_lines(delivery: Mapping[str, Any]) -> List[ProductLineRecord]:
    lines: List[ProductLineRecord] = []
    for product in _list(delivery.get("product")):
        shipment_number = to_text(product.get("shipment_number"))
        tracking_number = to_text(product.get("customer_tracking_number"))
        for line in _list(product.get("line")):
            line_number = to_text(line.get("line_number"))
            if not line_number:
                continue
            accessory = line.get("model_accessory") or {}
            lines.append(
                ProductLineRecord(
                    line_number=line_number,
                    line_status=to_text(line.get("line_status")),
                    item_type=to_text(accessory.get("item_type")),
                    item=to_text(accessory.get("item")),
                    product_type=to_text(accessory.get("product_type")),
                    crated_indicator=to_text(accessory.get("crated_indicator")),
                    anti_tip_indicator=to_text(accessory.get("anti_tip_indicator")),
                    product_weight=to_int(accessory.get("product_weight")),
                    nmfc=to_text(accessory.get("nmfc")),
                    carton_code=to_text(accessory.get("carton_code")),
                    quantity=to_int(accessory.get("quantity")),
                    points=to_number(accessory.get("points")),
                    shipment_number=shipment_number,
                    customer_tracking_number=tracking_number,
                    serials=[serial for serial in _list(accessory.get("assigned_serials")) if serial],
                )
            )
    return lines


def _service_lines(delivery: Mapping[str, Any]) -> List[ServiceLineRecord]:
    lines: List[ServiceLineRecord] = []
    for service in _list(delivery.get("service")):
        tracking_number = to_text(service.get("customer_tracking_number"))
        for line in _list(service.get("line")):
            line_number = to_text(line.get("line_number"))
            if not line_number:
                continue
            lines.append(
                ServiceLineRecord(
                    line_number=line_number,
                    line_status=to_text(line.get("line_status")),
                    item=to_text(line.get("item")),
                    quantity=to_int(line.get("quantity")),
                    customer_tracking_number=tracking_number,
                )
            )
    return lines


def parse_order(order: Mapping[str, Any]) -> Optional[OrderRecord]:
    cso = to_text(order.get("cso"))
    if not cso:
        return None
    record = OrderRecord(
        cso=cso,
        order_type=to_text(order.get("order_type")),
        order_date=parse_date(order.get("order_date")),
        customer_name=to_text(order.get("customer_name")),
        customer_account=to_text(order.get("customer_account")),
        customer_phone=to_text(order.get("customer_phone")),
        freight_terms=to_text(order.get("freight_terms")),
        shipping_instructions=to_text(order.get("shipping_instructions")),
        shipping_method=to_text(order.get("shipping_method")),
        additional_service=to_text(order.get("additional_service")),
        points=to_number(order.get("points")),
    )
    for delivery in _list(order.get("delivery")):
        delivery_id = to_text(delivery.get("delivery_id"))
        if not delivery_id:
            continue
        phones = delivery.get("delivery_phone")
        if isinstance(phones, str):
            phones = [phones] if phones.strip() else []
        record.deliveries.append(
            DeliveryRecord(
                cso=cso,
                delivery_id=delivery_id,
                delivery_status=to_text(delivery.get("delivery_status")),
                cso_type=to_text(delivery.get("cso_type")),
                customer_po_number=to_text(delivery.get("customer_po_number")),
                rap=to_text(delivery.get("rap")),
                zip_group=to_text(delivery.get("zip_group")),
                delivery_date=parse_date(delivery.get("delivery_date")),
                delivery_name=to_text(delivery.get("delivery_name")),
                delivery_address_1=to_text(delivery.get("delivery_address_1")),
                delivery_address_2=to_text(delivery.get("delivery_address_2")),
                delivery_city=to_text(delivery.get("delivery_city")),
                delivery_state=to_text(delivery.get("delivery_state")),
                delivery_zip=to_text(delivery.get("delivery_zip")),
                delivery_phone=_list(phones) if phones is not None else [],
                last_updated_date=parse_timestamp(delivery.get("last_updated_date")),
                product_lines=_product_lines(delivery),
                service_lines=_service_lines(delivery),
            )
        )
    return record


def parse_orders(raw_orders: Iterable[Mapping[str, Any]]) -> List[OrderRecord]:
    """Parse and collapse orders by CSO; a later occurrence replaces an earlier one."""

    unique: Dict[str, OrderRecord] = {}
    for raw in raw_orders:
        record = parse_order(raw)
        if record is not None:
            unique[record.cso] = record
    return list(unique.values())


def build_rows(
    orders: Iterable[OrderRecord],
    *,
    company_id: str,
    location_id: str,
    now: datetime,
) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]], List[Dict[str, Any]]]:
    """Flatten records into ``orders``, ``order_deliveries`` and ``order_lines`` rows."""

    stamp = {"company_id": company_id, "location_id": location_id, "last_seen_at": now, "updated_at": now}
    order_rows: List[Dict[str, Any]] = []
    delivery_rows: List[Dict[str, Any]] = []
    line_rows: List[Dict[str, Any]] = []

    for order in orders:
        order_row = {key: value for key, value in asdict(order).items() if key != "deliveries"}
        order_rows.append({**order_row, **stamp})
        for delivery in order.deliveries:
            delivery_row = {
                key: value
                for key, value in asdict(delivery).items()
                if key not in {"product_lines", "service_lines"}
            }
            delivery_rows.append({**delivery_row, **stamp})
            for product in delivery.product_lines:
                line_rows.append(
                    {
                        **asdict(product),
                        "cso": order.cso,
                        "delivery_id": delivery.delivery_id,
                        "line_type": ProductLineRecord.line_type,
                        **stamp,
                    }
                )
            for service in delivery.service_lines:
                line_rows.append(
                    {
                        **asdict(service),
                        "cso": order.cso,
                        "delivery_id": delivery.delivery_id,
                        "line_type": ServiceLineRecord.line_type,
                        "item_type": None,
                        "product_type": None,
                        "crated_indicator": None,
                        "anti_tip_indicator": None,
                        "product_weight": None,
                        "nmfc": None,
                        "carton_code": None,
                        "points": None,
                        "shipment_number": None,
                        "serials": [],
                        **stamp,
                    }
                )
    return order_rows, delivery_rows, line_rows
