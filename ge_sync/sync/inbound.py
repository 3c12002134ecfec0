from __future__ import annotations

from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from ge_sync.common.store import UpsertStore
from ge_sync.config import SyncConfig
from ge_sync.dms.client import DmsTransport, open_dms_client
from ge_sync.dms.endpoints import DmsEndpoints
from ge_sync.dms.session import SessionProvider
from ge_sync.errors import UpstreamContentError, UpstreamError, snippet
from ge_sync.extract.html import (
    HtmlTable,
    SelectOption,
    extract_hidden_inputs,
    extract_select_options,
    extract_selected_values,
)
from ge_sync.json_logger import JsonLogger
from ge_sync.parsers.inbound import (
    HISTORY_TABLE_ID,
    InboundHistoryRow,
    InboundListing,
    asn_items,
    normalize_shipment_no,
    parse_inbound_asn,
    parse_inbound_history,
)
from ge_sync.parsers.receiving import ReceivingReport, ReceivingReportParseError, parse_receiving_pdf
from ge_sync.parsers.values import utcnow
from ge_sync.sync.order_fetch import format_order_date
from ge_sync.sync.result import SyncResult, SyncRun, SyncTrail, run_sync
from ge_sync.sync.status import record_sync_timestamp

RECEIPT_CONFLICT = ("company_id", "location_id", "inbound_shipment_no")
ITEM_CONFLICT = ("company_id", "location_id", "inbound_shipment_no", "line_index")
SUB_TABS = {"summary": "1", "history": "3"}

ReportParser = Callable[[bytes], ReceivingReport]


def listing_form(*, dms_loc: str, source: str, days_before: str) -> Dict[str, str]:
    return {
        "dmsLoc": dms_loc,
        "daysBeforeDate": days_before,
        "rowsContaining": "",
        "selectedSubTab": SUB_TABS[source],
        "showLateTruckNotify": "",
        "hDmsLoc": "",
        "hDmsLocVal": "",
        "reportType": "AGENT",
        "userType": "AGENT",
        "rowRecNo": "0",
        "rowInsideRecNo": "",
    }


async def fetch_inbound_listing(
    client: DmsTransport,
    endpoints: DmsEndpoints,
    *,
    dms_loc: str,
    source: str,
    days_before: str,
) -> str:
    await client.get(endpoints.inbound, referer=endpoints.inbound)
    target = endpoints.inbound_summary if source == "summary" else endpoints.inbound_history
    response = await client.post_form(
        target,
        listing_form(dms_loc=dms_loc, source=source, days_before=days_before),
        referer=endpoints.inbound,
        xhr=True,
    )
    return response.raise_for_status().text


async def fetch_receiving_report(
    client: DmsTransport,
    endpoints: DmsEndpoints,
    listing: InboundListing,
    row: InboundHistoryRow,
    *,
    dms_loc: str,
) -> bytes:
    """Receiving-report PDF for one shipment, requested with the listing page's own form state."""

    form = {**listing.inputs, "dmsLoc": listing.inputs.get("dmsLoc") or dms_loc, **row.form_overrides()}
    response = await client.post_form(endpoints.receiving_report, form, referer=endpoints.inbound)
    response.raise_for_status()
    if "pdf" not in response.content_type.lower() or not response.body:
        raise UpstreamContentError(
            f"Receiving report for {row.shipment_number} is not a PDF "
            f"(content-type {response.content_type or 'unknown'}, {len(response.body)} bytes): "
            f"{snippet(response.body)}"
        )
    return response.body


@dataclass
class AsnSearch:
    table: HtmlTable = field(default_factory=HtmlTable)
    select_options: Dict[str, List[SelectOption]] = field(default_factory=dict)
    type_label: str = "default"


async def fetch_inbound_asn(
    client: DmsTransport,
    endpoints: DmsEndpoints,
    shipment_number: str,
    *,
    dms_loc: str,
    overrides: Mapping[str, str] | None = None,
) -> AsnSearch:
    """Search the inbound ASN page for one shipment using the page's own form defaults."""

    page = await client.get(endpoints.inbound_asn, referer=endpoints.inbound)
    html = page.raise_for_status().text
    defaults = {**extract_hidden_inputs(html), **extract_selected_values(html)}
    form = {
        **defaults,
        "erpShipment": normalize_shipment_no(shipment_number),
        "cso": "",
        "trackingNum": "",
        "serial": "",
        "hExcelView": "",
        "dmsLoc": defaults.get("dmsLoc") or dms_loc,
        **(overrides or {}),
    }
    response = await client.post_form(endpoints.inbound_asn_search, form, referer=endpoints.inbound_asn)
    return AsnSearch(
        table=parse_inbound_asn(response.raise_for_status().text),
        select_options=extract_select_options(html),
    )


def _asn_type_select(select_options: Mapping[str, List[SelectOption]]) -> Optional[Tuple[str, List[SelectOption]]]:
    for name, options in select_options.items():
        if any(option.label.lower() == "ge" or option.value.lower() == "ge" for option in options):
            return name, options
    return None


async def fetch_richest_asn(
    client: DmsTransport,
    endpoints: DmsEndpoints,
    row: InboundHistoryRow,
    trail: SyncTrail,
    *,
    dms_loc: str,
) -> AsnSearch:
    """ASN results for ``row``, retrying the other shipment types while rows fall short of the summary units.

    The table with the most rows wins; a failing alternate is logged and skipped.
    """

    shipment = row.shipment_number
    best = await fetch_inbound_asn(client, endpoints, shipment, dms_loc=dms_loc)
    type_select = _asn_type_select(best.select_options)
    if row.summary_units is not None and len(best.table.rows) < row.summary_units and type_select:
        type_name, options = type_select
        current = next((option for option in options if option.selected), options[0])
        alternates = [option.value for option in options if option.value and option.value != current.value]
        if alternates:
            trail.push(
                f"ASN type options for {shipment} ({type_name}): {', '.join(option.value for option in options)}"
            )
        for value in alternates:
            try:
                alternate = await fetch_inbound_asn(
                    client, endpoints, shipment, dms_loc=dms_loc, overrides={type_name: value}
                )
            except UpstreamError as exc:
                trail.warn(f"ASN search for {shipment} using {type_name}={value} failed: {exc}")
                continue
            trail.push(f"ASN rows for {shipment} using {type_name}={value}: {len(alternate.table.rows)}")
            if len(alternate.table.rows) > len(best.table.rows):
                alternate.type_label = f"{type_name}={value}"
                best = alternate
    trail.push(
        f"ASN rows for {shipment}: {len(best.table.rows)} "
        f"(summary units: {row.summary_units if row.summary_units is not None else 'n/a'}, type: {best.type_label})"
    )
    return best



def receipt_row(
    row: InboundHistoryRow,
    report: ReceivingReport,
    *,
    company_id: str,
    location_id: str,
    now,
) -> Dict[str, Any]:
    header = report.final_header
    item_count = len(report.final_items)
    units_gap = max(0, row.summary_units - item_count) if row.summary_units is not None else None
    return {
        "company_id": company_id,
        "location_id": location_id,
        "inbound_shipment_no": row.shipment_number,
        "mp_org_code": row.mp_org_code or None,
        "vendor_id": row.vendor_id or None,
        "wts_stop_seqno": row.wts_stop_seqno or None,
        "scac": header.scac or row.scac or None,
        "truck_number": header.truck_number or row.truck_number or None,
        "scheduled_arrival_date": row.schd_arrival_date or None,
        "scheduled_arrival_time": row.schd_arrival_time or None,
        "receipt_date": header.receipt_date,
        "receipt_time": header.receipt_time,
        "total_units": header.total_units,
        "summary_units": row.summary_units,
        "summary_points": row.summary_points,
        "item_count": item_count,
        "units_gap": units_gap,
        "parse_source": report.source,
        "last_seen_at": now,
        "updated_at": now,
    }


def item_rows(
    shipment_number: str,
    report: ReceivingReport,
    *,
    company_id: str,
    location_id: str,
    now,
) -> List[Dict[str, Any]]:
    return [
        {
            "company_id": company_id,
            "location_id": location_id,
            "inbound_shipment_no": shipment_number,
            "line_index": item.line_index,
            "cso": item.cso,
            "tracking_number": item.tracking_number,
            "model": item.model,
            "serial": item.serial,
            "inbound_replacement": item.inbound_replacement,
            "qty": item.qty,
            "rcvd": item.rcvd,
            "short": item.short,
            "damage": item.damage,
            "serial_mix": item.serial_mix,
            "raw_line": item.raw_line,
            "updated_at": now,
        }
        for item in report.final_items
    ]


async def sync_inbound_receipts(
    location_id: str,
    *,
    config: SyncConfig,
    session: SessionProvider,
    store: UpsertStore,
    logger: JsonLogger,
    client: DmsTransport | None = None,
    report_parser: ReportParser = parse_receiving_pdf,
    today: Optional[date] = None,
) -> SyncResult:
    """Import receiving reports for every shipment on the inbound listing.

    When the PDF cannot be fetched or parsed, or parses to no items, the
    inbound ASN search results stand in for it. Shipments are independent:
    one with neither source is logged, counted in ``receiptsFailed`` and the
    rest of the listing continues. A forced reimport replaces the stored
    items of a shipment instead of merging into them.
    """

    async def body(run: SyncRun) -> None:
        trail = run.trail
        company_id = config.require_company()
        dms_loc = config.inbound_dms_loc
        source = config.inbound_source
        endpoints = DmsEndpoints(config.dms_base_url)
        for name in ("receiptsProcessed", "receiptsSkipped", "receiptsFailed", "asnFallbacks"):
            run.count(name, 0)

        trail.push("Starting inbound receipts sync")
        trail.push(f"Company {company_id} / Location {location_id}")
        trail.push(f"DMS location code: {dms_loc}")
        trail.push(f"Inbound source: {source}")

        async with AsyncExitStack() as stack:
            transport = client
            if transport is None:
                cookie_header = await session.get_cookie_header(location_id)
                transport = await stack.enter_async_context(open_dms_client(cookie_header))

            html = await fetch_inbound_listing(
                transport,
                endpoints,
                dms_loc=dms_loc,
                source=source,
                days_before=format_order_date(today or date.today()),
            )
            trail.push(f"Inbound HTML length: {len(html)}")
            trail.push(f"Inbound HTML contains table: {HISTORY_TABLE_ID in html}")
            listing = parse_inbound_history(html)
            trail.push(f"Inbound rows (totRowRec={listing.total_rows}): {len(listing.rows)}")
            if not listing.rows:
                await record_sync_timestamp(
                    store, run, company_id=company_id, location_id=location_id, sync_type="inbound"
                )
                return

            existing = await store.select(
                "inbound_receipts",
                ["inbound_shipment_no"],
                where={"company_id": company_id, "location_id": location_id},
            )
            existing_shipments = {row["inbound_shipment_no"] for row in existing if row.get("inbound_shipment_no")}
            if config.inbound_force_reimport:
                trail.push("Force reimport enabled: existing inbound receipts will be reprocessed")

            for row in listing.rows:
                already_imported = row.shipment_number in existing_shipments
                if already_imported and not config.inbound_force_reimport:
                    run.count("receiptsSkipped")
                    continue
                report: Optional[ReceivingReport] = None
                try:
                    pdf = await fetch_receiving_report(transport, endpoints, listing, row, dms_loc=dms_loc)
                    report = report_parser(pdf)
                except (UpstreamError, ReceivingReportParseError) as exc:
                    trail.warn(f"Receiving report failed for {row.shipment_number}: {exc}")

                if report is None or not report.final_items:
                    if report is not None:
                        trail.push(f"Receiving report {row.shipment_number} has no items, trying inbound ASN")
                    try:
                        asn = await fetch_richest_asn(transport, endpoints, row, trail, dms_loc=dms_loc)
                    except UpstreamError as exc:
                        trail.warn(f"Inbound ASN failed for {row.shipment_number}: {exc}")
                    else:
                        if asn.table.headers:
                            report = report or ReceivingReport()
                            report.asn_items = asn_items(asn.table)
                            run.count("asnFallbacks")
                        else:
                            trail.warn(f"Inbound ASN table missing for {row.shipment_number}")
                if report is None:
                    run.count("receiptsFailed")
                    continue

                now = utcnow()
                items = item_rows(row.shipment_number, report, company_id=company_id, location_id=location_id, now=now)
                receipt = receipt_row(row, report, company_id=company_id, location_id=location_id, now=now)
                await store.upsert("inbound_receipts", [receipt], on_conflict=RECEIPT_CONFLICT)
                if already_imported:
                    cleared = await store.delete_where(
                        "inbound_receipt_items",
                        {
                            "company_id": company_id,
                            "location_id": location_id,
                            "inbound_shipment_no": row.shipment_number,
                        },
                    )
                    trail.push(f"Cleared {cleared} previous items for {row.shipment_number}")
                await store.upsert("inbound_receipt_items", items, on_conflict=ITEM_CONFLICT)
                trail.push(
                    f"Receiving report {row.shipment_number}: {len(items)} items via {report.source} "
                    f"(summary units: {row.summary_units if row.summary_units is not None else 'n/a'}, "
                    f"gap: {receipt['units_gap'] if receipt['units_gap'] is not None else 'n/a'})"
                )
                run.count("receiptsProcessed")
                run.count("itemsUpserted", len(items))
                run.stats.total_ge_items += len(items)
                if already_imported:
                    run.stats.updated_items += len(items)
                else:
                    run.stats.new_items += len(items)

        trail.push(f"Receipts processed: {run.counters['receiptsProcessed']}")
        trail.push(f"Receipts skipped (already imported): {run.counters['receiptsSkipped']}")
        trail.push(f"Receipts failed: {run.counters['receiptsFailed']}")
        await record_sync_timestamp(store, run, company_id=company_id, location_id=location_id, sync_type="inbound")

    return await run_sync("inbound", logger, body)
