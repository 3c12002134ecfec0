from __future__ import annotations

import argparse
import asyncio
import json
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

from ge_sync.common.db import dispose_engine, run_alembic_upgrade
from ge_sync.common.store import SqlAlchemyStore
from ge_sync.config import ORDER_DATE_FORMAT, SyncConfig
from ge_sync.dms.session import StorageStateSessionProvider
from ge_sync.errors import ConfigError
from ge_sync.json_logger import JsonLogger, get_logger, log_event, new_run_id
from ge_sync.sync.result import SyncResult

EXIT_OK = 0
EXIT_SYNC_FAILED = 1
EXIT_CONFIG = 2

Runner = Callable[[str], Awaitable[SyncResult]]


def _order_date(value: str) -> date:
    try:
        return datetime.strptime(value, ORDER_DATE_FORMAT).date()
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected MM-DD-YYYY, got {value!r}") from exc


def _config_for(args: argparse.Namespace) -> SyncConfig:
    config = SyncConfig.from_env()
    return config.with_overrides(
        company_id=getattr(args, "company_id", None),
        database_url=getattr(args, "database_url", None),
        days_back=getattr(args, "days_back", None),
        days_forward=getattr(args, "days_forward", None),
        max_csos_per_chunk=getattr(args, "max_csos", None),
        browser_fallback=False if getattr(args, "no_browser", False) else None,
        inbound_source=getattr(args, "source", None),
        inbound_force_reimport=True if getattr(args, "force_reimport", False) else None,
    )


def _locations(args: argparse.Namespace, config: SyncConfig) -> List[str]:
    locations = list(getattr(args, "location", None) or config.location_ids)
    if not locations:
        raise ConfigError("No location given: pass --location or set GE_SYNC_LOCATION_IDS")
    return locations


def _emit(result: SyncResult, *, location_id: str) -> None:
    payload = {"location_id": location_id, **result.as_dict()}
    print(json.dumps(payload, indent=2, default=str), flush=True)


def _runner(args: argparse.Namespace, config: SyncConfig, logger: JsonLogger) -> Runner:
    from ge_sync.sync.inbound import sync_inbound_receipts
    from ge_sync.sync.inventory import import_inventory_snapshot, sync_asis_inventory
    from ge_sync.sync.orders import sync_orders

    store = SqlAlchemyStore(config.database_url, batch_size=config.batch_size, logger=logger)
    session = StorageStateSessionProvider(config.storage_state_path)

    if args.command == "orders":
        return lambda location_id: sync_orders(
            location_id, config=config, session=session, store=store, logger=logger
        )
    if args.command == "inbound":
        return lambda location_id: sync_inbound_receipts(
            location_id, config=config, session=session, store=store, logger=logger
        )
    if args.command == "asis":
        return lambda location_id: sync_asis_inventory(
            location_id, config=config, session=session, store=store, logger=logger
        )
    return lambda location_id: import_inventory_snapshot(
        location_id,
        Path(args.path),
        inventory_type=args.inventory_type,
        config=config,
        store=store,
        logger=logger,
        sub_inventory=args.sub_inventory,
    )


async def _run_sync_command(args: argparse.Namespace, config: SyncConfig, logger: JsonLogger) -> int:
    config.require_company()
    locations = _locations(args, config)
    if args.run_migrations:
        log_event(logger=logger, phase="db", message="running migrations")
        await asyncio.to_thread(
            run_alembic_upgrade, "head", database_url=config.database_url, alembic_config=config.alembic_config
        )

    run = _runner(args, config, logger)
    exit_code = EXIT_OK
    try:
        for location_id in locations:
            result = await run(location_id)
            _emit(result, location_id=location_id)
            if not result.success:
                exit_code = EXIT_SYNC_FAILED
    finally:
        await dispose_engine(config.database_url)
    return exit_code


async def _run_probe(args: argparse.Namespace, config: SyncConfig, logger: JsonLogger) -> int:
    from ge_sync.probe import run_probe

    written = await run_probe(
        _locations(args, config)[0],
        config=config,
        session=StorageStateSessionProvider(config.storage_state_path),
        out_dir=Path(args.out),
        logger=logger,
        start=args.start,
        days=args.days,
        cso=args.cso or "",
    )
    print(json.dumps({name: str(path) for name, path in written.items()}, indent=2), flush=True)
    return EXIT_OK


async def _run_async(args: argparse.Namespace) -> int:
    try:
        config = _config_for(args)
    except ConfigError as exc:
        print(f"[ge_sync] configuration error: {exc}", file=sys.stderr, flush=True)
        return EXIT_CONFIG

    logger = get_logger(run_id=args.run_id or new_run_id(), log_file_path=config.json_log_file or None)
    try:
        if args.command == "db-upgrade":
            log_event(logger=logger, phase="db", message="running migrations", revision=args.revision)
            await asyncio.to_thread(
                run_alembic_upgrade,
                args.revision,
                database_url=config.database_url,
                alembic_config=config.alembic_config,
            )
            return EXIT_OK
        if args.command == "probe":
            return await _run_probe(args, config, logger)
        return await _run_sync_command(args, config, logger)
    except ConfigError as exc:
        log_event(logger=logger, phase="config", status="error", message=str(exc))
        return EXIT_CONFIG
    except Exception as exc:
        log_event(
            logger=logger,
            phase="cli",
            status="error",
            message=f"{args.command} failed with unexpected error",
            error=str(exc),
            exc_type=type(exc).__name__,
        )
        return EXIT_SYNC_FAILED
    finally:
        logger.close()


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--run-id", dest="run_id", default=None, help="Override generated run id")
    parser.add_argument("--database-url", dest="database_url", default=None, help="Override DATABASE_URL")


def _add_sync_options(parser: argparse.ArgumentParser) -> None:
    _add_common(parser)
    parser.add_argument(
        "--location",
        action="append",
        default=None,
        help="Location id to sync (repeatable; defaults to GE_SYNC_LOCATION_IDS)",
    )
    parser.add_argument("--company-id", dest="company_id", default=None, help="Override GE_SYNC_COMPANY_ID")
    parser.add_argument(
        "--run-migrations",
        action="store_true",
        dest="run_migrations",
        help="Run Alembic migrations before syncing",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ge_sync", description="GE DMS sync and reconciliation")
    subparsers = parser.add_subparsers(dest="command", required=True)

    orders = subparsers.add_parser("orders", help="Sync order data into orders, deliveries and lines")
    _add_sync_options(orders)
    orders.add_argument("--days-back", dest="days_back", type=int, default=None)
    orders.add_argument("--days-forward", dest="days_forward", type=int, default=None)
    orders.add_argument("--max-csos", dest="max_csos", type=int, default=None, help="Cap per-CSO requests per chunk")
    orders.add_argument("--no-browser", dest="no_browser", action="store_true", help="Skip the Playwright fallback")

    inbound = subparsers.add_parser("inbound", help="Import receiving reports for inbound shipments")
    _add_sync_options(inbound)
    inbound.add_argument("--source", choices=["summary", "history"], default=None)
    inbound.add_argument(
        "--force-reimport", dest="force_reimport", action="store_true", help="Re-import known shipments"
    )

    asis = subparsers.add_parser("asis", help="Reconcile ASIS inventory and loads")
    _add_sync_options(asis)

    snapshot = subparsers.add_parser("import-snapshot", help="Import an XLSX/CSV inventory snapshot")
    _add_sync_options(snapshot)
    snapshot.add_argument("path", help="Snapshot file (.xlsx or .csv)")
    snapshot.add_argument("--type", dest="inventory_type", required=True, help="Inventory type, e.g. ASIS or FG")
    snapshot.add_argument("--sub-inventory", dest="sub_inventory", default=None, help="Sub-inventory for every row")

    probe = subparsers.add_parser("probe", help="Dump one order-data round trip for inspection")
    _add_common(probe)
    probe.add_argument("--location", action="append", default=None)
    probe.add_argument("--out", default="probe_output", help="Output directory")
    probe.add_argument("--start", type=_order_date, default=None, help="Start date MM-DD-YYYY")
    probe.add_argument("--days", type=int, default=None)
    probe.add_argument("--cso", default=None, help="Restrict the JSON request to one CSO")

    upgrade = subparsers.add_parser("db-upgrade", help="Run Alembic upgrade")
    _add_common(upgrade)
    upgrade.add_argument("--revision", default="head")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return asyncio.run(_run_async(args))
