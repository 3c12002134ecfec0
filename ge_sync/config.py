"""
Runtime configuration for ge_sync.

Every tunable is read here, once per invocation, into an immutable
``SyncConfig``. Sync flows receive the instance as an argument and never look
at ``os.environ`` themselves.

    from ge_sync.config import SyncConfig

    cfg = SyncConfig.from_env()
"""

from __future__ import annotations

import dataclasses
import logging
import os
import re
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Mapping

from dotenv import load_dotenv

from ge_sync.errors import ConfigError

PROJECT_ROOT = Path(__file__).resolve().parents[1]

logger = logging.getLogger(__name__)

DEFAULT_DMS_BASE = "https://dms-erp-aws-prd.geappliances.com"
DEFAULT_DMS_LOC = "19SU"
DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///ge_sync.db"
DEFAULT_STORAGE_STATE = "profiles/storage_state.json"
ORDER_DATE_FORMAT = "%m-%d-%Y"
INBOUND_SOURCES = {"summary", "history"}

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(value: str, *, key: str) -> bool:
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    message = f"Config key {key} must be a boolean string; got {value!r}"
    logger.error(message)
    raise ConfigError(message)


def _parse_int(value: str, *, key: str, minimum: int = 0) -> int:
    try:
        parsed = int(value.strip())
    except (TypeError, ValueError):
        message = f"Config key {key} must be an integer; got {value!r}"
        logger.error(message)
        raise ConfigError(message)
    if parsed < minimum:
        message = f"Config key {key} must be >= {minimum}; got {parsed}"
        logger.error(message)
        raise ConfigError(message)
    return parsed


def _parse_list(value: str) -> list[str]:
    if not value:
        return []
    tokens = re.split(r"[,\n]", value)
    return [token.strip() for token in tokens if token and token.strip()]


def _parse_order_date(value: str, *, key: str) -> date:
    try:
        return datetime.strptime(value.strip(), ORDER_DATE_FORMAT).date()
    except ValueError:
        message = f"Config key {key} must be MM-DD-YYYY; got {value!r}"
        logger.error(message)
        raise ConfigError(message)


def _clean_url(value: str, *, key: str) -> str:
    stripped = value.strip().rstrip("/")
    if not stripped:
        message = f"Config key {key} cannot be blank"
        logger.error(message)
        raise ConfigError(message)
    return stripped


@dataclass(slots=True, frozen=True)
class SyncConfig:
    dms_base_url: str = DEFAULT_DMS_BASE
    asis_base_url: str = f"{DEFAULT_DMS_BASE}/ASIS"
    company_id: str = ""
    location_ids: list[str] = dataclasses.field(default_factory=list)
    order_dms_loc: str = DEFAULT_DMS_LOC
    inbound_dms_loc: str = DEFAULT_DMS_LOC

    days_back: int = 90
    days_forward: int = 30
    use_ui_range: bool = False
    ui_start_date: date | None = None
    ui_days: int = 100
    max_days_per_request: int = 100
    max_csos_per_chunk: int = 0
    batch_size: int = 500

    headless: bool = True
    browser_fallback: bool = True
    browser_timeout_ms: int = 10_000

    inbound_source: str = "summary"
    inbound_force_reimport: bool = False

    database_url: str = DEFAULT_DATABASE_URL
    alembic_config: str = "alembic.ini"
    storage_state_path: str = DEFAULT_STORAGE_STATE
    json_log_file: str = ""

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, *, dotenv_path: Path | None = None) -> SyncConfig:
        if environ is None:
            load_dotenv(dotenv_path or PROJECT_ROOT / ".env")
            environ = os.environ

        def get(key: str, default: str = "") -> str:
            value = environ.get(key)
            if value is None or not value.strip():
                return default
            return value.strip()

        dms_base_url = _clean_url(get("GE_DMS_BASE", DEFAULT_DMS_BASE), key="GE_DMS_BASE")
        inbound_source = get("INBOUND_SOURCE", "summary").lower()
        if inbound_source not in INBOUND_SOURCES:
            message = f"Config key INBOUND_SOURCE must be one of {sorted(INBOUND_SOURCES)}; got {inbound_source!r}"
            logger.error(message)
            raise ConfigError(message)

        raw_order_date = get("ORDERDATA_ORDER_DATE")
        ui_start_date = _parse_order_date(raw_order_date, key="ORDERDATA_ORDER_DATE") if raw_order_date else None

        return cls(
            dms_base_url=dms_base_url,
            asis_base_url=_clean_url(get("ASIS_BASE_URL", f"{dms_base_url}/ASIS"), key="ASIS_BASE_URL"),
            company_id=get("GE_SYNC_COMPANY_ID"),
            location_ids=_parse_list(get("GE_SYNC_LOCATION_IDS")),
            order_dms_loc=get("ORDERDATA_DMS_LOC", DEFAULT_DMS_LOC),
            inbound_dms_loc=get("INBOUND_DMS_LOC", DEFAULT_DMS_LOC),
            days_back=_parse_int(get("ORDERDATA_DAYS_BACK", "90"), key="ORDERDATA_DAYS_BACK"),
            days_forward=_parse_int(get("ORDERDATA_DAYS_FORWARD", "30"), key="ORDERDATA_DAYS_FORWARD"),
            use_ui_range=_parse_bool(get("ORDERDATA_USE_UI_RANGE", "false"), key="ORDERDATA_USE_UI_RANGE"),
            ui_start_date=ui_start_date,
            ui_days=_parse_int(get("ORDERDATA_MORE_DAYS", "100"), key="ORDERDATA_MORE_DAYS", minimum=1),
            max_days_per_request=_parse_int(get("ORDERDATA_MAX_DAYS", "100"), key="ORDERDATA_MAX_DAYS", minimum=1),
            max_csos_per_chunk=_parse_int(get("ORDERDATA_MAX_CSOS", "0"), key="ORDERDATA_MAX_CSOS"),
            batch_size=_parse_int(get("ORDERDATA_BATCH_SIZE", "500"), key="ORDERDATA_BATCH_SIZE", minimum=1),
            headless=_parse_bool(get("PLAYWRIGHT_HEADLESS", "true"), key="PLAYWRIGHT_HEADLESS"),
            browser_fallback=_parse_bool(get("ORDERDATA_BROWSER_FALLBACK", "true"), key="ORDERDATA_BROWSER_FALLBACK"),
            browser_timeout_ms=_parse_int(get("BROWSER_TIMEOUT_MS", "10000"), key="BROWSER_TIMEOUT_MS", minimum=1),
            inbound_source=inbound_source,
            inbound_force_reimport=_parse_bool(
                get("INBOUND_FORCE_REIMPORT", "false"), key="INBOUND_FORCE_REIMPORT"
            ),
            database_url=get("DATABASE_URL", DEFAULT_DATABASE_URL),
            alembic_config=get("ALEMBIC_CONFIG", "alembic.ini"),
            storage_state_path=get("GE_SYNC_STORAGE_STATE", DEFAULT_STORAGE_STATE),
            json_log_file=get("GE_SYNC_JSON_LOG_FILE"),
        )

    def with_overrides(self, **overrides: Any) -> SyncConfig:
        """Copy with per-invocation options applied; ``None`` values are ignored."""

        cleaned = {key: value for key, value in overrides.items() if value is not None}
        return dataclasses.replace(self, **cleaned)

    def require_company(self) -> str:
        if not self.company_id:
            message = "Missing required environment variable: GE_SYNC_COMPANY_ID"
            logger.error(message)
            raise ConfigError(message)
        return self.company_id
