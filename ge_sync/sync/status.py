"""Last successful sync per location and flow."""
from __future__ import annotations

from typing import Optional

from ge_sync.common.store import UpsertStore
from ge_sync.parsers.values import utcnow
from ge_sync.sync.result import SyncRun

SYNC_STATUS_KEY = ("location_id", "sync_type")


async def record_sync_timestamp(
    store: UpsertStore,
    run: SyncRun,
    *,
    company_id: str,
    location_id: str,
    sync_type: str,
    run_id: Optional[str] = None,
) -> None:
    now = utcnow()
    await store.upsert(
        "sync_status",
        [
            {
                "company_id": company_id,
                "location_id": location_id,
                "sync_type": sync_type,
                "last_synced_at": now,
                "run_id": run_id or run.trail.logger.run_id,
                "updated_at": now,
            }
        ],
        on_conflict=SYNC_STATUS_KEY,
    )
    run.trail.push(f"Recorded {sync_type} sync time for location {location_id}")
