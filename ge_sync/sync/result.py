from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ge_sync.json_logger import JsonLogger, log_event

STAT_NAMES = {
    "total_ge_items": "totalGEItems",
    "items_in_loads": "itemsInLoads",
    "unassigned_items": "unassignedItems",
    "new_items": "newItems",
    "updated_items": "updatedItems",
    "for_sale_loads": "forSaleLoads",
    "picked_loads": "pickedLoads",
    "changes_logged": "changesLogged",
}


@dataclass
class SyncStats:
    total_ge_items: int = 0
    items_in_loads: int = 0
    unassigned_items: int = 0
    new_items: int = 0
    updated_items: int = 0
    for_sale_loads: int = 0
    picked_loads: int = 0
    changes_logged: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {wire: getattr(self, attr) for attr, wire in STAT_NAMES.items()}


@dataclass
class SyncResult:
    success: bool
    stats: SyncStats
    duration: int
    log: List[str] = field(default_factory=list)
    error: Optional[str] = None
    counters: Dict[str, int] = field(default_factory=dict)

    def as_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": self.success,
            "stats": self.stats.as_dict(),
            "duration": self.duration,
            "log": list(self.log),
        }
        if self.error is not None:
            payload["error"] = self.error
        if self.counters:
            payload["counters"] = dict(self.counters)
        return payload


class SyncTrail:
    """Human-readable log lines for the caller, mirrored as JSON events."""

    def __init__(self, logger: JsonLogger, *, flow: str) -> None:
        self.logger = logger
        self.flow = flow
        self.lines: List[str] = []

    def push(self, message: str, *, status: str = "ok", **fields: Any) -> None:
        self.lines.append(message)
        log_event(logger=self.logger, phase=self.flow, status=status, message=message, **fields)

    def warn(self, message: str, **fields: Any) -> None:
        self.push(message, status="warn", **fields)


@dataclass
class SyncRun:
    trail: SyncTrail
    stats: SyncStats = field(default_factory=SyncStats)
    counters: Dict[str, int] = field(default_factory=dict)

    def count(self, name: str, amount: int = 1) -> None:
        self.counters[name] = self.counters.get(name, 0) + amount


async def run_sync(
    flow: str,
    logger: JsonLogger,
    body: Callable[[SyncRun], Awaitable[None]],
) -> SyncResult:
    """Run one sync flow and fold any failure into the returned :class:`SyncResult`.

    Stats and log lines accumulated before a failure are preserved.
    """

    started = time.perf_counter()
    run = SyncRun(trail=SyncTrail(logger.bind(flow=flow), flow=flow))
    error: Optional[str] = None
    try:
        await body(run)
    except Exception as exc:
        error = str(exc) or exc.__class__.__name__
        run.trail.push(f"Error: {error}", status="error", exception=repr(exc))
    duration = int((time.perf_counter() - started) * 1000)
    log_event(
        logger=logger,
        phase=flow,
        status="error" if error else "ok",
        message="sync finished",
        duration_ms=duration,
        stats=run.stats.as_dict(),
        counters=dict(run.counters),
    )
    return SyncResult(
        success=error is None,
        stats=run.stats,
        duration=duration,
        log=run.trail.lines,
        error=error,
        counters=dict(run.counters),
    )
