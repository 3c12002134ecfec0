"""
Reconciliation of incoming inventory records against persisted state.

Incoming records only need ``serial``, ``load_number``, ``source_timestamp``
and ``batch_index`` attributes. Nothing here talks to the store; callers
persist the outcome.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Generic, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, TypeVar

T = TypeVar("T")

ORPHAN_STATUS = "NOT_IN_GE"
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class LoadConflict:
    serial: str
    load_number: str
    conflicting_load: str


@dataclass
class DedupOutcome(Generic[T]):
    items: List[T] = field(default_factory=list)
    conflicts: List[LoadConflict] = field(default_factory=list)
    duplicates_dropped: int = 0


@dataclass
class Classification(Generic[T]):
    new: List[T] = field(default_factory=list)
    updated: List[Tuple[T, Any]] = field(default_factory=list)

    @property
    def matched_ids(self) -> Set[Any]:
        return {existing_id for _, existing_id in self.updated}


def _serial(item: Any) -> Optional[str]:
    raw = getattr(item, "serial", None)
    if raw is None:
        return None
    serial = str(raw).strip()
    return serial or None


def _rank(item: Any) -> Tuple[datetime, int]:
    timestamp = getattr(item, "source_timestamp", None) or _EPOCH
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=timezone.utc)
    return timestamp, int(getattr(item, "batch_index", 0) or 0)


def dedupe_by_serial(items: Iterable[T]) -> DedupOutcome[T]:
    """Keep one canonical record per serial.

    The canonical record has the latest ``source_timestamp``; ties go to the
    highest ``batch_index`` and then to the first one seen. Each dropped
    duplicate from a different load than the winner becomes a
    :class:`LoadConflict`. Records without a serial pass through untouched.
    """

    outcome: DedupOutcome[T] = DedupOutcome()
    winners: Dict[str, T] = {}
    losers: Dict[str, List[T]] = {}
    order: List[Tuple[Optional[str], T]] = []

    for item in items:
        serial = _serial(item)
        if serial is None:
            order.append((None, item))
            continue
        current = winners.get(serial)
        if current is None:
            winners[serial] = item
            order.append((serial, item))
            continue
        if _rank(item) > _rank(current):
            winners[serial] = item
            losers.setdefault(serial, []).append(current)
        else:
            losers.setdefault(serial, []).append(item)

    for serial, item in order:
        outcome.items.append(item if serial is None else winners[serial])

    seen: Set[Tuple[str, str]] = set()
    for serial, dropped in losers.items():
        outcome.duplicates_dropped += len(dropped)
        winner_load = getattr(winners[serial], "load_number", None)
        for loser in dropped:
            loser_load = getattr(loser, "load_number", None)
            if not loser_load or not winner_load or loser_load == winner_load:
                continue
            if (loser_load, serial) in seen:
                continue
            seen.add((loser_load, serial))
            outcome.conflicts.append(
                LoadConflict(serial=serial, load_number=loser_load, conflicting_load=winner_load)
            )
    return outcome


def exclude_cross_type(items: Iterable[T], cross_type_serials: Set[str]) -> Tuple[List[T], int]:
    """Drop records whose serial already lives under another inventory type at the location."""

    kept: List[T] = []
    skipped = 0
    for item in items:
        serial = _serial(item)
        if serial is not None and serial in cross_type_serials:
            skipped += 1
            continue
        kept.append(item)
    return kept, skipped


def index_existing(rows: Iterable[Mapping[str, Any]]) -> Dict[str, Any]:
    """Serial to id for persisted rows; the first row seen for a serial wins."""

    by_serial: Dict[str, Any] = {}
    for row in rows:
        serial = (row.get("serial") or "").strip()
        if serial and row.get("id") is not None and serial not in by_serial:
            by_serial[serial] = row["id"]
    return by_serial


def classify(items: Iterable[T], existing_by_serial: Mapping[str, Any]) -> Classification[T]:
    result: Classification[T] = Classification()
    for item in items:
        serial = _serial(item)
        existing_id = existing_by_serial.get(serial) if serial else None
        if existing_id is None:
            result.new.append(item)
        else:
            result.updated.append((item, existing_id))
    return result


def find_orphans(existing: Sequence[Mapping[str, Any]], matched_ids: Set[Any]) -> List[Any]:
    """Ids of persisted rows not matched this pass and not already flagged."""

    return [
        row["id"]
        for row in existing
        if row.get("id") is not None and row["id"] not in matched_ids and not row.get("ge_orphaned")
    ]


def orphan_update(now: datetime) -> Dict[str, Any]:
    return {"ge_orphaned": True, "ge_orphaned_at": now, "status": ORPHAN_STATUS}
