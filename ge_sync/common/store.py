"""Keyed batch upsert store backed by SQLAlchemy Core."""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Mapping, Protocol, Sequence

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError

from ge_sync.common.db import session_scope
from ge_sync.common.db_tables import get_table
from ge_sync.errors import PersistenceError
from ge_sync.json_logger import JsonLogger, log_event

BULK_INSERT_BATCH_SIZE = 500
SELECT_IN_BATCH_SIZE = 500

Row = Dict[str, Any]


class UpsertStore(Protocol):
    async def upsert(self, table: str, rows: Sequence[Mapping[str, Any]], *, on_conflict: Sequence[str]) -> int: ...

    async def select(
        self,
        table: str,
        columns: Sequence[str] | None = None,
        *,
        where: Mapping[str, Any] | None = None,
        where_in: Mapping[str, Sequence[Any]] | None = None,
        where_not: Mapping[str, Any] | None = None,
    ) -> list[Row]: ...

    async def update_by_ids(self, table: str, values: Mapping[str, Any], ids: Sequence[Any]) -> int: ...

    async def delete_where(self, table: str, where: Mapping[str, Any]) -> int: ...


def _batched(iterable: Iterable[Row], size: int) -> Iterable[List[Row]]:
    batch: List[Row] = []
    for item in iterable:
        batch.append(item)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch


def dedupe_rows(rows: Iterable[Mapping[str, Any]], key_columns: Sequence[str]) -> list[Row]:
    """Keep the last row per conflict key, in first-seen order.

    ``ON CONFLICT DO UPDATE`` rejects a statement that touches the same key twice,
    so every statement must carry unique keys.
    """

    deduped: Dict[tuple, Row] = {}
    for row in rows:
        key = tuple(row.get(column) for column in key_columns)
        deduped[key] = dict(row)
    return list(deduped.values())


def _group_by_columns(rows: Sequence[Row]) -> list[list[Row]]:
    groups: Dict[tuple, list[Row]] = {}
    for row in rows:
        groups.setdefault(tuple(sorted(row.keys())), []).append(row)
    return list(groups.values())


def _make_insert(table: sa.Table, dialect_name: str):
    return pg_insert(table) if dialect_name == "postgresql" else sqlite_insert(table)


class SqlAlchemyStore:
    def __init__(
        self,
        database_url: str,
        *,
        batch_size: int = BULK_INSERT_BATCH_SIZE,
        logger: JsonLogger | None = None,
    ) -> None:
        self.database_url = database_url
        self.batch_size = max(1, batch_size)
        self.logger = logger

    async def upsert(self, table: str, rows: Sequence[Mapping[str, Any]], *, on_conflict: Sequence[str]) -> int:
        """Upsert ``rows`` in chunks; each chunk commits on its own.

        A failing chunk raises :class:`PersistenceError` and later chunks are not
        attempted. Chunks committed before the failure stay committed.
        """

        if not rows:
            return 0
        target = get_table(table)
        deduped = dedupe_rows(rows, on_conflict)
        written = 0
        for chunk_index, chunk in enumerate(_batched(deduped, self.batch_size)):
            try:
                async with session_scope(self.database_url) as session:
                    dialect_name = session.bind.dialect.name if session.bind else ""
                    for group in _group_by_columns(chunk):
                        insert_stmt = _make_insert(target, dialect_name)
                        update_columns = [
                            column for column in group[0] if column not in on_conflict and column != "id"
                        ]
                        stmt = insert_stmt.values(group)
                        if update_columns:
                            stmt = stmt.on_conflict_do_update(
                                index_elements=list(on_conflict),
                                set_={column: insert_stmt.excluded[column] for column in update_columns},
                            )
                        else:
                            stmt = stmt.on_conflict_do_nothing(index_elements=list(on_conflict))
                        await session.execute(stmt)
                    await session.commit()
            except SQLAlchemyError as exc:
                if self.logger:
                    log_event(
                        logger=self.logger,
                        phase="persist",
                        status="error",
                        message="upsert chunk failed",
                        table=table,
                        chunk_index=chunk_index,
                        rows_written=written,
                        error=str(exc),
                    )
                raise PersistenceError(table, str(exc)) from exc
            written += len(chunk)
        if self.logger:
            log_event(
                logger=self.logger,
                phase="persist",
                message="upsert complete",
                table=table,
                rows=written,
                duplicates_dropped=len(rows) - len(deduped),
            )
        return written

    async def select(
        self,
        table: str,
        columns: Sequence[str] | None = None,
        *,
        where: Mapping[str, Any] | None = None,
        where_in: Mapping[str, Sequence[Any]] | None = None,
        where_not: Mapping[str, Any] | None = None,
    ) -> list[Row]:
        target = get_table(table)
        selected = [target.c[name] for name in columns] if columns else [target]
        base = sa.select(*selected)
        for name, value in (where or {}).items():
            base = base.where(target.c[name] == value)
        for name, value in (where_not or {}).items():
            base = base.where(target.c[name] != value)

        in_filters = list((where_in or {}).items())
        batches: list[sa.Select] = []
        if not in_filters:
            batches.append(base)
        else:
            stmt = base
            for name, values in in_filters[1:]:
                stmt = stmt.where(target.c[name].in_(list(values)))
            lead_name, lead_values = in_filters[0]
            lead_values = list(dict.fromkeys(lead_values))
            if not lead_values:
                return []
            for start in range(0, len(lead_values), SELECT_IN_BATCH_SIZE):
                chunk = lead_values[start : start + SELECT_IN_BATCH_SIZE]
                batches.append(stmt.where(target.c[lead_name].in_(chunk)))

        results: list[Row] = []
        try:
            async with session_scope(self.database_url) as session:
                for stmt in batches:
                    rows = (await session.execute(stmt)).mappings().all()
                    results.extend(dict(row) for row in rows)
        except SQLAlchemyError as exc:
            raise PersistenceError(table, f"select failed: {exc}") from exc
        return results

    async def update_by_ids(self, table: str, values: Mapping[str, Any], ids: Sequence[Any]) -> int:
        if not ids:
            return 0
        target = get_table(table)
        updated = 0
        try:
            for start in range(0, len(ids), self.batch_size):
                chunk = list(ids[start : start + self.batch_size])
                async with session_scope(self.database_url) as session:
                    result = await session.execute(
                        sa.update(target).where(target.c.id.in_(chunk)).values(**values)
                    )
                    await session.commit()
                    updated += result.rowcount or 0
        except SQLAlchemyError as exc:
            raise PersistenceError(table, f"update failed: {exc}") from exc
        return updated

    async def delete_where(self, table: str, where: Mapping[str, Any]) -> int:
        """Delete rows matching every equality in ``where``; an empty filter is refused."""

        if not where:
            raise ValueError("delete_where needs at least one filter")
        target = get_table(table)
        stmt = sa.delete(target)
        for name, value in where.items():
            stmt = stmt.where(target.c[name] == value)
        try:
            async with session_scope(self.database_url) as session:
                result = await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as exc:
            raise PersistenceError(table, f"delete failed: {exc}") from exc
        if self.logger:
            log_event(
                logger=self.logger,
                phase="persist",
                message="delete complete",
                table=table,
                rows=result.rowcount or 0,
            )
        return result.rowcount or 0
