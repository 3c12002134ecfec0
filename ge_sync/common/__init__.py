"""Shared persistence services."""

from typing import Any

__all__ = [
    "SqlAlchemyStore",
    "run_alembic_upgrade",
    "session_scope",
]


def __getattr__(name: str) -> Any:
    if name == "SqlAlchemyStore":
        from .store import SqlAlchemyStore as _SqlAlchemyStore

        return _SqlAlchemyStore
    if name == "run_alembic_upgrade":
        from .db import run_alembic_upgrade as _run_alembic_upgrade

        return _run_alembic_upgrade
    if name == "session_scope":
        from .db import session_scope as _session_scope

        return _session_scope
    raise AttributeError(name)
