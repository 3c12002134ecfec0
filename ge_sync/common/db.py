from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from alembic import command
from alembic.config import Config
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ge_sync.config import PROJECT_ROOT

_engine_cache: dict[str, AsyncEngine] = {}
_session_factory_cache: dict[str, async_sessionmaker[AsyncSession]] = {}


def _ensure_async_engine(database_url: str) -> AsyncEngine:
    if database_url not in _engine_cache:
        _engine_cache[database_url] = create_async_engine(database_url, future=True)
    return _engine_cache[database_url]


def _ensure_sessionmaker(database_url: str) -> async_sessionmaker[AsyncSession]:
    if database_url not in _session_factory_cache:
        engine = _ensure_async_engine(database_url)
        _session_factory_cache[database_url] = async_sessionmaker(engine, expire_on_commit=False)
    return _session_factory_cache[database_url]


@asynccontextmanager
async def session_scope(database_url: str) -> AsyncIterator[AsyncSession]:
    factory = _ensure_sessionmaker(database_url)
    async with factory() as session:
        yield session


async def dispose_engine(database_url: str) -> None:
    _session_factory_cache.pop(database_url, None)
    engine = _engine_cache.pop(database_url, None)
    if engine is not None:
        await engine.dispose()


def run_alembic_upgrade(revision: str, *, database_url: str, alembic_config: str = "alembic.ini") -> None:
    config_path = Path(alembic_config)
    if not config_path.is_absolute() and not config_path.exists():
        config_path = PROJECT_ROOT / config_path
    alembic_cfg = Config(str(config_path))
    alembic_cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", database_url.replace("%", "%%"))
    command.upgrade(alembic_cfg, revision)
