from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest
import sqlalchemy as sa

from ge_sync import cli
from ge_sync.config import SyncConfig


def _patch_config(monkeypatch: pytest.MonkeyPatch, config: SyncConfig) -> None:
    monkeypatch.setattr(cli.SyncConfig, "from_env", classmethod(lambda cls, *args, **kwargs: config))


def test_parser_sync_options() -> None:
    args = cli.build_parser().parse_args(
        ["orders", "--location", "a", "--location", "b", "--days-back", "5", "--no-browser", "--run-migrations"]
    )

    assert args.command == "orders"
    assert args.location == ["a", "b"]
    assert args.days_back == 5
    assert args.no_browser is True
    assert args.run_migrations is True


def test_parser_probe_dates() -> None:
    args = cli.build_parser().parse_args(["probe", "--location", "a", "--start", "01-15-2025", "--days", "3"])

    assert args.start == date(2025, 1, 15)
    assert args.days == 3
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["probe", "--start", "2025-01-15"])


def test_parser_requires_snapshot_type() -> None:
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["import-snapshot", "inventory.csv"])


def test_config_overrides_from_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    _patch_config(monkeypatch, SyncConfig(company_id="env-co"))
    args = cli.build_parser().parse_args(["inbound", "--company-id", "flag-co", "--source", "history", "--force-reimport"])

    config = cli._config_for(args)

    assert config.company_id == "flag-co"
    assert config.inbound_source == "history"
    assert config.inbound_force_reimport is True
    assert config.browser_fallback is True


def test_missing_company_exits_with_config_code(monkeypatch: pytest.MonkeyPatch, database_url: str) -> None:
    _patch_config(monkeypatch, SyncConfig(database_url=database_url))

    assert cli.main(["asis", "--location", "loc"]) == cli.EXIT_CONFIG


def test_missing_location_exits_with_config_code(monkeypatch: pytest.MonkeyPatch, database_url: str) -> None:
    _patch_config(monkeypatch, SyncConfig(company_id="co", database_url=database_url))

    assert cli.main(["asis"]) == cli.EXIT_CONFIG


def test_import_snapshot_command(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, database_url: str, capsys: pytest.CaptureFixture[str]
) -> None:
    _patch_config(monkeypatch, SyncConfig(company_id="co", database_url=database_url))
    snapshot = tmp_path / "fg.csv"
    snapshot.write_text("Model #,Serial #,Inv Qty\nM1,F1,1\nM2,F2,2\n", encoding="utf-8")

    exit_code = cli.main(["import-snapshot", str(snapshot), "--type", "FG", "--location", "loc"])

    assert exit_code == cli.EXIT_OK
    assert '"location_id": "loc"' in capsys.readouterr().out
    engine = sa.create_engine(database_url.replace("+aiosqlite", ""))
    with engine.connect() as connection:
        serials = connection.execute(sa.text("SELECT serial FROM inventory_items ORDER BY serial")).scalars().all()
    engine.dispose()
    assert serials == ["F1", "F2"]
