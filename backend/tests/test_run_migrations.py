from __future__ import annotations

import types

import pytest
from alembic.config import Config

from scripts import run_migrations as runner


def _config(url: str = "") -> Config:
    config = Config()
    config.set_main_option("sqlalchemy.url", url)
    config.set_main_option("script_location", "alembic")
    return config


def test_resolve_database_url_falls_back_to_env(monkeypatch) -> None:
    monkeypatch.setenv("MINDFLOW_DATABASE_URL", "sqlite://")
    config = _config()
    assert runner.resolve_database_url(config) == "sqlite://"
    assert config.get_main_option("sqlalchemy.url") == "sqlite://"


def test_resolve_database_url_requires_a_url(monkeypatch) -> None:
    monkeypatch.delenv("MINDFLOW_DATABASE_URL", raising=False)
    with pytest.raises(RuntimeError):
        runner.resolve_database_url(_config())


def test_config_interpolates_env_url(monkeypatch) -> None:
    monkeypatch.setenv("MINDFLOW_DATABASE_URL", "postgresql://mindflow:p%40ss@db/mindflow")
    config = runner.get_alembic_config(str(runner.BACKEND_ROOT / "alembic.ini"))
    assert config.get_main_option("sqlalchemy.url") == "postgresql://mindflow:p%40ss@db/mindflow"
    assert config.get_main_option("script_location").endswith("alembic")


def test_wait_for_database_succeeds_with_sqlite(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'test.sqlite'}"
    runner.wait_for_database(url, timeout=2, poll_interval=0.1)


def test_wait_for_database_times_out(monkeypatch) -> None:
    class DummyEngine:
        def connect(self) -> types.SimpleNamespace:
            raise runner.OperationalError("SELECT 1", {}, Exception("boom"))

        def dispose(self) -> None:
            pass

    monkeypatch.setattr(runner, "create_engine", lambda *_, **__: DummyEngine())
    with pytest.raises(RuntimeError):
        runner.wait_for_database("postgresql://example", timeout=0, poll_interval=0)


def test_sqlite_upgrades_without_waiting_for_the_database(monkeypatch) -> None:
    recorded: dict[str, object] = {}

    def fake_wait(url: str, *, timeout: int, poll_interval: float) -> None:
        recorded["wait"] = url

    def fake_upgrade(cfg, revision: str, sql: bool = False) -> None:
        recorded["revision"] = revision
        recorded["sql"] = sql

    monkeypatch.setattr(runner, "wait_for_database", fake_wait)
    monkeypatch.setattr(runner.command, "upgrade", fake_upgrade)

    runner.run_migrations("head", timeout=5, poll_interval=0.1, config=_config("sqlite:///mindflow.db"))

    assert recorded == {"revision": "head", "sql": False}


def test_network_database_is_awaited_before_upgrade(monkeypatch) -> None:
    calls: list[str] = []

    monkeypatch.setattr(runner, "wait_for_database", lambda url, **_: calls.append(f"wait:{url}"))
    monkeypatch.setattr(runner.command, "upgrade", lambda cfg, revision, **_: calls.append(f"upgrade:{revision}"))

    runner.run_migrations(
        "20251101_01_initial_schema",
        timeout=5,
        poll_interval=0.1,
        config=_config("postgresql://mindflow@db/mindflow"),
    )

    assert calls == ["wait:postgresql://mindflow@db/mindflow", "upgrade:20251101_01_initial_schema"]


def test_sql_mode_renders_without_connecting(monkeypatch) -> None:
    recorded: dict[str, object] = {}

    def fail_wait(*_, **__) -> None:
        raise AssertionError("SQL rendering must not connect to the database")

    def fake_upgrade(cfg, revision: str, sql: bool = False) -> None:
        recorded["sql"] = sql

    monkeypatch.setattr(runner, "wait_for_database", fail_wait)
    monkeypatch.setattr(runner.command, "upgrade", fake_upgrade)

    runner.run_migrations("head", timeout=1, poll_interval=0.1, config=_config("postgresql://db/x"), sql=True)

    assert recorded["sql"] is True


def test_main_reports_failures(monkeypatch) -> None:
    monkeypatch.delenv("MINDFLOW_DATABASE_URL", raising=False)
    monkeypatch.setattr(runner, "get_alembic_config", lambda path: _config())
    assert runner.main(["--revision", "head"]) == 1
