from __future__ import annotations

import logging

import pytest

from mindflow.logging_config import PROVIDER_DEBUG_LOGGERS, configure_logging

_TOUCHED = ("", "mindflow", "sqlalchemy.engine", *PROVIDER_DEBUG_LOGGERS)


@pytest.fixture(autouse=True)
def _restore_levels():
    saved = {name: logging.getLogger(name or None).level for name in _TOUCHED}
    yield
    for name, level in saved.items():
        logging.getLogger(name or None).setLevel(level)


def test_planner_level_follows_root_unless_overridden(monkeypatch) -> None:
    monkeypatch.setenv("MINDFLOW_LOG_LEVEL", "warning")
    monkeypatch.delenv("MINDFLOW_PLANNER_LOG_LEVEL", raising=False)
    monkeypatch.setenv("MINDFLOW_DEBUG_HTTP", "0")
    configure_logging()
    assert logging.getLogger().level == logging.WARNING
    assert logging.getLogger("mindflow").level == logging.WARNING

    monkeypatch.setenv("MINDFLOW_PLANNER_LOG_LEVEL", "debug")
    configure_logging()
    assert logging.getLogger("mindflow").level == logging.DEBUG
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING


def test_debug_http_opens_provider_loggers(monkeypatch) -> None:
    monkeypatch.setenv("MINDFLOW_LOG_LEVEL", "INFO")
    monkeypatch.setenv("MINDFLOW_DEBUG_HTTP", "1")
    configure_logging()
    assert all(logging.getLogger(name).level == logging.DEBUG for name in PROVIDER_DEBUG_LOGGERS)
