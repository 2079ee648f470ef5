"""Lazily built engine and transactional sessions for the study planner store."""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Generator, Optional

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.engine import URL, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import Settings, get_settings
from .monitoring import instrument_engine

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker[Session]] = None
_init_lock = threading.Lock()


def _is_memory_sqlite(url: URL) -> bool:
    database = url.database or ""
    return database in {"", ":memory:"} or "mode=memory" in str(url)


def _engine_options(url: URL, settings: Settings) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": settings.database_echo, "pool_pre_ping": True}
    if url.get_backend_name() == "sqlite":
        # Sync routes run in a threadpool, so connections cross threads.
        options["connect_args"] = {"check_same_thread": False}
        if _is_memory_sqlite(url):
            options["poolclass"] = StaticPool
    else:
        options["pool_size"] = settings.database_pool_size
        options["max_overflow"] = settings.database_max_overflow
    return options


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:  # type: ignore[no-untyped-def]
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _build_engine(settings: Settings) -> Engine:
    if not settings.database_url:
        raise RuntimeError("MINDFLOW_DATABASE_URL must be configured before using the database.")
    url = make_url(settings.database_url)
    engine = create_engine(url, **_engine_options(url, settings))
    if url.get_backend_name() == "sqlite":
        _enable_sqlite_foreign_keys(engine)
    instrument_engine(engine)
    if settings.database_auto_create:
        _create_schema(engine)
    return engine


def _create_schema(engine: Engine) -> None:
    from . import models  # noqa: F401
    from .base import Base

    Base.metadata.create_all(engine)
    logger.info("Study planner schema ready on %s", engine.url.render_as_string(hide_password=True))


def get_engine() -> Engine:
    """Return the process-wide engine, creating it on first use."""
    global _engine, _session_factory
    if _engine is not None:
        return _engine
    with _init_lock:
        if _engine is None:
            engine = _build_engine(get_settings())
            _session_factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
            _engine = engine
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _session_factory is None:
        get_engine()
    assert _session_factory is not None
    return _session_factory


@contextmanager
def session_scope(*, commit: bool = True) -> Generator[Session, None, None]:
    """Yield a session that commits on success and always rolls back on error."""
    session = get_session_factory()()
    try:
        yield session
        if commit:
            session.commit()
    except Exception:  # noqa: BLE001
        session.rollback()
        raise
    finally:
        session.close()


def dispose_engine() -> None:
    global _engine, _session_factory
    with _init_lock:
        if _engine is not None:
            _engine.dispose()
        _engine = None
        _session_factory = None


__all__ = [
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    "session_scope",
]
