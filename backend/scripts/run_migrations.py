"""Apply Alembic migrations for the MindFlow database.

Deploys call this before the API starts so the plan, ledger and journal tables
match the ORM models. Network databases are polled until they accept a
connection; SQLite files are upgraded straight away.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import OperationalError, SQLAlchemyError

LOGGER = logging.getLogger("mindflow.migrations")
DEFAULT_TIMEOUT = int(os.getenv("MINDFLOW_DB_MIGRATION_TIMEOUT", "60"))
DEFAULT_POLL_INTERVAL = float(os.getenv("MINDFLOW_DB_MIGRATION_POLL_INTERVAL", "3"))
SCRIPT_DIR = Path(__file__).resolve().parent
BACKEND_ROOT = SCRIPT_DIR.parent


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Upgrade the MindFlow schema.")
    parser.add_argument(
        "--revision",
        default=os.getenv("MINDFLOW_DB_MIGRATION_REVISION", "head"),
        help="Revision identifier to upgrade to (default: head).",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=DEFAULT_TIMEOUT,
        help=f"Seconds to wait for the database to accept connections (default: {DEFAULT_TIMEOUT}).",
    )
    parser.add_argument(
        "--poll-interval",
        type=float,
        default=DEFAULT_POLL_INTERVAL,
        help=f"Seconds between connection attempts (default: {DEFAULT_POLL_INTERVAL}).",
    )
    parser.add_argument(
        "--sql",
        action="store_true",
        help="Print the migration SQL instead of applying it.",
    )
    parser.add_argument(
        "--config",
        default=str(BACKEND_ROOT / "alembic.ini"),
        help="Path to alembic.ini.",
    )
    return parser.parse_args(argv)


def _escape(value: str) -> str:
    return value.replace("%", "%%")


def get_alembic_config(config_path: str) -> Config:
    # alembic.ini interpolates the URL from these defaults.
    config = Config(
        config_path,
        config_args={"MINDFLOW_DATABASE_URL": _escape(os.getenv("MINDFLOW_DATABASE_URL", ""))},
    )
    config.set_main_option("script_location", str(BACKEND_ROOT / "alembic"))
    return config


def resolve_database_url(config: Config) -> str:
    url = config.get_main_option("sqlalchemy.url")
    if url:
        return url
    env_url = os.getenv("MINDFLOW_DATABASE_URL")
    if not env_url:
        raise RuntimeError("MINDFLOW_DATABASE_URL must be set before running migrations.")
    config.set_main_option("sqlalchemy.url", _escape(env_url))
    return env_url


def needs_readiness_wait(database_url: str) -> bool:
    return make_url(database_url).get_backend_name() != "sqlite"


def wait_for_database(database_url: str, *, timeout: int, poll_interval: float) -> None:
    """Retry `SELECT 1` until it succeeds; give up after ``timeout`` seconds."""
    engine: Engine = create_engine(database_url, pool_pre_ping=True)
    deadline = time.monotonic() + timeout
    attempt = 0
    last_error: Optional[Exception] = None
    try:
        while time.monotonic() < deadline:
            attempt += 1
            try:
                with engine.connect() as connection:
                    connection.execute(text("SELECT 1"))
            except OperationalError as exc:
                last_error = exc
                LOGGER.warning("Database not reachable (attempt %d): %s", attempt, exc)
            except SQLAlchemyError as exc:
                LOGGER.error("Readiness check failed permanently: %s", exc)
                raise RuntimeError("Database rejected the readiness check.") from exc
            else:
                LOGGER.info("Database reachable after %d attempt(s).", attempt)
                return
            time.sleep(poll_interval)
    finally:
        engine.dispose()
    raise RuntimeError(f"Database did not become ready within {timeout}s.") from last_error


def run_migrations(
    revision: str,
    *,
    timeout: int,
    poll_interval: float,
    config: Optional[Config] = None,
    sql: bool = False,
) -> None:
    config = config or get_alembic_config(str(BACKEND_ROOT / "alembic.ini"))
    database_url = resolve_database_url(config)
    if sql:
        LOGGER.info("Rendering migration SQL up to %s", revision)
        command.upgrade(config, revision, sql=True)
        return
    LOGGER.info("Upgrading schema to %s", revision)
    if needs_readiness_wait(database_url):
        wait_for_database(database_url, timeout=timeout, poll_interval=poll_interval)
    command.upgrade(config, revision)
    LOGGER.info("Schema is at %s.", revision)


def main(argv: Optional[list[str]] = None) -> int:
    logging.basicConfig(
        level=os.getenv("MINDFLOW_DB_MIGRATION_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    args = parse_args(argv)
    try:
        run_migrations(
            args.revision,
            timeout=args.timeout,
            poll_interval=args.poll_interval,
            config=get_alembic_config(args.config),
            sql=args.sql,
        )
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Migration run failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
