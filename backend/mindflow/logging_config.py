"""Process logging for the MindFlow API.

Planner warnings (dropped task lines, provider fallbacks, ledger retries) go
through the ``mindflow`` logger tree, which gets its own level so a quiet
deployment can still trace plan generation.
"""

import logging
import os
from logging.config import dictConfig

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s | %(message)s"

# Loggers that print provider request and response traffic at DEBUG.
PROVIDER_DEBUG_LOGGERS = ("httpx", "openai", "openai.agents")


def _level(variable: str, default: str) -> str:
    return os.getenv(variable, default).strip().upper() or default


def configure_logging() -> None:
    """Apply MINDFLOW_LOG_LEVEL to the root logger and MINDFLOW_PLANNER_LOG_LEVEL to ``mindflow``.

    ``MINDFLOW_SQL_LOG_LEVEL`` controls statement logging and
    ``MINDFLOW_DEBUG_HTTP=1`` exposes traffic to the plan provider.
    """
    root_level = _level("MINDFLOW_LOG_LEVEL", "INFO")

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"mindflow": {"format": LOG_FORMAT}},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "mindflow",
                },
            },
            "root": {"handlers": ["console"], "level": root_level},
            "loggers": {
                "mindflow": {"level": _level("MINDFLOW_PLANNER_LOG_LEVEL", root_level)},
                "sqlalchemy.engine": {"level": _level("MINDFLOW_SQL_LOG_LEVEL", "WARNING")},
            },
        }
    )

    if os.getenv("MINDFLOW_DEBUG_HTTP", "0") == "1":
        for name in PROVIDER_DEBUG_LOGGERS:
            logging.getLogger(name).setLevel(logging.DEBUG)
        logging.getLogger("mindflow").debug("Provider HTTP debug logging enabled for %s", ", ".join(PROVIDER_DEBUG_LOGGERS))


__all__ = ["LOG_FORMAT", "PROVIDER_DEBUG_LOGGERS", "configure_logging"]
