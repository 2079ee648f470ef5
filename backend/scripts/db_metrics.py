"""Print a JSON snapshot of pool health and per-table row counts."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Dict

from sqlalchemy import func, select, text
from sqlalchemy.engine import Engine

from mindflow.db.models import (
    EmotionEntryModel,
    PersistenceAuditEventModel,
    ProgressEventModel,
    StudyPlanModel,
    StudySessionModel,
    TodoItemModel,
)
from mindflow.db.monitoring import get_pool_snapshot
from mindflow.db.session import get_engine

LOGGER = logging.getLogger("mindflow.db_metrics")

_COUNTED_MODELS = (
    StudyPlanModel,
    ProgressEventModel,
    EmotionEntryModel,
    StudySessionModel,
    TodoItemModel,
    PersistenceAuditEventModel,
)


def collect_row_counts(engine: Engine) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    with engine.connect() as connection:
        for model in _COUNTED_MODELS:
            counts[model.__tablename__] = connection.execute(
                select(func.count()).select_from(model.__table__)
            ).scalar_one()
    return counts


def collect_snapshot(engine: Engine) -> Dict[str, object]:
    with engine.connect() as connection:
        connection.execute(text("SELECT 1"))
    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "dialect": engine.dialect.name,
        "pool": get_pool_snapshot(engine),
        "rows": collect_row_counts(engine),
    }


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    try:
        print(json.dumps(collect_snapshot(get_engine())))
        return 0
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Failed to collect database metrics: %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
