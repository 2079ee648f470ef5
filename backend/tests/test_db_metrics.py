from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from mindflow.db.base import Base
from mindflow.db.models import EmotionEntryModel
from scripts import db_metrics


def test_snapshot_counts_rows_per_table() -> None:
    engine = create_engine("sqlite://", poolclass=StaticPool, connect_args={"check_same_thread": False})
    try:
        Base.metadata.create_all(engine)
        with Session(engine) as session:
            session.add(
                EmotionEntryModel(
                    username="metrics-user",
                    emotion="calm",
                    intensity=3,
                    recorded_at=datetime.now(timezone.utc),
                )
            )
            session.commit()

        snapshot = db_metrics.collect_snapshot(engine)

        assert snapshot["dialect"] == "sqlite"
        assert snapshot["rows"]["emotion_entries"] == 1
        assert snapshot["rows"]["study_plans"] == 0
        assert "status" in snapshot["pool"]
    finally:
        engine.dispose()


def test_main_returns_error_code_when_engine_fails(monkeypatch) -> None:
    def broken_engine():
        raise RuntimeError("no database configured")

    monkeypatch.setattr(db_metrics, "get_engine", broken_engine)
    assert db_metrics.main() == 1
