"""Ledger, mood and study session persistence."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..db.models import (
    EmotionEntryModel,
    PersistenceAuditEventModel,
    ProgressEventModel,
    StudySessionModel,
)
from ..errors import ConcurrencyError, NotFoundError
from ..progress_ledger import ProgressEvent, event_from_record, event_payload
from ..study_plan import EmotionEntry, StudySession
from .study_plans import normalize_username

DEFAULT_ENTRY_LIMIT = 50


class ProgressRepository:
    """Append-only storage for progress events plus the mood and session journals."""

    def append_event(self, session: Session, username: str, event: ProgressEvent) -> int:
        """Append ``event`` at the next per-user sequence number and return it."""
        normalized = normalize_username(username)
        sequence = self._next_sequence(session, normalized)
        session.add(
            ProgressEventModel(
                username=normalized,
                sequence=sequence,
                kind=event.kind,
                payload=event_payload(event),
                occurred_at=event.occurred_at,
            )
        )
        try:
            session.flush()
        except IntegrityError as exc:
            raise ConcurrencyError(
                f"Progress sequence {sequence} for '{normalized}' was claimed by another writer."
            ) from exc
        return sequence

    def events(self, session: Session, username: str) -> List[ProgressEvent]:
        normalized = normalize_username(username)
        stmt = (
            select(ProgressEventModel)
            .where(ProgressEventModel.username == normalized)
            .order_by(ProgressEventModel.sequence)
        )
        return [
            event_from_record(row.kind, dict(row.payload or {}), row.occurred_at, row.sequence)
            for row in session.execute(stmt).scalars()
        ]

    def record_emotion(self, session: Session, username: str, entry: EmotionEntry) -> EmotionEntry:
        model = EmotionEntryModel(
            username=normalize_username(username),
            emotion=entry.emotion,
            intensity=entry.intensity,
            context=entry.context,
            recorded_at=entry.recorded_at,
        )
        session.add(model)
        session.flush()
        return entry.model_copy(update={"id": model.id})

    def emotions(self, session: Session, username: str, *, limit: int = DEFAULT_ENTRY_LIMIT) -> List[EmotionEntry]:
        stmt = (
            select(EmotionEntryModel)
            .where(EmotionEntryModel.username == normalize_username(username))
            .order_by(EmotionEntryModel.recorded_at.desc(), EmotionEntryModel.id.desc())
            .limit(max(limit, 1))
        )
        return [
            EmotionEntry(
                id=row.id,
                emotion=row.emotion,
                intensity=row.intensity,
                context=row.context,
                recorded_at=row.recorded_at,
            )
            for row in session.execute(stmt).scalars()
        ]

    def log_session(self, session: Session, username: str, study_session: StudySession) -> StudySession:
        session.add(
            StudySessionModel(
                id=study_session.id,
                username=normalize_username(username),
                plan_id=study_session.plan_id,
                task_id=study_session.task_id,
                duration=study_session.duration,
                focus_level=study_session.focus_level,
                notes=study_session.notes,
                started_at=study_session.started_at,
                completed_at=study_session.completed_at,
            )
        )
        session.flush()
        return study_session

    def sessions(self, session: Session, username: str, *, limit: int = DEFAULT_ENTRY_LIMIT) -> List[StudySession]:
        stmt = (
            select(StudySessionModel)
            .where(StudySessionModel.username == normalize_username(username))
            .order_by(StudySessionModel.started_at.desc())
            .limit(max(limit, 1))
        )
        return [self._session_from_row(row) for row in session.execute(stmt).scalars()]

    def complete_session(
        self,
        session: Session,
        username: str,
        session_id: str,
        *,
        completed_at: datetime,
    ) -> Tuple[StudySession, bool]:
        """Stamp ``completed_at`` once. The boolean is True only for the request that set it."""
        normalized = normalize_username(username)
        row = session.execute(
            select(StudySessionModel).where(
                StudySessionModel.id == session_id,
                StudySessionModel.username == normalized,
            )
        ).scalar_one_or_none()
        if row is None:
            raise NotFoundError(f"Study session '{session_id}' does not exist for '{username}'.")
        result = session.execute(
            update(StudySessionModel)
            .where(StudySessionModel.id == row.id, StudySessionModel.completed_at.is_(None))
            .values(completed_at=completed_at)
            .execution_options(synchronize_session=False)
        )
        session.refresh(row)
        return self._session_from_row(row), result.rowcount == 1

    def record_telemetry_event(
        self,
        session: Session,
        username: Optional[str],
        event_type: str,
        payload: Dict[str, Any],
    ) -> None:
        session.add(
            PersistenceAuditEventModel(
                username=normalize_username(username) if username else None,
                event_type=event_type,
                payload=payload,
                actor="telemetry",
            )
        )

    def recent_audit_events(
        self,
        session: Session,
        username: str,
        *,
        limit: int = DEFAULT_ENTRY_LIMIT,
    ) -> List[PersistenceAuditEventModel]:
        stmt = (
            select(PersistenceAuditEventModel)
            .where(PersistenceAuditEventModel.username == normalize_username(username))
            .order_by(PersistenceAuditEventModel.created_at.desc())
            .limit(max(limit, 1))
        )
        return list(session.execute(stmt).scalars())

    @staticmethod
    def _session_from_row(row: StudySessionModel) -> StudySession:
        return StudySession(
            id=row.id,
            plan_id=row.plan_id,
            task_id=row.task_id,
            duration=row.duration,
            focus_level=row.focus_level,
            notes=row.notes,
            started_at=row.started_at,
            completed_at=row.completed_at,
        )

    @staticmethod
    def _next_sequence(session: Session, username: str) -> int:
        stmt = select(func.coalesce(func.max(ProgressEventModel.sequence), 0)).where(
            ProgressEventModel.username == username
        )
        return int(session.execute(stmt).scalar_one()) + 1


progress_records = ProgressRepository()

__all__ = ["ProgressRepository", "progress_records"]
