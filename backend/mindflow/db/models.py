"""ORM models backing the MindFlow persistence layer."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import JSON

from .base import Base, TimestampMixin

JSONType = JSON


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StudyPlanModel(TimestampMixin, Base):
    __tablename__ = "study_plans"
    __table_args__ = (Index("ix_study_plans_username_generated", "username", "generated_at"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username: Mapped[str] = mapped_column(String(128), nullable=False)
    subject: Mapped[str] = mapped_column(String(128), nullable=False)
    custom_subject: Mapped[str | None] = mapped_column(String(128), nullable=True)
    knowledge_level: Mapped[str] = mapped_column(String(16), nullable=False)
    energy_time: Mapped[str] = mapped_column(String(16), nullable=False)
    available_hours: Mapped[float] = mapped_column(Float, nullable=False)
    challenges: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    raw_tasks: Mapped[str] = mapped_column(Text, nullable=False)
    deadline: Mapped[str | None] = mapped_column(String(64), nullable=True)
    source: Mapped[str] = mapped_column(String(16), default="algorithm", nullable=False)
    used_fallback: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    fallback_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    personalized_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    adaptations: Mapped[list[str]] = mapped_column(JSONType, default=list, nullable=False)
    last_emotion: Mapped[str | None] = mapped_column(String(32), nullable=True)
    regenerated_from_id: Mapped[Optional[str]] = mapped_column(
        String(36), ForeignKey("study_plans.id", ondelete="SET NULL"), nullable=True
    )
    generated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    items: Mapped[list["StudyPlanItemModel"]] = relationship(
        back_populates="plan",
        cascade="all, delete-orphan",
        order_by="StudyPlanItemModel.position",
    )


class StudyPlanItemModel(Base):
    __tablename__ = "study_plan_items"
    __table_args__ = (
        UniqueConstraint("plan_id", "item_id", name="uq_study_plan_items_plan_item"),
        Index("ix_study_plan_items_plan", "plan_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    plan_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("study_plans.id", ondelete="CASCADE"), nullable=False
    )
    item_id: Mapped[int] = mapped_column(Integer, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    difficulty: Mapped[str | None] = mapped_column(String(16), nullable=True)
    focus: Mapped[str | None] = mapped_column(Text, nullable=True)
    tip: Mapped[str | None] = mapped_column(Text, nullable=True)
    subject: Mapped[str | None] = mapped_column(String(128), nullable=True)
    activity: Mapped[str | None] = mapped_column(Text, nullable=True)
    progress: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    plan: Mapped[StudyPlanModel] = relationship(back_populates="items")


class ProgressEventModel(Base):
    __tablename__ = "progress_events"
    __table_args__ = (
        UniqueConstraint("username", "sequence", name="uq_progress_events_username_sequence"),
        Index("ix_progress_events_username", "username"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(128), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[str] = mapped_column(String(32), nullable=False)
    payload: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)


class EmotionEntryModel(Base):
    __tablename__ = "emotion_entries"
    __table_args__ = (Index("ix_emotion_entries_username", "username"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(128), nullable=False)
    emotion: Mapped[str] = mapped_column(String(32), nullable=False)
    intensity: Mapped[int] = mapped_column(Integer, default=3, nullable=False)
    context: Mapped[str | None] = mapped_column(Text, nullable=True)
    recorded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)


class StudySessionModel(Base):
    __tablename__ = "study_sessions"
    __table_args__ = (Index("ix_study_sessions_username", "username"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username: Mapped[str] = mapped_column(String(128), nullable=False)
    plan_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("study_plans.id", ondelete="SET NULL"), nullable=True
    )
    task_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    focus_level: Mapped[int | None] = mapped_column(Integer, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class TodoItemModel(Base):
    __tablename__ = "todo_items"
    __table_args__ = (Index("ix_todo_items_username", "username"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username: Mapped[str] = mapped_column(String(128), nullable=False)
    plan_id: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("study_plans.id", ondelete="SET NULL"), nullable=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[str] = mapped_column(String(16), default="medium", nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    due_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)


class CustomSubjectModel(TimestampMixin, Base):
    __tablename__ = "custom_subjects"
    __table_args__ = (UniqueConstraint("username", "name", name="uq_custom_subjects_username_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(128), nullable=False)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    base_minutes: Mapped[int] = mapped_column(Integer, nullable=False)


class PersistenceAuditEventModel(Base):
    __tablename__ = "persistence_audit_events"
    __table_args__ = (Index("ix_persistence_audit_events_username", "username"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    username: Mapped[str | None] = mapped_column(String(128), nullable=True)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    payload: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    actor: Mapped[str | None] = mapped_column(String(128))
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)


__all__ = [
    "CustomSubjectModel",
    "EmotionEntryModel",
    "PersistenceAuditEventModel",
    "ProgressEventModel",
    "StudyPlanItemModel",
    "StudyPlanModel",
    "StudySessionModel",
    "TodoItemModel",
]
