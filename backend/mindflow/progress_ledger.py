"""Append-only progress events and the derived XP, level and streak snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Dict, Iterable, Literal, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

XP_PER_LEVEL = 100
XP_TASK_COMPLETED = 15
XP_EMOTION_CHECKED = 5
XP_PLAN_CREATED = 25
XP_SESSION_LOGGED = 0

EventKind = Literal["task_completed", "session_logged", "emotion_checked", "plan_created"]
ACTIVITY_KINDS = frozenset({"task_completed", "session_logged"})


@dataclass(frozen=True)
class TaskCompleted:
    task_id: int
    subject: str
    occurred_at: datetime
    plan_id: Optional[str] = None
    sequence: int = 0
    kind: EventKind = field(default="task_completed", init=False)


@dataclass(frozen=True)
class SessionLogged:
    duration_minutes: int
    occurred_at: datetime
    sequence: int = 0
    kind: EventKind = field(default="session_logged", init=False)


@dataclass(frozen=True)
class EmotionChecked:
    emotion: str
    occurred_at: datetime
    sequence: int = 0
    kind: EventKind = field(default="emotion_checked", init=False)


@dataclass(frozen=True)
class PlanCreated:
    occurred_at: datetime
    plan_id: Optional[str] = None
    sequence: int = 0
    kind: EventKind = field(default="plan_created", init=False)


ProgressEvent = Union[TaskCompleted, SessionLogged, EmotionChecked, PlanCreated]


def level_for_xp(xp: int) -> int:
    return max(xp, 0) // XP_PER_LEVEL + 1


@dataclass(frozen=True)
class ProgressState:
    xp: int = 0
    current_streak: int = 0
    longest_streak: int = 0
    last_activity_date: Optional[date] = None
    total_study_minutes: int = 0
    tasks_completed: int = 0
    plans_created: int = 0
    emotion_checkins: int = 0

    @property
    def level(self) -> int:
        return level_for_xp(self.xp)

    @property
    def xp_into_level(self) -> int:
        return self.xp % XP_PER_LEVEL

    @property
    def xp_to_next_level(self) -> int:
        return XP_PER_LEVEL - self.xp_into_level

    def metric(self, name: str) -> int:
        value = getattr(self, name)
        return int(value or 0)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "xp": self.xp,
            "level": self.level,
            "xp_into_level": self.xp_into_level,
            "xp_to_next_level": self.xp_to_next_level,
            "current_streak": self.current_streak,
            "longest_streak": self.longest_streak,
            "last_activity_date": self.last_activity_date.isoformat() if self.last_activity_date else None,
            "total_study_minutes": self.total_study_minutes,
            "tasks_completed": self.tasks_completed,
            "plans_created": self.plans_created,
            "emotion_checkins": self.emotion_checkins,
        }


def resolve_timezone(name: str | None) -> tzinfo:
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def _aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def activity_day(moment: datetime, tz: tzinfo) -> date:
    return _aware(moment).astimezone(tz).date()


def _advance_streak(state: ProgressState, day: date) -> ProgressState:
    last = state.last_activity_date
    if last is None:
        current = 1
    else:
        gap = (day - last).days
        if gap < 0:
            return state
        if gap == 0:
            current = max(state.current_streak, 1)
        elif gap == 1:
            current = state.current_streak + 1
        else:
            current = 1
    return replace(
        state,
        current_streak=current,
        longest_streak=max(state.longest_streak, current),
        last_activity_date=day,
    )


def apply_event(state: ProgressState, event: ProgressEvent, tz: tzinfo = timezone.utc) -> ProgressState:
    """Return the snapshot that results from applying one event."""
    if isinstance(event, TaskCompleted):
        state = replace(state, tasks_completed=state.tasks_completed + 1, xp=state.xp + XP_TASK_COMPLETED)
    elif isinstance(event, SessionLogged):
        state = replace(
            state,
            total_study_minutes=state.total_study_minutes + max(event.duration_minutes, 0),
            xp=state.xp + XP_SESSION_LOGGED,
        )
    elif isinstance(event, EmotionChecked):
        state = replace(state, emotion_checkins=state.emotion_checkins + 1, xp=state.xp + XP_EMOTION_CHECKED)
    elif isinstance(event, PlanCreated):
        state = replace(state, plans_created=state.plans_created + 1, xp=state.xp + XP_PLAN_CREATED)
    else:
        raise TypeError(f"Unsupported progress event: {event!r}")

    if event.kind in ACTIVITY_KINDS:
        state = _advance_streak(state, activity_day(event.occurred_at, tz))
    return state


def fold(events: Iterable[ProgressEvent], tz: tzinfo = timezone.utc) -> ProgressState:
    """Derive a progress snapshot from the full event history."""
    ordered = sorted(events, key=lambda event: (_aware(event.occurred_at), event.sequence))
    state = ProgressState()
    for event in ordered:
        state = apply_event(state, event, tz)
    return state


def event_payload(event: ProgressEvent) -> Dict[str, Any]:
    """Serialisable body of an event, excluding ordering fields."""
    if isinstance(event, TaskCompleted):
        return {"task_id": event.task_id, "subject": event.subject, "plan_id": event.plan_id}
    if isinstance(event, SessionLogged):
        return {"duration_minutes": event.duration_minutes}
    if isinstance(event, EmotionChecked):
        return {"emotion": event.emotion}
    return {"plan_id": event.plan_id}


def event_from_record(kind: str, payload: Dict[str, Any], occurred_at: datetime, sequence: int) -> ProgressEvent:
    if kind == "task_completed":
        return TaskCompleted(
            task_id=int(payload.get("task_id", 0)),
            subject=str(payload.get("subject", "")),
            plan_id=payload.get("plan_id"),
            occurred_at=occurred_at,
            sequence=sequence,
        )
    if kind == "session_logged":
        return SessionLogged(
            duration_minutes=int(payload.get("duration_minutes", 0)),
            occurred_at=occurred_at,
            sequence=sequence,
        )
    if kind == "emotion_checked":
        return EmotionChecked(emotion=str(payload.get("emotion", "")), occurred_at=occurred_at, sequence=sequence)
    if kind == "plan_created":
        return PlanCreated(plan_id=payload.get("plan_id"), occurred_at=occurred_at, sequence=sequence)
    raise ValueError(f"Unknown progress event kind '{kind}'.")


__all__ = [
    "ACTIVITY_KINDS",
    "EmotionChecked",
    "PlanCreated",
    "ProgressEvent",
    "ProgressState",
    "SessionLogged",
    "TaskCompleted",
    "XP_EMOTION_CHECKED",
    "XP_PER_LEVEL",
    "XP_PLAN_CREATED",
    "XP_SESSION_LOGGED",
    "XP_TASK_COMPLETED",
    "activity_day",
    "apply_event",
    "event_from_record",
    "event_payload",
    "fold",
    "level_for_xp",
    "resolve_timezone",
]
