"""Per-user study operations: plan generation, mood adaptation and progress tracking."""

from __future__ import annotations

import logging
import math
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, TypeVar

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from .achievements import AchievementStatus, evaluate
from .config import Settings, get_settings
from .db.session import session_scope
from .emotion_adapter import AdaptationResult, adapt, normalize_emotion
from .errors import ConcurrencyError, InputValidationError, NotFoundError
from .plan_generator import GeneratedPlan, PlanGenerator, select_plan_generator
from .progress_ledger import (
    EmotionChecked,
    PlanCreated,
    ProgressState,
    SessionLogged,
    TaskCompleted,
    fold,
    resolve_timezone,
)
from .repositories.progress import progress_records
from .repositories.study_plans import normalize_username, study_plans
from .repositories.todos import todo_items
from .study_plan import (
    CHALLENGES,
    ENERGY_TIMES,
    KNOWLEDGE_LEVELS,
    MAX_AVAILABLE_HOURS,
    TODO_PRIORITIES,
    EmotionEntry,
    PlanInput,
    StudyPlan,
    StudySession,
    Task,
    TodoItem,
)
from .telemetry import emit_event
from .time_estimator import clamp_custom_base, is_known_subject, normalize_subject

logger = logging.getLogger(__name__)

T = TypeVar("T")

CHALLENGE_ALIASES: Dict[str, str] = {
    "difficulty focusing": "concentration",
    "focus": "concentration",
    "lack of motivation": "motivation",
    "too many distractions": "distractions",
    "time management": "time",
    "overwhelming workload": "workload",
    "stress": "anxiety",
}


def _clean_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _todo_title(value: Optional[str]) -> str:
    title = _clean_text(value)
    if not title:
        raise InputValidationError("title", "To-do title is required.")
    return title


def _todo_priority(value: Optional[str]) -> str:
    priority = (value or "").strip().lower()
    if priority not in TODO_PRIORITIES:
        raise InputValidationError("priority", f"Expected one of: {', '.join(TODO_PRIORITIES)}.")
    return priority


def normalize_challenges(challenges: Optional[Iterable[str]]) -> List[str]:
    normalized: List[str] = []
    for raw in challenges or []:
        key = " ".join((raw or "").strip().lower().split())
        if not key:
            continue
        key = CHALLENGE_ALIASES.get(key, key)
        if key not in CHALLENGES:
            allowed = ", ".join(CHALLENGES)
            raise InputValidationError("challenges", f"Unknown challenge '{raw}'. Expected one of: {allowed}.")
        if key not in normalized:
            normalized.append(key)
    return normalized


def validate_plan_input(
    *,
    tasks: Optional[str],
    hours: Optional[float],
    subject: Optional[str],
    custom_subject: Optional[str] = None,
    custom_minutes: Optional[int] = None,
    knowledge_level: Optional[str] = None,
    energy_time: Optional[str] = None,
    challenges: Optional[Sequence[str]] = None,
    deadline: Optional[str] = None,
) -> PlanInput:
    """Check raw request fields and return a normalised :class:`PlanInput`."""
    if not tasks or not any(line.strip() for line in tasks.splitlines()):
        raise InputValidationError("tasks", "Add at least one task to plan.")
    if hours is None or hours <= 0:
        raise InputValidationError("hours", "Available hours must be greater than zero.")
    if hours > MAX_AVAILABLE_HOURS:
        raise InputValidationError("hours", f"Available hours cannot exceed {MAX_AVAILABLE_HOURS}.")
    line_count = sum(1 for line in tasks.splitlines() if line.strip())
    if math.floor(hours * 60) < line_count:
        raise InputValidationError(
            "hours",
            f"{hours:g} hours leaves less than one minute for each of the {line_count} tasks.",
        )

    level = (knowledge_level or "intermediate").strip().lower()
    if level not in KNOWLEDGE_LEVELS:
        raise InputValidationError("knowledge_level", f"Expected one of: {', '.join(KNOWLEDGE_LEVELS)}.")
    energy = (energy_time or "morning").strip().lower()
    if energy not in ENERGY_TIMES:
        raise InputValidationError("energy_time", f"Expected one of: {', '.join(ENERGY_TIMES)}.")

    custom_name = _clean_text(custom_subject)
    subject_key = normalize_subject(subject)
    if not subject_key and not custom_name:
        raise InputValidationError("subject", "Choose a subject or name a custom one.")
    if custom_minutes is not None and custom_minutes <= 0:
        raise InputValidationError("custom_minutes", "Custom minutes per topic must be positive.")

    return PlanInput(
        raw_tasks=tasks.strip("\n"),
        hours=hours,
        subject=subject_key or "other",
        custom_subject=custom_name,
        custom_minutes=custom_minutes,
        knowledge_level=level,  # type: ignore[arg-type]
        energy_time=energy,  # type: ignore[arg-type]
        challenges=normalize_challenges(challenges),
        deadline=_clean_text(deadline),
    )


@dataclass(frozen=True)
class TaskCompletionOutcome:
    task: Task
    progress: ProgressState
    newly_completed: bool


@dataclass(frozen=True)
class EmotionAdaptationOutcome:
    plan: StudyPlan
    adaptation: AdaptationResult
    progress: Optional[ProgressState] = None


class StudyService:
    """Request-scoped operations over one user's plans and progress ledger."""

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        generator_factory: Callable[[Settings], PlanGenerator] = select_plan_generator,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._settings = settings
        self._generator_factory = generator_factory
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def settings(self) -> Settings:
        return self._settings or get_settings()

    # ------------------------------------------------------------------
    # Plans
    # ------------------------------------------------------------------

    async def generate_plan(self, username: str, plan_input: PlanInput) -> StudyPlan:
        normalized = normalize_username(username)
        custom_base = await run_in_threadpool(self._resolve_custom_base, normalized, plan_input)
        generated = await self._generator_factory(self.settings).generate(
            plan_input, custom_base_minutes=custom_base
        )
        plan = self._plan_from_generation(normalized, plan_input, generated)

        def persist(session: Session) -> StudyPlan:
            if custom_base is not None and plan_input.custom_subject:
                study_plans.remember_custom_base(session, normalized, plan_input.custom_subject, custom_base)
            stored = study_plans.create(session, plan)
            progress_records.append_event(
                session,
                normalized,
                PlanCreated(occurred_at=stored.created_at, plan_id=stored.id),
            )
            return stored

        stored = await run_in_threadpool(self._write, normalized, persist)
        emit_event(
            "plan_generated",
            username=normalized,
            plan_id=stored.id,
            source=stored.source,
            used_fallback=stored.used_fallback,
            tasks=len(stored.tasks()),
            study_minutes=stored.total_study_minutes,
        )
        return stored

    async def regenerate_plan(self, username: str, plan_id: str) -> StudyPlan:
        """Build a fresh plan from an existing plan's inputs; the original stays untouched."""
        normalized = normalize_username(username)
        previous = await run_in_threadpool(self.get_plan, normalized, plan_id)
        plan_input = previous.to_input()
        custom_base = await run_in_threadpool(self._resolve_custom_base, normalized, plan_input)
        generated = await self._generator_factory(self.settings).generate(
            plan_input, custom_base_minutes=custom_base
        )
        plan = self._plan_from_generation(normalized, plan_input, generated).model_copy(
            update={"regenerated_from": previous.id}
        )
        stored = await run_in_threadpool(self._write, normalized, lambda session: study_plans.create(session, plan))
        emit_event(
            "plan_regenerated",
            username=normalized,
            plan_id=stored.id,
            regenerated_from=previous.id,
            source=stored.source,
            used_fallback=stored.used_fallback,
        )
        return stored

    def get_plan(self, username: str, plan_id: str) -> StudyPlan:
        with session_scope(commit=False) as session:
            return study_plans.get(session, username, plan_id)

    def list_plans(self, username: str, *, limit: int = 20) -> List[StudyPlan]:
        with session_scope(commit=False) as session:
            return study_plans.history(session, username, limit=limit)

    def latest_plan(self, username: str) -> StudyPlan:
        with session_scope(commit=False) as session:
            plan = study_plans.latest(session, username)
        if plan is None:
            raise NotFoundError(f"'{username}' has no study plans yet.")
        return plan

    # ------------------------------------------------------------------
    # Mood
    # ------------------------------------------------------------------

    def adapt_to_emotion(
        self,
        username: str,
        plan_id: str,
        emotion: str,
        *,
        intensity: Optional[int] = None,
        record: bool = False,
    ) -> EmotionAdaptationOutcome:
        normalized = normalize_username(username)
        canonical = normalize_emotion(emotion)
        if record:
            self._check_intensity(intensity)

        def persist(session: Session) -> Tuple[StudyPlan, AdaptationResult]:
            plan = study_plans.get(session, normalized, plan_id)
            result = adapt(plan.items, canonical)
            stored = study_plans.reorder(
                session,
                normalized,
                plan_id,
                [item.id for item in result.items],
                emotion=canonical,
            )
            if record:
                self._append_emotion(session, normalized, canonical, intensity or 3, None)
            return stored, result

        stored, result = self._write(normalized, persist)
        progress = self.get_progress(normalized) if record else None
        emit_event(
            "plan_adapted",
            username=normalized,
            plan_id=plan_id,
            emotion=canonical,
            reordered=result.policy.sort_easy_first,
        )
        return EmotionAdaptationOutcome(plan=stored, adaptation=result, progress=progress)

    def record_emotion(
        self,
        username: str,
        emotion: str,
        intensity: int = 3,
        context: Optional[str] = None,
    ) -> Tuple[EmotionEntry, ProgressState]:
        normalized = normalize_username(username)
        canonical = normalize_emotion(emotion)
        self._check_intensity(intensity)
        entry = self._write(
            normalized,
            lambda session: self._append_emotion(session, normalized, canonical, intensity, _clean_text(context)),
        )
        emit_event("emotion_checked", username=normalized, emotion=canonical, intensity=intensity)
        return entry, self.get_progress(normalized)

    def list_emotions(self, username: str, *, limit: int = 50) -> List[EmotionEntry]:
        with session_scope(commit=False) as session:
            return progress_records.emotions(session, username, limit=limit)

    # ------------------------------------------------------------------
    # Tasks and sessions
    # ------------------------------------------------------------------

    def start_task(self, username: str, plan_id: str, task_id: int) -> Task:
        normalized = normalize_username(username)
        task = self._write(normalized, lambda session: study_plans.start_task(session, normalized, plan_id, task_id))
        emit_event("task_started", username=normalized, plan_id=plan_id, task_id=task_id)
        return task

    def record_task_completion(self, username: str, plan_id: str, task_id: int) -> TaskCompletionOutcome:
        """Complete a task and credit it to the ledger exactly once."""
        normalized = normalize_username(username)
        moment = self._clock()

        def persist(session: Session) -> Tuple[Task, bool]:
            task, flipped = study_plans.complete_task(session, normalized, plan_id, task_id, completed_at=moment)
            if flipped:
                progress_records.append_event(
                    session,
                    normalized,
                    TaskCompleted(task_id=task.id, subject=task.subject, plan_id=plan_id, occurred_at=moment),
                )
            return task, flipped

        task, flipped = self._write(normalized, persist)
        progress = self.get_progress(normalized)
        if flipped:
            emit_event(
                "task_completed",
                username=normalized,
                plan_id=plan_id,
                task_id=task_id,
                xp=progress.xp,
                level=progress.level,
                streak=progress.current_streak,
            )
        else:
            logger.info("Task %s in plan %s already completed for %s", task_id, plan_id, normalized)
        return TaskCompletionOutcome(task=task, progress=progress, newly_completed=flipped)

    def log_study_session(self, username: str, study_session: StudySession) -> Tuple[StudySession, ProgressState]:
        normalized = normalize_username(username)

        def persist(session: Session) -> StudySession:
            if study_session.plan_id:
                plan = study_plans.get(session, normalized, study_session.plan_id)
                if study_session.task_id is not None and plan.find_item(study_session.task_id) is None:
                    raise NotFoundError(f"Task {study_session.task_id} does not exist in plan '{plan.id}'.")
            stored = progress_records.log_session(session, normalized, study_session)
            progress_records.append_event(
                session,
                normalized,
                SessionLogged(duration_minutes=stored.duration, occurred_at=stored.started_at),
            )
            return stored

        stored = self._write(normalized, persist)
        emit_event("session_logged", username=normalized, minutes=stored.duration, focus_level=stored.focus_level)
        return stored, self.get_progress(normalized)

    def list_sessions(self, username: str, *, limit: int = 50) -> List[StudySession]:
        with session_scope(commit=False) as session:
            return progress_records.sessions(session, username, limit=limit)

    def complete_study_session(self, username: str, session_id: str) -> Tuple[StudySession, bool]:
        """Mark a logged session finished. Repeat calls keep the first completion time."""
        normalized = normalize_username(username)
        moment = self._clock()
        stored, stamped = self._write(
            normalized,
            lambda session: progress_records.complete_session(session, normalized, session_id, completed_at=moment),
        )
        if stamped:
            emit_event("session_completed", username=normalized, session_id=session_id, minutes=stored.duration)
        return stored, stamped

    # ------------------------------------------------------------------
    # To-do list
    # ------------------------------------------------------------------

    def create_todo(
        self,
        username: str,
        title: Optional[str],
        *,
        description: Optional[str] = None,
        priority: Optional[str] = None,
        due_date: Optional[datetime] = None,
        plan_id: Optional[str] = None,
    ) -> TodoItem:
        normalized = normalize_username(username)
        item = TodoItem(
            plan_id=plan_id,
            title=_todo_title(title),
            description=_clean_text(description),
            priority=_todo_priority(priority or "medium"),  # type: ignore[arg-type]
            due_date=due_date,
            created_at=self._clock(),
        )

        def persist(session: Session) -> TodoItem:
            if plan_id:
                study_plans.get(session, normalized, plan_id)
            return todo_items.create(session, normalized, item)

        return self._write(normalized, persist)

    def list_todos(self, username: str) -> List[TodoItem]:
        with session_scope(commit=False) as session:
            return todo_items.list_items(session, username)

    def get_todo(self, username: str, todo_id: str) -> TodoItem:
        with session_scope(commit=False) as session:
            return todo_items.get(session, username, todo_id)

    def update_todo(self, username: str, todo_id: str, changes: Mapping[str, Any]) -> TodoItem:
        normalized = normalize_username(username)
        cleaned: Dict[str, Any] = {}
        for key, value in changes.items():
            if key == "title":
                cleaned[key] = _todo_title(value)
            elif key == "priority":
                cleaned[key] = _todo_priority(value)
            elif key == "completed":
                if value is None:
                    raise InputValidationError("completed", "Completed must be true or false.")
                cleaned[key] = bool(value)
            elif key == "description":
                cleaned[key] = _clean_text(value)
            elif key == "due_date":
                cleaned[key] = value
        return self._write(normalized, lambda session: todo_items.update(session, normalized, todo_id, cleaned))

    def delete_todo(self, username: str, todo_id: str) -> None:
        normalized = normalize_username(username)
        self._write(normalized, lambda session: todo_items.delete(session, normalized, todo_id))

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def get_progress(self, username: str) -> ProgressState:
        with session_scope(commit=False) as session:
            events = progress_records.events(session, username)
        return fold(events, resolve_timezone(self.settings.timezone))

    def get_achievements(self, username: str) -> List[AchievementStatus]:
        return evaluate(self.get_progress(username))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _user_lock(self, username: str) -> Iterator[None]:
        with self._locks_guard:
            lock = self._locks.setdefault(username, threading.Lock())
        with lock:
            yield

    def _write(self, username: str, operation: Callable[[Session], T]) -> T:
        """Run ``operation`` in its own transaction, retrying once on a ledger conflict."""
        with self._user_lock(username):
            try:
                with session_scope() as session:
                    return operation(session)
            except ConcurrencyError as exc:
                logger.warning("Retrying write for %s after concurrent update: %s", username, exc)
            with session_scope() as session:
                return operation(session)

    def _append_emotion(
        self,
        session: Session,
        username: str,
        emotion: str,
        intensity: int,
        context: Optional[str],
    ) -> EmotionEntry:
        moment = self._clock()
        entry = progress_records.record_emotion(
            session,
            username,
            EmotionEntry(emotion=emotion, intensity=intensity, context=context, recorded_at=moment),
        )
        progress_records.append_event(session, username, EmotionChecked(emotion=emotion, occurred_at=moment))
        return entry

    @staticmethod
    def _check_intensity(intensity: Optional[int]) -> None:
        if intensity is not None and not 1 <= intensity <= 5:
            raise InputValidationError("intensity", "Intensity must be between 1 and 5.")

    def _resolve_custom_base(self, username: str, plan_input: PlanInput) -> Optional[int]:
        if not plan_input.custom_subject or is_known_subject(plan_input.custom_subject):
            return None
        with session_scope(commit=False) as session:
            stored = study_plans.get_custom_base(session, username, plan_input.custom_subject)
        if stored is not None:
            return stored
        return clamp_custom_base(plan_input.custom_minutes)

    def _plan_from_generation(self, username: str, plan_input: PlanInput, generated: GeneratedPlan) -> StudyPlan:
        return StudyPlan(
            username=username,
            subject=plan_input.subject,
            custom_subject=plan_input.custom_subject,
            knowledge_level=plan_input.knowledge_level,
            energy_time=plan_input.energy_time,
            available_hours=plan_input.hours,
            challenges=list(plan_input.challenges),
            raw_tasks=plan_input.raw_tasks,
            deadline=plan_input.deadline,
            items=list(generated.items),
            source=generated.source,
            used_fallback=generated.used_fallback,
            fallback_reason=generated.fallback_reason,
            personalized_message=generated.personalized_message,
            adaptations=list(generated.adaptations),
            created_at=self._clock(),
        )


study_service = StudyService()

__all__ = [
    "CHALLENGE_ALIASES",
    "EmotionAdaptationOutcome",
    "StudyService",
    "TaskCompletionOutcome",
    "normalize_challenges",
    "study_service",
    "validate_plan_input",
]
