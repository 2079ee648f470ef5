"""Database-backed study plan repository."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from ..db.models import (
    CustomSubjectModel,
    PersistenceAuditEventModel,
    StudyPlanItemModel,
    StudyPlanModel,
)
from ..errors import InputValidationError, NotFoundError
from ..study_plan import Break, ScheduleItem, StudyPlan, Task

DEFAULT_HISTORY_LIMIT = 20


def normalize_username(username: str) -> str:
    normalized = (username or "").strip().lower()
    if not normalized:
        raise InputValidationError("username", "Username cannot be empty.")
    return normalized


class StudyPlanRepository:
    """Persists plans with one row per schedule item so progress updates stay row-atomic."""

    def create(self, session: Session, plan: StudyPlan) -> StudyPlan:
        username = normalize_username(plan.username)
        model = StudyPlanModel(
            id=plan.id,
            username=username,
            subject=plan.subject,
            custom_subject=plan.custom_subject,
            knowledge_level=plan.knowledge_level,
            energy_time=plan.energy_time,
            available_hours=plan.available_hours,
            challenges=list(plan.challenges),
            raw_tasks=plan.raw_tasks,
            deadline=plan.deadline,
            source=plan.source,
            used_fallback=plan.used_fallback,
            fallback_reason=plan.fallback_reason,
            personalized_message=plan.personalized_message,
            adaptations=list(plan.adaptations),
            regenerated_from_id=plan.regenerated_from,
            generated_at=plan.created_at,
        )
        model.items = [self._item_model(item, position) for position, item in enumerate(plan.items)]
        session.add(model)
        session.flush()
        self._record_audit(
            session,
            username,
            "plan_created",
            {"plan_id": model.id, "source": model.source, "items": len(model.items)},
        )
        return self._to_domain(model)

    def get(self, session: Session, username: str, plan_id: str) -> StudyPlan:
        return self._to_domain(self._require_model(session, username, plan_id))

    def history(self, session: Session, username: str, *, limit: int = DEFAULT_HISTORY_LIMIT) -> List[StudyPlan]:
        normalized = normalize_username(username)
        stmt = (
            select(StudyPlanModel)
            .where(StudyPlanModel.username == normalized)
            .options(selectinload(StudyPlanModel.items))
            .order_by(StudyPlanModel.generated_at.desc())
            .limit(max(limit, 1))
        )
        return [self._to_domain(model) for model in session.execute(stmt).scalars()]

    def latest(self, session: Session, username: str) -> Optional[StudyPlan]:
        plans = self.history(session, username, limit=1)
        return plans[0] if plans else None

    def reorder(
        self,
        session: Session,
        username: str,
        plan_id: str,
        ordered_item_ids: Sequence[int],
        *,
        emotion: Optional[str] = None,
    ) -> StudyPlan:
        model = self._require_model(session, username, plan_id)
        by_item_id = {item.item_id: item for item in model.items}
        if sorted(ordered_item_ids) != sorted(by_item_id):
            raise InputValidationError("items", "Reordered items must match the plan's existing items.")
        for position, item_id in enumerate(ordered_item_ids):
            by_item_id[item_id].position = position
        if emotion:
            model.last_emotion = emotion
        session.flush()
        self._record_audit(session, model.username, "plan_reordered", {"plan_id": plan_id, "emotion": emotion})
        return self._to_domain(model)

    def start_task(self, session: Session, username: str, plan_id: str, task_id: int) -> Task:
        model = self._require_model(session, username, plan_id)
        item = self._require_task_item(model, task_id)
        if not item.completed and item.progress < 50:
            item.progress = 50
            item.started_at = datetime.now(timezone.utc)
            session.flush()
        return self._task_from_model(item)

    def complete_task(
        self,
        session: Session,
        username: str,
        plan_id: str,
        task_id: int,
        *,
        completed_at: Optional[datetime] = None,
    ) -> Tuple[Task, bool]:
        """Mark a task complete. The boolean is True only for the request that flipped the flag."""
        model = self._require_model(session, username, plan_id)
        item = self._require_task_item(model, task_id)
        moment = completed_at or datetime.now(timezone.utc)
        result = session.execute(
            update(StudyPlanItemModel)
            .where(
                StudyPlanItemModel.id == item.id,
                StudyPlanItemModel.completed.is_(False),
            )
            .values(completed=True, progress=100, completed_at=moment)
            .execution_options(synchronize_session=False)
        )
        session.refresh(item)
        return self._task_from_model(item), result.rowcount == 1

    def get_custom_base(self, session: Session, username: str, name: str) -> Optional[int]:
        stmt = select(CustomSubjectModel.base_minutes).where(
            CustomSubjectModel.username == normalize_username(username),
            CustomSubjectModel.name == name.strip().lower(),
        )
        return session.execute(stmt).scalar_one_or_none()

    def remember_custom_base(self, session: Session, username: str, name: str, base_minutes: int) -> int:
        """Store the base estimate for a custom subject the first time it is seen."""
        existing = self.get_custom_base(session, username, name)
        if existing is not None:
            return existing
        session.add(
            CustomSubjectModel(
                username=normalize_username(username),
                name=name.strip().lower(),
                base_minutes=base_minutes,
            )
        )
        session.flush()
        return base_minutes

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_model(self, session: Session, username: str, plan_id: str) -> StudyPlanModel:
        normalized = normalize_username(username)
        stmt = (
            select(StudyPlanModel)
            .where(StudyPlanModel.id == plan_id, StudyPlanModel.username == normalized)
            .options(selectinload(StudyPlanModel.items))
        )
        model = session.execute(stmt).scalar_one_or_none()
        if model is None:
            raise NotFoundError(f"Study plan '{plan_id}' does not exist for '{username}'.")
        return model

    @staticmethod
    def _require_task_item(model: StudyPlanModel, task_id: int) -> StudyPlanItemModel:
        for item in model.items:
            if item.item_id == task_id:
                if item.kind != "task":
                    raise InputValidationError("task_id", f"Item {task_id} is a break, not a task.")
                return item
        raise NotFoundError(f"Task {task_id} does not exist in plan '{model.id}'.")

    @staticmethod
    def _item_model(item: ScheduleItem, position: int) -> StudyPlanItemModel:
        if isinstance(item, Task):
            return StudyPlanItemModel(
                item_id=item.id,
                position=position,
                kind="task",
                name=item.name,
                duration=item.duration,
                difficulty=item.difficulty,
                focus=item.focus,
                tip=item.tip,
                subject=item.subject,
                progress=item.progress,
                completed=item.completed,
            )
        return StudyPlanItemModel(
            item_id=item.id,
            position=position,
            kind="break",
            name=item.name,
            duration=item.duration,
            activity=item.activity,
        )

    @staticmethod
    def _task_from_model(item: StudyPlanItemModel) -> Task:
        return Task(
            id=item.item_id,
            name=item.name,
            duration=item.duration,
            difficulty=item.difficulty or "medium",  # type: ignore[arg-type]
            focus=item.focus or "",
            tip=item.tip or "",
            subject=item.subject or "",
            progress=item.progress,
            completed=item.completed,
        )

    def _to_domain(self, model: StudyPlanModel) -> StudyPlan:
        items: List[ScheduleItem] = []
        for item in sorted(model.items, key=lambda entry: entry.position):
            if item.kind == "task":
                items.append(self._task_from_model(item))
            else:
                items.append(Break(id=item.item_id, name=item.name, duration=item.duration, activity=item.activity or ""))
        return StudyPlan(
            id=model.id,
            username=model.username,
            subject=model.subject,
            custom_subject=model.custom_subject,
            knowledge_level=model.knowledge_level,  # type: ignore[arg-type]
            energy_time=model.energy_time,  # type: ignore[arg-type]
            available_hours=model.available_hours,
            challenges=list(model.challenges or []),
            raw_tasks=model.raw_tasks,
            deadline=model.deadline,
            items=items,
            source=model.source,  # type: ignore[arg-type]
            used_fallback=model.used_fallback,
            fallback_reason=model.fallback_reason,
            personalized_message=model.personalized_message,
            adaptations=list(model.adaptations or []),
            regenerated_from=model.regenerated_from_id,
            created_at=model.generated_at,
        )

    def _record_audit(self, session: Session, username: str, event_type: str, payload: Dict[str, Any]) -> None:
        session.add(
            PersistenceAuditEventModel(
                username=username,
                event_type=event_type,
                payload=payload,
                actor="system",
            )
        )


study_plans = StudyPlanRepository()

__all__ = ["StudyPlanRepository", "normalize_username", "study_plans"]
