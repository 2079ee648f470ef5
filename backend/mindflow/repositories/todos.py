"""Per-user to-do list storage."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping

from sqlalchemy import case, select
from sqlalchemy.orm import Session

from ..db.models import PersistenceAuditEventModel, TodoItemModel
from ..errors import NotFoundError
from ..study_plan import TODO_PRIORITIES, TodoItem
from .study_plans import normalize_username

UPDATABLE_FIELDS = ("title", "description", "priority", "completed", "due_date")

_PRIORITY_ORDER = case(
    {name: index for index, name in enumerate(TODO_PRIORITIES)},
    value=TodoItemModel.priority,
    else_=len(TODO_PRIORITIES),
)


class TodoRepository:
    """CRUD over ``todo_items``. Open items list first, then by priority and age."""

    def create(self, session: Session, username: str, item: TodoItem) -> TodoItem:
        model = TodoItemModel(
            id=item.id,
            username=normalize_username(username),
            plan_id=item.plan_id,
            title=item.title,
            description=item.description,
            priority=item.priority,
            completed=item.completed,
            due_date=item.due_date,
            created_at=item.created_at,
        )
        session.add(model)
        session.flush()
        return self._to_domain(model)

    def list_items(self, session: Session, username: str) -> List[TodoItem]:
        stmt = (
            select(TodoItemModel)
            .where(TodoItemModel.username == normalize_username(username))
            .order_by(TodoItemModel.completed, _PRIORITY_ORDER, TodoItemModel.created_at)
        )
        return [self._to_domain(model) for model in session.execute(stmt).scalars()]

    def get(self, session: Session, username: str, todo_id: str) -> TodoItem:
        return self._to_domain(self._require_model(session, username, todo_id))

    def update(self, session: Session, username: str, todo_id: str, changes: Mapping[str, Any]) -> TodoItem:
        model = self._require_model(session, username, todo_id)
        for field_name in UPDATABLE_FIELDS:
            if field_name in changes:
                setattr(model, field_name, changes[field_name])
        session.flush()
        return self._to_domain(model)

    def delete(self, session: Session, username: str, todo_id: str) -> None:
        model = self._require_model(session, username, todo_id)
        payload: Dict[str, Any] = {"todo_id": model.id, "title": model.title, "completed": model.completed}
        session.delete(model)
        session.add(
            PersistenceAuditEventModel(
                username=model.username,
                event_type="todo_deleted",
                payload=payload,
                actor="system",
            )
        )
        session.flush()

    @staticmethod
    def _require_model(session: Session, username: str, todo_id: str) -> TodoItemModel:
        stmt = select(TodoItemModel).where(
            TodoItemModel.id == todo_id,
            TodoItemModel.username == normalize_username(username),
        )
        model = session.execute(stmt).scalar_one_or_none()
        if model is None:
            raise NotFoundError(f"To-do '{todo_id}' does not exist for '{username}'.")
        return model

    @staticmethod
    def _to_domain(model: TodoItemModel) -> TodoItem:
        return TodoItem(
            id=model.id,
            plan_id=model.plan_id,
            title=model.title,
            description=model.description,
            priority=model.priority,  # type: ignore[arg-type]
            completed=model.completed,
            due_date=model.due_date,
            created_at=model.created_at,
        )


todo_items = TodoRepository()

__all__ = ["TodoRepository", "UPDATABLE_FIELDS", "todo_items"]
