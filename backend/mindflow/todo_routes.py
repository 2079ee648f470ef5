"""Per-user to-do list endpoints."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Response, status

from .api_models import TodoCreateRequest, TodoUpdateRequest
from .errors import MindFlowError, as_http_exception
from .plan_routes import get_study_service
from .study_plan import TodoItem
from .study_service import StudyService

router = APIRouter(prefix="/api/users/{username}/todos", tags=["todos"])


@router.get("", response_model=List[TodoItem])
def list_todos(username: str, service: StudyService = Depends(get_study_service)) -> List[TodoItem]:
    try:
        return service.list_todos(username)
    except MindFlowError as exc:
        raise as_http_exception(exc) from exc


@router.post("", response_model=TodoItem, status_code=status.HTTP_201_CREATED)
def create_todo(
    username: str,
    payload: TodoCreateRequest,
    service: StudyService = Depends(get_study_service),
) -> TodoItem:
    try:
        return service.create_todo(
            username,
            payload.title,
            description=payload.description,
            priority=payload.priority,
            due_date=payload.due_date,
            plan_id=payload.plan_id,
        )
    except MindFlowError as exc:
        raise as_http_exception(exc) from exc


@router.get("/{todo_id}", response_model=TodoItem)
def get_todo(username: str, todo_id: str, service: StudyService = Depends(get_study_service)) -> TodoItem:
    try:
        return service.get_todo(username, todo_id)
    except MindFlowError as exc:
        raise as_http_exception(exc) from exc


@router.patch("/{todo_id}", response_model=TodoItem)
def update_todo(
    username: str,
    todo_id: str,
    payload: TodoUpdateRequest,
    service: StudyService = Depends(get_study_service),
) -> TodoItem:
    try:
        return service.update_todo(username, todo_id, payload.model_dump(exclude_unset=True))
    except MindFlowError as exc:
        raise as_http_exception(exc) from exc


@router.delete("/{todo_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_todo(username: str, todo_id: str, service: StudyService = Depends(get_study_service)) -> Response:
    try:
        service.delete_todo(username, todo_id)
    except MindFlowError as exc:
        raise as_http_exception(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


__all__ = ["router"]
