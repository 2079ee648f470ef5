"""Study plan REST endpoints: generation, history, mood adaptation and task progress."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status

from .api_models import (
    EmotionAdaptRequest,
    EmotionAdaptationPayload,
    PlanGenerateRequest,
    ProgressPayload,
    StudyPlanPayload,
    TaskProgressPayload,
)
from .errors import MindFlowError, as_http_exception
from .study_service import StudyService, study_service, validate_plan_input

router = APIRouter(prefix="/api/users/{username}/plans", tags=["plans"])
logger = logging.getLogger(__name__)


def get_study_service() -> StudyService:
    return study_service


@router.post("", response_model=StudyPlanPayload, status_code=status.HTTP_201_CREATED)
async def create_plan(
    username: str,
    payload: PlanGenerateRequest,
    service: StudyService = Depends(get_study_service),
) -> StudyPlanPayload:
    try:
        plan_input = validate_plan_input(
            tasks=payload.tasks,
            hours=payload.hours,
            subject=payload.subject,
            custom_subject=payload.custom_subject,
            custom_minutes=payload.custom_minutes,
            knowledge_level=payload.knowledge_level,
            energy_time=payload.energy_time,
            challenges=payload.challenges,
            deadline=payload.deadline,
        )
        plan = await service.generate_plan(username, plan_input)
    except MindFlowError as exc:
        raise as_http_exception(exc) from exc
    except Exception as exc:  # noqa: BLE001
        logger.exception("Plan generation failed for %s", username)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Plan generation is temporarily unavailable.",
        ) from exc
    return StudyPlanPayload.from_plan(plan)


@router.get("", response_model=List[StudyPlanPayload])
def list_plans(
    username: str,
    limit: int = Query(default=20, ge=1, le=100),
    service: StudyService = Depends(get_study_service),
) -> List[StudyPlanPayload]:
    try:
        plans = service.list_plans(username, limit=limit)
    except MindFlowError as exc:
        raise as_http_exception(exc) from exc
    return [StudyPlanPayload.from_plan(plan) for plan in plans]


@router.get("/latest", response_model=StudyPlanPayload)
def latest_plan(username: str, service: StudyService = Depends(get_study_service)) -> StudyPlanPayload:
    try:
        plan = service.latest_plan(username)
    except MindFlowError as exc:
        raise as_http_exception(exc) from exc
    return StudyPlanPayload.from_plan(plan)


@router.get("/{plan_id}", response_model=StudyPlanPayload)
def get_plan(username: str, plan_id: str, service: StudyService = Depends(get_study_service)) -> StudyPlanPayload:
    try:
        plan = service.get_plan(username, plan_id)
    except MindFlowError as exc:
        raise as_http_exception(exc) from exc
    return StudyPlanPayload.from_plan(plan)


@router.post("/{plan_id}/regenerate", response_model=StudyPlanPayload, status_code=status.HTTP_201_CREATED)
async def regenerate_plan(
    username: str,
    plan_id: str,
    service: StudyService = Depends(get_study_service),
) -> StudyPlanPayload:
    try:
        plan = await service.regenerate_plan(username, plan_id)
    except MindFlowError as exc:
        raise as_http_exception(exc) from exc
    except Exception as exc:  # noqa: BLE001
        logger.exception("Plan regeneration failed for %s", username)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Plan generation is temporarily unavailable.",
        ) from exc
    return StudyPlanPayload.from_plan(plan)


@router.post("/{plan_id}/adapt", response_model=EmotionAdaptationPayload)
def adapt_plan(
    username: str,
    plan_id: str,
    payload: EmotionAdaptRequest,
    service: StudyService = Depends(get_study_service),
) -> EmotionAdaptationPayload:
    try:
        outcome = service.adapt_to_emotion(
            username,
            plan_id,
            payload.emotion,
            intensity=payload.intensity,
            record=payload.record,
        )
    except MindFlowError as exc:
        raise as_http_exception(exc) from exc
    return EmotionAdaptationPayload.from_result(outcome.plan, outcome.adaptation, outcome.progress)


@router.post("/{plan_id}/tasks/{task_id}/start", response_model=TaskProgressPayload)
def start_task(
    username: str,
    plan_id: str,
    task_id: int,
    service: StudyService = Depends(get_study_service),
) -> TaskProgressPayload:
    try:
        task = service.start_task(username, plan_id, task_id)
    except MindFlowError as exc:
        raise as_http_exception(exc) from exc
    return TaskProgressPayload(plan_id=plan_id, task=task)


@router.post("/{plan_id}/tasks/{task_id}/complete", response_model=TaskProgressPayload)
def complete_task(
    username: str,
    plan_id: str,
    task_id: int,
    service: StudyService = Depends(get_study_service),
) -> TaskProgressPayload:
    try:
        outcome = service.record_task_completion(username, plan_id, task_id)
    except MindFlowError as exc:
        raise as_http_exception(exc) from exc
    return TaskProgressPayload(
        plan_id=plan_id,
        task=outcome.task,
        newly_completed=outcome.newly_completed,
        progress=ProgressPayload.from_state(outcome.progress),
    )


__all__ = ["get_study_service", "router"]
