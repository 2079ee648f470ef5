"""Progress, mood journal and study session endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, Query, status

from .api_models import (
    AchievementPayload,
    AchievementsPayload,
    EmotionEntryPayload,
    EmotionRecordRequest,
    ProgressPayload,
    StudySessionCompletionPayload,
    StudySessionPayload,
    StudySessionRequest,
)
from .errors import MindFlowError, as_http_exception
from .plan_routes import get_study_service
from .study_plan import EmotionEntry, StudySession
from .study_service import StudyService

router = APIRouter(prefix="/api/users/{username}", tags=["progress"])


@router.get("/progress", response_model=ProgressPayload)
def get_progress(username: str, service: StudyService = Depends(get_study_service)) -> ProgressPayload:
    try:
        state = service.get_progress(username)
    except MindFlowError as exc:
        raise as_http_exception(exc) from exc
    return ProgressPayload.from_state(state)


@router.get("/achievements", response_model=AchievementsPayload)
def get_achievements(username: str, service: StudyService = Depends(get_study_service)) -> AchievementsPayload:
    try:
        statuses = service.get_achievements(username)
    except MindFlowError as exc:
        raise as_http_exception(exc) from exc
    achievements = [AchievementPayload.from_status(entry) for entry in statuses]
    return AchievementsPayload(
        achievements=achievements,
        unlocked_count=sum(1 for entry in achievements if entry.unlocked),
        total_count=len(achievements),
    )


@router.post("/emotions", response_model=EmotionEntryPayload, status_code=status.HTTP_201_CREATED)
def record_emotion(
    username: str,
    payload: EmotionRecordRequest,
    service: StudyService = Depends(get_study_service),
) -> EmotionEntryPayload:
    try:
        entry, state = service.record_emotion(username, payload.emotion, payload.intensity, payload.context)
    except MindFlowError as exc:
        raise as_http_exception(exc) from exc
    return EmotionEntryPayload(entry=entry, progress=ProgressPayload.from_state(state))


@router.get("/emotions", response_model=List[EmotionEntry])
def list_emotions(
    username: str,
    limit: int = Query(default=50, ge=1, le=500),
    service: StudyService = Depends(get_study_service),
) -> List[EmotionEntry]:
    try:
        return service.list_emotions(username, limit=limit)
    except MindFlowError as exc:
        raise as_http_exception(exc) from exc


@router.post("/sessions", response_model=StudySessionPayload, status_code=status.HTTP_201_CREATED)
def log_session(
    username: str,
    payload: StudySessionRequest,
    service: StudyService = Depends(get_study_service),
) -> StudySessionPayload:
    study_session = StudySession(
        plan_id=payload.plan_id,
        task_id=payload.task_id,
        duration=payload.duration,
        focus_level=payload.focus_level,
        notes=payload.notes,
        started_at=payload.started_at or datetime.now(timezone.utc),
    )
    try:
        stored, state = service.log_study_session(username, study_session)
    except MindFlowError as exc:
        raise as_http_exception(exc) from exc
    return StudySessionPayload(session=stored, progress=ProgressPayload.from_state(state))


@router.get("/sessions", response_model=List[StudySession])
def list_sessions(
    username: str,
    limit: int = Query(default=50, ge=1, le=500),
    service: StudyService = Depends(get_study_service),
) -> List[StudySession]:
    try:
        return service.list_sessions(username, limit=limit)
    except MindFlowError as exc:
        raise as_http_exception(exc) from exc


@router.post("/sessions/{session_id}/complete", response_model=StudySessionCompletionPayload)
def complete_session(
    username: str,
    session_id: str,
    service: StudyService = Depends(get_study_service),
) -> StudySessionCompletionPayload:
    try:
        stored, stamped = service.complete_study_session(username, session_id)
    except MindFlowError as exc:
        raise as_http_exception(exc) from exc
    return StudySessionCompletionPayload(session=stored, newly_completed=stamped)


__all__ = ["router"]
