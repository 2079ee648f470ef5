"""Pydantic request and response payloads for the study planner API."""

from __future__ import annotations

from datetime import date, datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from .achievements import AchievementStatus
from .emotion_adapter import AdaptationResult
from .progress_ledger import ProgressState
from .study_plan import EmotionEntry, ScheduleItem, StudyPlan, StudySession


class PlanGenerateRequest(BaseModel):
    tasks: str = Field(..., description="Free-text task dump, one task per line.")
    hours: float = Field(..., description="Available study hours including breaks.")
    subject: Optional[str] = Field(default=None, max_length=128)
    custom_subject: Optional[str] = Field(default=None, max_length=128)
    custom_minutes: Optional[int] = Field(default=None, description="Minutes per topic for a custom subject.")
    knowledge_level: Optional[str] = None
    energy_time: Optional[str] = None
    challenges: List[str] = Field(default_factory=list)
    deadline: Optional[str] = Field(default=None, max_length=64)


class EmotionAdaptRequest(BaseModel):
    emotion: str
    intensity: Optional[int] = None
    record: bool = False


class EmotionRecordRequest(BaseModel):
    emotion: str
    intensity: int = 3
    context: Optional[str] = Field(default=None, max_length=500)


class StudySessionRequest(BaseModel):
    duration: int = Field(..., ge=1, le=24 * 60)
    plan_id: Optional[str] = None
    task_id: Optional[int] = None
    focus_level: Optional[int] = Field(default=None, ge=1, le=10)
    notes: Optional[str] = Field(default=None, max_length=2000)
    started_at: Optional[datetime] = None


class TodoCreateRequest(BaseModel):
    title: str = Field(..., max_length=500)
    description: Optional[str] = Field(default=None, max_length=2000)
    priority: Optional[str] = None
    due_date: Optional[datetime] = None
    plan_id: Optional[str] = None


class TodoUpdateRequest(BaseModel):
    """Partial update; only fields present in the request body change."""

    title: Optional[str] = Field(default=None, max_length=500)
    description: Optional[str] = Field(default=None, max_length=2000)
    priority: Optional[str] = None
    completed: Optional[bool] = None
    due_date: Optional[datetime] = None


class StudyPlanPayload(BaseModel):
    id: str
    username: str
    subject: str
    custom_subject: Optional[str] = None
    knowledge_level: str
    energy_time: str
    available_hours: float
    challenges: List[str] = Field(default_factory=list)
    raw_tasks: str
    deadline: Optional[str] = None
    plan: List[ScheduleItem] = Field(default_factory=list)
    total_tasks: int = 0
    total_study_time: int = 0
    total_break_time: int = 0
    completed_tasks: int = 0
    source: str
    used_fallback: bool = False
    fallback_reason: Optional[str] = None
    personalized_message: Optional[str] = None
    adaptations: List[str] = Field(default_factory=list)
    regenerated_from: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_plan(cls, plan: StudyPlan) -> "StudyPlanPayload":
        tasks = plan.tasks()
        return cls(
            id=plan.id,
            username=plan.username,
            subject=plan.subject,
            custom_subject=plan.custom_subject,
            knowledge_level=plan.knowledge_level,
            energy_time=plan.energy_time,
            available_hours=plan.available_hours,
            challenges=list(plan.challenges),
            raw_tasks=plan.raw_tasks,
            deadline=plan.deadline,
            plan=list(plan.items),
            total_tasks=len(tasks),
            total_study_time=plan.total_study_minutes,
            total_break_time=plan.total_break_minutes,
            completed_tasks=sum(1 for task in tasks if task.completed),
            source=plan.source,
            used_fallback=plan.used_fallback,
            fallback_reason=plan.fallback_reason,
            personalized_message=plan.personalized_message,
            adaptations=list(plan.adaptations),
            regenerated_from=plan.regenerated_from,
            created_at=plan.created_at,
        )


class ProgressPayload(BaseModel):
    xp: int
    level: int
    xp_into_level: int
    xp_to_next_level: int
    current_streak: int
    longest_streak: int
    last_activity_date: Optional[date] = None
    total_study_minutes: int
    tasks_completed: int
    plans_created: int
    emotion_checkins: int

    @classmethod
    def from_state(cls, state: ProgressState) -> "ProgressPayload":
        return cls.model_validate(state.as_dict())


class AchievementPayload(BaseModel):
    id: str
    title: str
    description: str
    metric: str
    requirement: int
    xp_reward: int
    rarity: Literal["common", "rare", "epic", "legendary"]
    unlocked: bool
    progress: int

    @classmethod
    def from_status(cls, status: AchievementStatus) -> "AchievementPayload":
        achievement = status.achievement
        return cls(
            id=achievement.id,
            title=achievement.title,
            description=achievement.description,
            metric=achievement.metric,
            requirement=achievement.requirement,
            xp_reward=achievement.xp_reward,
            rarity=achievement.rarity,
            unlocked=status.unlocked,
            progress=status.progress,
        )


class AchievementsPayload(BaseModel):
    achievements: List[AchievementPayload] = Field(default_factory=list)
    unlocked_count: int = 0
    total_count: int = 0


class EmotionAdaptationPayload(BaseModel):
    plan_id: str
    emotion: str
    message: str
    adjustment: str
    reordered: bool
    recommended_break_minutes: int
    plan: List[ScheduleItem] = Field(default_factory=list)
    progress: Optional[ProgressPayload] = None

    @classmethod
    def from_result(
        cls,
        plan: StudyPlan,
        result: AdaptationResult,
        progress: Optional[ProgressState] = None,
    ) -> "EmotionAdaptationPayload":
        return cls(
            plan_id=plan.id,
            emotion=result.policy.emotion,
            message=result.message,
            adjustment=result.policy.adjustment,
            reordered=result.policy.sort_easy_first,
            recommended_break_minutes=result.policy.recommended_break_minutes,
            plan=list(plan.items),
            progress=ProgressPayload.from_state(progress) if progress else None,
        )


class EmotionEntryPayload(BaseModel):
    entry: EmotionEntry
    progress: ProgressPayload


class TaskProgressPayload(BaseModel):
    plan_id: str
    task: ScheduleItem
    newly_completed: bool = False
    progress: Optional[ProgressPayload] = None


class StudySessionPayload(BaseModel):
    session: StudySession
    progress: ProgressPayload


class StudySessionCompletionPayload(BaseModel):
    session: StudySession
    newly_completed: bool


class WellnessTipsPayload(BaseModel):
    tips: List[str]
    random_tip: str


__all__ = [
    "AchievementPayload",
    "AchievementsPayload",
    "EmotionAdaptRequest",
    "EmotionAdaptationPayload",
    "EmotionEntryPayload",
    "EmotionRecordRequest",
    "PlanGenerateRequest",
    "ProgressPayload",
    "StudyPlanPayload",
    "StudySessionCompletionPayload",
    "StudySessionPayload",
    "StudySessionRequest",
    "TaskProgressPayload",
    "TodoCreateRequest",
    "TodoUpdateRequest",
    "WellnessTipsPayload",
]
