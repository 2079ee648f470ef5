"""Study plan domain models and input vocabularies."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

KnowledgeLevel = Literal["beginner", "intermediate", "advanced"]
EnergyTime = Literal["morning", "afternoon", "night"]
Difficulty = Literal["easy", "medium", "hard"]
PlanSource = Literal["algorithm", "llm", "fallback"]
TodoPriority = Literal["low", "medium", "high"]

KNOWLEDGE_LEVELS: tuple[str, ...] = ("beginner", "intermediate", "advanced")
ENERGY_TIMES: tuple[str, ...] = ("morning", "afternoon", "night")
DIFFICULTIES: tuple[str, ...] = ("easy", "medium", "hard")
DIFFICULTY_RANK = {name: index for index, name in enumerate(DIFFICULTIES)}
TODO_PRIORITIES: tuple[str, ...] = ("high", "medium", "low")

CHALLENGES: tuple[str, ...] = (
    "concentration",
    "procrastination",
    "anxiety",
    "memory",
    "time",
    "motivation",
    "distractions",
    "workload",
)

EMOTIONS: tuple[str, ...] = (
    "happy",
    "calm",
    "motivated",
    "confident",
    "anxious",
    "stressed",
    "tired",
    "overwhelmed",
    "frustrated",
)
EMOTION_ALIASES = {"normal": "calm"}

BREAK_NAME = "Brain Break"
BREAK_MINUTES = 5
FOCUS_BLOCK_MINUTES = 25
MAX_AVAILABLE_HOURS = 24


class Task(BaseModel):
    type: Literal["task"] = "task"
    id: int = Field(..., ge=1)
    name: str
    duration: int = Field(..., gt=0)
    difficulty: Difficulty
    focus: str
    tip: str
    subject: str
    progress: int = Field(default=0, ge=0, le=100)
    completed: bool = False


class Break(BaseModel):
    type: Literal["break"] = "break"
    id: int = Field(..., ge=1)
    name: str = BREAK_NAME
    duration: int = Field(default=BREAK_MINUTES, gt=0)
    activity: str


ScheduleItem = Annotated[Union[Task, Break], Field(discriminator="type")]
schedule_items_adapter: TypeAdapter[List[ScheduleItem]] = TypeAdapter(List[ScheduleItem])


class PlanInput(BaseModel):
    """Validated parameters for one plan generation."""

    raw_tasks: str
    hours: float = Field(..., gt=0, le=MAX_AVAILABLE_HOURS)
    subject: str
    custom_subject: Optional[str] = None
    custom_minutes: Optional[int] = None
    knowledge_level: KnowledgeLevel = "intermediate"
    energy_time: EnergyTime = "morning"
    challenges: List[str] = Field(default_factory=list)
    deadline: Optional[str] = None

    @property
    def task_lines(self) -> List[str]:
        return [line.strip() for line in self.raw_tasks.splitlines() if line.strip()]

    @property
    def display_subject(self) -> str:
        return self.custom_subject or self.subject


class StudyPlan(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    username: str
    subject: str
    custom_subject: Optional[str] = None
    knowledge_level: KnowledgeLevel = "intermediate"
    energy_time: EnergyTime = "morning"
    available_hours: float
    challenges: List[str] = Field(default_factory=list)
    raw_tasks: str
    deadline: Optional[str] = None
    items: List[ScheduleItem] = Field(default_factory=list)
    source: PlanSource = "algorithm"
    used_fallback: bool = False
    fallback_reason: Optional[str] = None
    personalized_message: Optional[str] = None
    adaptations: List[str] = Field(default_factory=list)
    regenerated_from: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def tasks(self) -> List[Task]:
        return [item for item in self.items if isinstance(item, Task)]

    def breaks(self) -> List[Break]:
        return [item for item in self.items if isinstance(item, Break)]

    def find_item(self, item_id: int) -> Optional[ScheduleItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None

    @property
    def total_study_minutes(self) -> int:
        return sum(task.duration for task in self.tasks())

    @property
    def total_break_minutes(self) -> int:
        return sum(item.duration for item in self.breaks())

    def to_input(self) -> PlanInput:
        return PlanInput(
            raw_tasks=self.raw_tasks,
            hours=self.available_hours,
            subject=self.subject,
            custom_subject=self.custom_subject,
            knowledge_level=self.knowledge_level,
            energy_time=self.energy_time,
            challenges=list(self.challenges),
            deadline=self.deadline,
        )


class EmotionEntry(BaseModel):
    id: Optional[int] = None
    emotion: str
    intensity: int = Field(default=3, ge=1, le=5)
    context: Optional[str] = None
    recorded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class StudySession(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    plan_id: Optional[str] = None
    task_id: Optional[int] = None
    duration: int = Field(..., ge=1)
    focus_level: Optional[int] = Field(default=None, ge=1, le=10)
    notes: Optional[str] = None
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None


class TodoItem(BaseModel):
    """A free-standing to-do entry, kept apart from plan schedule items."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    plan_id: Optional[str] = None
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    priority: TodoPriority = "medium"
    completed: bool = False
    due_date: Optional[datetime] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


__all__ = [
    "BREAK_MINUTES",
    "BREAK_NAME",
    "Break",
    "CHALLENGES",
    "DIFFICULTIES",
    "DIFFICULTY_RANK",
    "Difficulty",
    "EMOTIONS",
    "EMOTION_ALIASES",
    "ENERGY_TIMES",
    "EmotionEntry",
    "EnergyTime",
    "FOCUS_BLOCK_MINUTES",
    "KNOWLEDGE_LEVELS",
    "KnowledgeLevel",
    "MAX_AVAILABLE_HOURS",
    "PlanInput",
    "PlanSource",
    "ScheduleItem",
    "StudyPlan",
    "StudySession",
    "TODO_PRIORITIES",
    "Task",
    "TodoItem",
    "TodoPriority",
    "schedule_items_adapter",
]
