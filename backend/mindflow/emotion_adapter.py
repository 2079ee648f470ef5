"""Mood-driven reordering of an existing study schedule."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence

from .errors import InputValidationError
from .plan_builder import interleave_breaks
from .study_plan import (
    BREAK_MINUTES,
    DIFFICULTY_RANK,
    EMOTION_ALIASES,
    EMOTIONS,
    Break,
    ScheduleItem,
    Task,
)


@dataclass(frozen=True)
class EmotionPolicy:
    emotion: str
    message: str
    adjustment: str
    sort_easy_first: bool
    break_multiplier: int = 1

    @property
    def recommended_break_minutes(self) -> int:
        return BREAK_MINUTES * self.break_multiplier


@dataclass(frozen=True)
class AdaptationResult:
    items: List[ScheduleItem]
    message: str
    policy: EmotionPolicy


EMOTION_POLICIES: Dict[str, EmotionPolicy] = {
    "happy": EmotionPolicy(
        emotion="happy",
        message="Awesome! Your energy is high. I've kept challenging tasks in your plan. You've got this! 💪",
        adjustment="Keep plan as is, add celebration milestones",
        sort_easy_first=False,
    ),
    "motivated": EmotionPolicy(
        emotion="motivated",
        message="Love the drive! Your plan keeps its tougher blocks so you can make real progress. 🚀",
        adjustment="Keep plan as is, tackle hard tasks while motivation is high",
        sort_easy_first=False,
    ),
    "confident": EmotionPolicy(
        emotion="confident",
        message="You're in a great place. Keep the challenge level up and trust your preparation. 🌟",
        adjustment="Keep plan as is, keep the challenge level",
        sort_easy_first=False,
    ),
    "calm": EmotionPolicy(
        emotion="calm",
        message="You're doing great! Steady focus wins the race. Let's make progress together! 🎯",
        adjustment="Standard plan, balanced difficulty",
        sort_easy_first=False,
    ),
    "anxious": EmotionPolicy(
        emotion="anxious",
        message=(
            "I see you're feeling anxious. I've moved the gentler tasks up front and you can stretch your "
            "breaks. Take it one small step at a time. 💙"
        ),
        adjustment="Easiest tasks first, longer calming breaks",
        sort_easy_first=True,
        break_multiplier=2,
    ),
    "stressed": EmotionPolicy(
        emotion="stressed",
        message="Let's lower the pressure. Easier tasks come first and your breaks can run longer. 🌿",
        adjustment="Easiest tasks first, longer breaks",
        sort_easy_first=True,
        break_multiplier=2,
    ),
    "tired": EmotionPolicy(
        emotion="tired",
        message=(
            "You seem tired. Let's focus on easier, passive learning first - reading and review tasks. "
            "Your brain needs rest too. 😴"
        ),
        adjustment="Easiest tasks first, much longer breaks",
        sort_easy_first=True,
        break_multiplier=3,
    ),
    "overwhelmed": EmotionPolicy(
        emotion="overwhelmed",
        message="That's a lot at once. I've lined up the lightest tasks first. One block at a time. 🫶",
        adjustment="Easiest tasks first, much longer breaks",
        sort_easy_first=True,
        break_multiplier=3,
    ),
    "frustrated": EmotionPolicy(
        emotion="frustrated",
        message="Frustration is normal! I've reordered tasks to start with quick wins. Small victories build momentum. 🌟",
        adjustment="Start with easiest tasks, build confidence",
        sort_easy_first=True,
    ),
}


def normalize_emotion(emotion: str | None) -> str:
    """Return the canonical emotion name or raise InputValidationError."""
    key = (emotion or "").strip().lower()
    key = EMOTION_ALIASES.get(key, key)
    if key not in EMOTIONS:
        allowed = ", ".join(EMOTIONS)
        raise InputValidationError("emotion", f"Unknown emotion '{emotion}'. Expected one of: {allowed}.")
    return key


def policy_for(emotion: str) -> EmotionPolicy:
    return EMOTION_POLICIES[normalize_emotion(emotion)]


def adapt(items: Sequence[ScheduleItem], emotion: str) -> AdaptationResult:
    """Reorder ``items`` for ``emotion`` without mutating the input sequence."""
    policy = policy_for(emotion)
    if not policy.sort_easy_first:
        return AdaptationResult(items=list(items), message=policy.message, policy=policy)

    tasks = [item for item in items if isinstance(item, Task)]
    breaks = [item for item in items if isinstance(item, Break)]
    ordered_tasks = sorted(tasks, key=lambda task: DIFFICULTY_RANK[task.difficulty])
    return AdaptationResult(
        items=interleave_breaks(ordered_tasks, breaks),
        message=policy.message,
        policy=policy,
    )


__all__ = [
    "AdaptationResult",
    "EMOTION_POLICIES",
    "EmotionPolicy",
    "adapt",
    "normalize_emotion",
    "policy_for",
]
