"""Badge definitions evaluated against a progress snapshot."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Literal, Sequence

from .progress_ledger import ProgressState

Rarity = Literal["common", "rare", "epic", "legendary"]


@dataclass(frozen=True)
class Achievement:
    id: str
    title: str
    description: str
    metric: str
    requirement: int
    xp_reward: int
    rarity: Rarity


@dataclass(frozen=True)
class AchievementStatus:
    achievement: Achievement
    unlocked: bool
    progress: int

    @property
    def id(self) -> str:
        return self.achievement.id


ACHIEVEMENTS: tuple[Achievement, ...] = (
    Achievement("first_steps", "First Steps", "Create your first study plan", "plans_created", 1, 10, "common"),
    Achievement("task_master", "Task Master", "Complete 10 tasks", "tasks_completed", 10, 50, "rare"),
    Achievement("level_up", "Rising Star", "Reach level 5", "level", 5, 100, "rare"),
    Achievement("streak_3", "On Fire", "Maintain a 3-day streak", "current_streak", 3, 30, "common"),
    Achievement("streak_7", "Dedication", "Maintain a 7-day streak", "current_streak", 7, 75, "epic"),
    Achievement("xp_500", "XP Hunter", "Earn 500 XP", "xp", 500, 50, "rare"),
    Achievement("task_50", "Productivity King", "Complete 50 tasks", "tasks_completed", 50, 200, "epic"),
    Achievement("level_10", "Elite Scholar", "Reach level 10", "level", 10, 250, "legendary"),
    Achievement("plans_10", "Strategic Planner", "Create 10 study plans", "plans_created", 10, 150, "epic"),
)


def evaluate(
    state: ProgressState,
    achievements: Sequence[Achievement] = ACHIEVEMENTS,
) -> List[AchievementStatus]:
    results: List[AchievementStatus] = []
    for achievement in achievements:
        value = state.metric(achievement.metric)
        results.append(
            AchievementStatus(
                achievement=achievement,
                unlocked=value >= achievement.requirement,
                progress=min(value, achievement.requirement),
            )
        )
    return results


__all__ = ["ACHIEVEMENTS", "Achievement", "AchievementStatus", "Rarity", "evaluate"]
