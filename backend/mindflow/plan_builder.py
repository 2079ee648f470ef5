"""Deterministic study schedule builder."""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from .study_plan import (
    BREAK_MINUTES,
    BREAK_NAME,
    DIFFICULTIES,
    FOCUS_BLOCK_MINUTES,
    Break,
    ScheduleItem,
    Task,
)
from .time_estimator import detect_subject, estimate, is_known_subject

logger = logging.getLogger(__name__)

TASKS_PER_BREAK = 2

FOCUS_LABELS: tuple[str, ...] = (
    "Understanding core concepts",
    "Practice problems",
    "Review and memorization",
    "Application and synthesis",
    "Deep practice",
    "Testing knowledge",
)

DIFFICULTY_TIPS: Dict[str, str] = {
    "easy": "Start simple and build momentum 💪",
    "medium": "Stay focused - you're getting stronger 🎯",
    "hard": "Break it down into smaller pieces 🧩",
}

CHALLENGE_TIPS: Dict[str, str] = {
    "concentration": "Use the Pomodoro technique (25 min focus, 5 min break) 🍅",
    "procrastination": "Start with just 5 minutes - momentum builds! 🚀",
    "anxiety": "Take deep breaths and go slow. You got this. 💙",
    "memory": "Teach someone else what you learn - it sticks better! 👥",
    "time": "Multitask: listen to notes while exercising ⏰",
    "motivation": "Reward yourself after every finished block 🏆",
    "distractions": "Silence notifications and clear your desk before you start 📵",
    "workload": "Pick the one task that matters most and start there 📋",
}

BREAK_ACTIVITIES: tuple[str, ...] = (
    "Stretch and breathe deeply 🧘",
    "Get a glass of water 💧",
    "Take a quick walk 🚶",
    "Do some jumping jacks ⚡",
    "Look away from screen, rest eyes 👀",
)

_DIFFICULTY_START = {"beginner": 0, "intermediate": 1, "advanced": 2}


@dataclass
class _TaskDraft:
    name: str
    duration: int
    difficulty: str
    subject: str


def split_focus_blocks(name: str, minutes: int) -> List[tuple[str, int]]:
    """Split a task longer than one focus block into numbered parts."""
    if minutes <= FOCUS_BLOCK_MINUTES:
        return [(name, minutes)]
    parts = math.ceil(minutes / FOCUS_BLOCK_MINUTES)
    blocks: List[tuple[str, int]] = []
    remaining = minutes
    for index in range(parts):
        part_minutes = min(FOCUS_BLOCK_MINUTES, remaining)
        remaining -= part_minutes
        blocks.append((f"{name} - Part {index + 1}/{parts}", part_minutes))
    return blocks


def cap_focus_parts(minutes: Sequence[int], limit: int) -> List[int]:
    """Trim per-task minutes so they split into at most ``limit`` focus blocks in total.

    The task with the most blocks gives one up first, later tasks on ties. Tasks
    past ``limit`` cannot keep even one block and are dropped from the end.
    """
    capped = [max(int(value), 1) for value in minutes[: max(limit, 0)]]
    parts = [math.ceil(value / FOCUS_BLOCK_MINUTES) for value in capped]
    while sum(parts) > limit:
        index = max(range(len(parts)), key=lambda position: (parts[position], position))
        parts[index] -= 1
        capped[index] = parts[index] * FOCUS_BLOCK_MINUTES
    return capped


def scale_durations(durations: Sequence[int], target: int) -> List[int]:
    """Shrink durations to sum to ``target`` using largest remainders, keeping each >= 1."""
    total = sum(durations)
    if total <= target:
        return list(durations)
    if target < len(durations):
        return [1] * len(durations)

    raw = [duration * target / total for duration in durations]
    scaled = [max(1, math.floor(value)) for value in raw]
    leftover = target - sum(scaled)
    if leftover > 0:
        order = sorted(range(len(raw)), key=lambda index: (-(raw[index] - math.floor(raw[index])), index))
        for index in order[:leftover]:
            scaled[index] += 1
    while leftover < 0:
        index = max(range(len(scaled)), key=lambda position: (scaled[position], -position))
        if scaled[index] <= 1:
            break
        scaled[index] -= 1
        leftover += 1
    return scaled


def interleave_breaks(
    tasks: Sequence[Task],
    breaks: Sequence[Break],
    *,
    every: int = TASKS_PER_BREAK,
) -> List[ScheduleItem]:
    """Place one break after every ``every`` tasks; unused breaks trail the sequence."""
    pending = list(breaks)
    ordered: List[ScheduleItem] = []
    for position, task in enumerate(tasks, start=1):
        ordered.append(task)
        if position % every == 0 and pending:
            ordered.append(pending.pop(0))
    ordered.extend(pending)
    return ordered


def apply_energy_time(items: Sequence[ScheduleItem], energy_time: Optional[str]) -> List[ScheduleItem]:
    """Reorder a schedule for the learner's peak-energy time of day."""
    ordered = list(items)
    if energy_time == "night":
        ordered.reverse()
    elif energy_time == "afternoon" and ordered:
        shift = len(ordered) // 3
        ordered = ordered[shift:] + ordered[:shift]
    return ordered


def break_budget(
    task_count: int,
    task_minutes: int,
    budget_minutes: int,
    *,
    wanted: Optional[int] = None,
) -> int:
    """Number of breaks that fit next to ``task_count`` tasks inside the budget."""
    if wanted is None:
        wanted = task_count // TASKS_PER_BREAK
    if task_minutes + wanted * BREAK_MINUTES <= budget_minutes:
        return wanted
    floor_minutes = max(task_count, 1)
    while wanted > 0 and floor_minutes + wanted * BREAK_MINUTES > budget_minutes:
        wanted -= 1
    return wanted


class PlanBuilder:
    """Turns a raw task dump into a time-boxed list of tasks and breaks."""

    def __init__(self, *, rng: Optional[random.Random] = None) -> None:
        self._rng = rng

    def build(
        self,
        raw_tasks: str,
        hours: float,
        knowledge_level: str,
        subject: str,
        challenges: Sequence[str],
        energy_time: Optional[str] = "morning",
        *,
        custom_base_minutes: Optional[float] = None,
    ) -> List[ScheduleItem]:
        lines = [line.strip() for line in raw_tasks.splitlines() if line.strip()]
        if not lines:
            raise ValueError("raw_tasks must contain at least one non-blank line.")
        budget_minutes = math.floor(hours * 60)
        if budget_minutes < 1:
            raise ValueError("hours must cover at least one minute.")

        drafts = self._draft_tasks(lines, knowledge_level, subject, custom_base_minutes, budget_minutes)
        break_count = break_budget(len(drafts), sum(draft.duration for draft in drafts), budget_minutes)
        available = budget_minutes - break_count * BREAK_MINUTES
        fitted = scale_durations([draft.duration for draft in drafts], available)
        if fitted != [draft.duration for draft in drafts]:
            logger.debug(
                "Scaled %d task blocks from %d to %d minutes to fit %.2fh",
                len(drafts),
                sum(draft.duration for draft in drafts),
                sum(fitted),
                hours,
            )

        items: List[ScheduleItem] = []
        next_id = 1
        breaks_left = break_count
        for index, (draft, minutes) in enumerate(zip(drafts, fitted)):
            items.append(
                Task(
                    id=next_id,
                    name=draft.name,
                    duration=minutes,
                    difficulty=draft.difficulty,  # type: ignore[arg-type]
                    focus=FOCUS_LABELS[index % len(FOCUS_LABELS)],
                    tip=self._tip(challenges, draft.difficulty),
                    subject=draft.subject,
                )
            )
            next_id += 1
            if (index + 1) % TASKS_PER_BREAK == 0 and breaks_left > 0:
                items.append(self._make_break(next_id, break_count - breaks_left))
                next_id += 1
                breaks_left -= 1

        return apply_energy_time(items, energy_time)

    def _draft_tasks(
        self,
        lines: Sequence[str],
        knowledge_level: str,
        subject: str,
        custom_base_minutes: Optional[float],
        budget_minutes: int,
    ) -> List[_TaskDraft]:
        use_detection = custom_base_minutes is None and not is_known_subject(subject)
        estimates: List[tuple[str, str, int]] = []
        for line in lines:
            line_subject = subject
            if use_detection:
                line_subject = detect_subject(line) or subject
            estimates.append((line, line_subject, estimate(line_subject, knowledge_level, custom_base_minutes)))

        capped = cap_focus_parts([minutes for _, _, minutes in estimates], budget_minutes)
        if len(capped) < len(estimates):
            logger.warning(
                "Dropped %d of %d task lines that do not fit in %d minutes",
                len(estimates) - len(capped),
                len(estimates),
                budget_minutes,
            )

        drafts: List[_TaskDraft] = []
        for line_index, ((line, line_subject, _), minutes) in enumerate(zip(estimates, capped)):
            difficulty = self._difficulty(line_index, knowledge_level)
            for name, part_minutes in split_focus_blocks(line, minutes):
                drafts.append(_TaskDraft(name=name, duration=part_minutes, difficulty=difficulty, subject=line_subject))
        return drafts

    def _difficulty(self, line_index: int, knowledge_level: str) -> str:
        if self._rng is not None:
            return self._rng.choice(DIFFICULTIES)
        start = _DIFFICULTY_START.get(knowledge_level, 1)
        return DIFFICULTIES[(start + line_index) % len(DIFFICULTIES)]

    @staticmethod
    def _tip(challenges: Sequence[str], difficulty: str) -> str:
        for challenge in challenges[:1]:
            tip = CHALLENGE_TIPS.get(challenge)
            if tip:
                return tip
        return DIFFICULTY_TIPS[difficulty]

    def _make_break(self, item_id: int, break_index: int) -> Break:
        if self._rng is not None:
            activity = self._rng.choice(BREAK_ACTIVITIES)
        else:
            activity = BREAK_ACTIVITIES[break_index % len(BREAK_ACTIVITIES)]
        return Break(id=item_id, name=BREAK_NAME, duration=BREAK_MINUTES, activity=activity)


plan_builder = PlanBuilder()


__all__ = [
    "BREAK_ACTIVITIES",
    "CHALLENGE_TIPS",
    "DIFFICULTY_TIPS",
    "FOCUS_LABELS",
    "PlanBuilder",
    "TASKS_PER_BREAK",
    "apply_energy_time",
    "break_budget",
    "cap_focus_parts",
    "interleave_breaks",
    "plan_builder",
    "scale_durations",
    "split_focus_blocks",
]
