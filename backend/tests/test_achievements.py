from __future__ import annotations

from mindflow.achievements import ACHIEVEMENTS, evaluate
from mindflow.progress_ledger import ProgressState


def _status(state: ProgressState, achievement_id: str):
    return next(status for status in evaluate(state) if status.id == achievement_id)


def test_task_master_unlocks_at_ten_tasks() -> None:
    nine = _status(ProgressState(tasks_completed=9), "task_master")
    ten = _status(ProgressState(tasks_completed=10), "task_master")

    assert not nine.unlocked
    assert nine.progress == 9
    assert ten.unlocked
    assert ten.progress == 10


def test_progress_is_capped_at_the_requirement() -> None:
    status = _status(ProgressState(plans_created=4), "first_steps")
    assert status.unlocked
    assert status.progress == 1


def test_level_badges_use_the_derived_level() -> None:
    assert _status(ProgressState(xp=400), "level_up").unlocked
    assert not _status(ProgressState(xp=399), "level_up").unlocked


def test_streak_badges_read_the_current_streak() -> None:
    statuses = {status.id: status for status in evaluate(ProgressState(current_streak=3, longest_streak=8))}
    assert statuses["streak_3"].unlocked
    assert not statuses["streak_7"].unlocked


def test_fresh_user_has_nothing_unlocked() -> None:
    statuses = evaluate(ProgressState())
    assert len(statuses) == len(ACHIEVEMENTS)
    assert not any(status.unlocked for status in statuses)
