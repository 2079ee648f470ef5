from __future__ import annotations

import pytest

from mindflow.emotion_adapter import adapt, normalize_emotion, policy_for
from mindflow.errors import InputValidationError
from mindflow.study_plan import DIFFICULTY_RANK, Break, Task


def _task(item_id: int, difficulty: str) -> Task:
    return Task(
        id=item_id,
        name=f"Task {item_id}",
        duration=25,
        difficulty=difficulty,
        focus="Practice problems",
        tip="Stay focused",
        subject="math",
    )


def _break(item_id: int) -> Break:
    return Break(id=item_id, activity="Get a glass of water 💧")


def _schedule():
    return [_task(1, "hard"), _task(2, "medium"), _break(3), _task(4, "easy"), _task(5, "hard"), _break(6)]


def test_tired_moves_easy_tasks_first_and_keeps_break_rhythm() -> None:
    items = _schedule()
    result = adapt(items, "tired")

    assert [item.id for item in result.items] == [4, 2, 3, 1, 5, 6]
    assert [item.type for item in result.items] == ["task", "task", "break", "task", "task", "break"]
    assert result.policy.recommended_break_minutes == 15
    assert "tired" in result.message


def test_adaptation_does_not_mutate_input() -> None:
    items = _schedule()
    before = [item.id for item in items]
    adapt(items, "anxious")
    assert [item.id for item in items] == before


def test_positive_moods_keep_the_order() -> None:
    items = _schedule()
    for emotion in ("happy", "motivated", "confident", "calm"):
        result = adapt(items, emotion)
        assert [item.id for item in result.items] == [item.id for item in items]
        assert result.policy.recommended_break_minutes == 5


def test_normal_is_an_alias_for_calm() -> None:
    assert normalize_emotion(" Normal ") == "calm"
    assert policy_for("normal").emotion == "calm"


def test_unknown_emotion_is_a_field_error() -> None:
    with pytest.raises(InputValidationError) as excinfo:
        normalize_emotion("angry")
    assert excinfo.value.field == "emotion"


def _hard_before_easy(items) -> int:
    ranks = [DIFFICULTY_RANK[item.difficulty] for item in items if isinstance(item, Task)]
    return sum(1 for i, left in enumerate(ranks) for right in ranks[i + 1 :] if left > right)


def _mixed_schedule():
    return [
        _task(1, "easy"),
        _task(2, "hard"),
        _break(3),
        _task(4, "medium"),
        _task(5, "easy"),
        _break(6),
        _task(7, "medium"),
    ]


@pytest.mark.parametrize("emotion", ["anxious", "frustrated"])
def test_struggling_moods_put_quick_wins_first(emotion: str) -> None:
    items = _mixed_schedule()
    result = adapt(items, emotion)

    assert [item.id for item in result.items] == [1, 5, 3, 4, 7, 6, 2]
    tasks = [item for item in result.items if isinstance(item, Task)]
    assert [task.difficulty for task in tasks] == ["easy", "easy", "medium", "medium", "hard"]
    assert [item.type for item in result.items] == ["task", "task", "break", "task", "task", "break", "task"]
    assert _hard_before_easy(result.items) == 0 <= _hard_before_easy(items)
    assert result.policy.sort_easy_first


def test_quick_wins_keep_ties_in_their_original_order() -> None:
    items = [_task(1, "medium"), _task(2, "easy"), _task(3, "medium"), _task(4, "easy")]
    result = adapt(items, "frustrated")

    assert [item.id for item in result.items] == [2, 4, 1, 3]


def test_anxious_and_frustrated_break_guidance() -> None:
    assert adapt(_schedule(), "anxious").policy.recommended_break_minutes == 10
    assert adapt(_schedule(), "frustrated").policy.recommended_break_minutes == 5
