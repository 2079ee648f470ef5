from __future__ import annotations

import asyncio
import json

import pytest

from mindflow.config import Settings
from mindflow.plan_generator import (
    AlgorithmicPlanGenerator,
    LlmPlanGenerator,
    coerce_plan_payload,
    normalize_llm_plan,
    select_plan_generator,
)
from mindflow.study_plan import FOCUS_BLOCK_MINUTES, Break, Task
from mindflow.study_service import validate_plan_input
from mindflow.telemetry import recent_events


def _settings(**overrides: object) -> Settings:
    values: dict[str, object] = {"OPENAI_API_KEY": "sk-test", "MINDFLOW_PLAN_GENERATOR": "llm"}
    values.update(overrides)
    return Settings(**values)  # type: ignore[arg-type]


def _input(hours: float = 1):
    return validate_plan_input(
        tasks="Derivatives\nIntegrals",
        hours=hours,
        subject="math",
        knowledge_level="intermediate",
        energy_time="morning",
        challenges=["focus"],
    )


def _runner_returning(value: object):
    async def runner(agent, prompt, settings):  # type: ignore[no-untyped-def]
        return value

    return runner


def test_agent_plan_is_split_resequenced_and_fitted() -> None:
    raw = "Here is the plan:\n" + json.dumps(
        {
            "plan": [
                {"type": "task", "id": 7, "name": "Derivatives", "duration": 90, "difficulty": "HARD"},
                {"type": "break", "id": 2, "duration": 15, "activity": "Walk outside"},
                {"type": "task", "id": 3, "name": "Integrals", "duration": 90, "difficulty": "weird"},
            ],
            "personalizedMessage": "You can do this!",
            "adaptations": ["  shorter blocks  ", ""],
        }
    )
    generator = LlmPlanGenerator(_settings(), runner=_runner_returning(raw))

    result = asyncio.run(generator.generate(_input(hours=1)))

    assert result.source == "llm"
    assert not result.used_fallback
    assert [item.id for item in result.items] == list(range(1, 10))
    tasks = [item for item in result.items if isinstance(item, Task)]
    assert [task.name for task in tasks[:4]] == [f"Derivatives - Part {part}/4" for part in range(1, 5)]
    assert {task.difficulty for task in tasks[:4]} == {"hard"}
    assert {task.difficulty for task in tasks[4:]} == {"medium"}
    assert [task.duration for task in tasks] == [8, 8, 8, 4, 8, 8, 7, 4]
    pause = result.items[4]
    assert isinstance(pause, Break) and pause.duration == 5 and pause.activity == "Walk outside"
    assert sum(item.duration for item in result.items) == 60
    assert tasks[-1].subject == "math"
    assert result.personalized_message == "You can do this!"
    assert result.adaptations == ["shorter blocks"]


def test_long_agent_tasks_are_split_into_focus_blocks() -> None:
    payload = coerce_plan_payload({"plan": [{"type": "task", "name": "Essay", "duration": 90}]})

    items = normalize_llm_plan(payload, _input(hours=2))

    assert [(item.name, item.duration) for item in items] == [
        ("Essay - Part 1/4", 25),
        ("Essay - Part 2/4", 25),
        ("Essay - Part 3/4", 25),
        ("Essay - Part 4/4", 15),
    ]
    assert [item.id for item in items] == [1, 2, 3, 4]
    assert all(isinstance(item, Task) and item.duration <= FOCUS_BLOCK_MINUTES for item in items)


def test_unparsable_reply_falls_back_to_builder() -> None:
    generator = LlmPlanGenerator(_settings(), runner=_runner_returning("Sorry, I cannot help with that."))

    result = asyncio.run(generator.generate(_input(hours=2)))

    assert result.source == "fallback"
    assert result.used_fallback
    assert result.fallback_reason == "unparsable_response"
    assert any(isinstance(item, Task) for item in result.items)
    assert sum(item.duration for item in result.items) <= 120
    assert recent_events("plan_generation_fallback")[-1].payload["reason"] == "unparsable_response"


def test_slow_agent_times_out_into_fallback() -> None:
    async def slow_runner(agent, prompt, settings):  # type: ignore[no-untyped-def]
        await asyncio.sleep(1)
        return {"plan": []}

    generator = LlmPlanGenerator(_settings(MINDFLOW_LLM_TIMEOUT_SECONDS=0.01), runner=slow_runner)

    result = asyncio.run(generator.generate(_input()))

    assert result.used_fallback
    assert result.fallback_reason == "timeout"


def test_provider_exception_falls_back() -> None:
    async def failing_runner(agent, prompt, settings):  # type: ignore[no-untyped-def]
        raise RuntimeError("connection reset")

    generator = LlmPlanGenerator(_settings(), runner=failing_runner)

    result = asyncio.run(generator.generate(_input()))

    assert result.fallback_reason == "provider_unavailable"
    assert result.source == "fallback"


def test_plan_without_tasks_falls_back() -> None:
    generator = LlmPlanGenerator(_settings(), runner=_runner_returning({"plan": [{"type": "break"}]}))

    result = asyncio.run(generator.generate(_input()))

    assert result.fallback_reason == "empty_plan"


def test_coerce_accepts_dicts_and_rejects_prose() -> None:
    payload = coerce_plan_payload({"plan": [{"type": "task", "name": "Read"}]})
    assert payload.plan[0].name == "Read"

    with pytest.raises(ValueError):
        coerce_plan_payload("no json here")


def test_select_plan_generator_follows_the_configured_strategy() -> None:
    assert isinstance(select_plan_generator(_settings()), LlmPlanGenerator)
    assert isinstance(select_plan_generator(_settings(OPENAI_API_KEY=None)), LlmPlanGenerator)
    assert isinstance(
        select_plan_generator(_settings(MINDFLOW_PLAN_GENERATOR="algorithm")),
        AlgorithmicPlanGenerator,
    )


def test_missing_api_key_yields_a_flagged_fallback_plan() -> None:
    generator = select_plan_generator(_settings(OPENAI_API_KEY=None))

    result = asyncio.run(generator.generate(_input(hours=2)))

    assert result.source == "fallback"
    assert result.used_fallback
    assert result.fallback_reason == "missing_api_key"
    assert sum(item.duration for item in result.items) <= 120
    assert recent_events("plan_generation_fallback")[-1].payload["reason"] == "missing_api_key"
