"""Plan generation strategies: the deterministic builder and the planner agent."""

from __future__ import annotations

import asyncio
import json
import logging
import re
from dataclasses import dataclass, field, replace
from time import perf_counter
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional, Protocol, Union, cast

from agents import Agent, ModelSettings, RunConfig, Runner
from openai.types.shared.reasoning import Reasoning
from openai.types.shared.reasoning_effort import ReasoningEffort
from pydantic import BaseModel, Field, ValidationError

from .config import Settings, get_settings
from .constants import PLAN_AGENT_INSTRUCTIONS, PLAN_AGENT_NAME
from .errors import ProviderError
from .plan_builder import (
    BREAK_ACTIVITIES,
    DIFFICULTY_TIPS,
    FOCUS_LABELS,
    PlanBuilder,
    break_budget,
    cap_focus_parts,
    plan_builder,
    scale_durations,
    split_focus_blocks,
)
from .prompt_utils import build_plan_prompt
from .study_plan import (
    BREAK_MINUTES,
    BREAK_NAME,
    DIFFICULTIES,
    Break,
    PlanInput,
    PlanSource,
    ScheduleItem,
    Task,
)
from .telemetry import emit_event
from .time_estimator import estimate

logger = logging.getLogger(__name__)

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True)
class GeneratedPlan:
    items: List[ScheduleItem]
    source: PlanSource
    used_fallback: bool = False
    fallback_reason: Optional[str] = None
    personalized_message: Optional[str] = None
    adaptations: List[str] = field(default_factory=list)


class PlanGenerator(Protocol):
    name: str

    async def generate(
        self,
        plan_input: PlanInput,
        *,
        custom_base_minutes: Optional[int] = None,
    ) -> GeneratedPlan:  # pragma: no cover - protocol definition
        ...


class AlgorithmicPlanGenerator:
    """Builds plans locally with :class:`PlanBuilder`."""

    name = "algorithm"

    def __init__(self, builder: Optional[PlanBuilder] = None) -> None:
        self._builder = builder or plan_builder

    async def generate(
        self,
        plan_input: PlanInput,
        *,
        custom_base_minutes: Optional[int] = None,
    ) -> GeneratedPlan:
        return self.generate_sync(plan_input, custom_base_minutes=custom_base_minutes)

    def generate_sync(
        self,
        plan_input: PlanInput,
        *,
        custom_base_minutes: Optional[int] = None,
    ) -> GeneratedPlan:
        items = self._builder.build(
            plan_input.raw_tasks,
            plan_input.hours,
            plan_input.knowledge_level,
            plan_input.display_subject,
            plan_input.challenges,
            plan_input.energy_time,
            custom_base_minutes=custom_base_minutes,
        )
        task_count = sum(1 for item in items if isinstance(item, Task))
        message = (
            f"Here's your {plan_input.hours:g}-hour {plan_input.display_subject} plan: "
            f"{task_count} focused blocks with breaks built in. One step at a time. 🌱"
        )
        return GeneratedPlan(items=items, source="algorithm", personalized_message=message)


# ----------------------------------------------------------------------
# Planner agent
# ----------------------------------------------------------------------


class LlmTaskPayload(BaseModel):
    type: Literal["task"] = "task"
    id: Optional[int] = None
    name: str = Field(..., min_length=1)
    subject: Optional[str] = None
    duration: int = Field(default=25)
    difficulty: str = Field(default="medium")
    focus: Optional[str] = None
    tip: Optional[str] = None


class LlmBreakPayload(BaseModel):
    type: Literal["break"] = "break"
    id: Optional[int] = None
    name: Optional[str] = None
    duration: int = Field(default=BREAK_MINUTES)
    activity: Optional[str] = None


class LlmPlanPayload(BaseModel):
    plan: List[Union[LlmTaskPayload, LlmBreakPayload]] = Field(default_factory=list)
    totalTasks: Optional[int] = None
    totalStudyTime: Optional[int] = None
    totalBreakTime: Optional[int] = None
    adaptations: List[str] = Field(default_factory=list)
    personalizedMessage: Optional[str] = None


AgentRunner = Callable[[Agent[Any], str, Settings], Awaitable[Any]]

_PLAN_AGENT_CACHE: Dict[str, Agent[Any]] = {}


def _reasoning_effort(value: str) -> ReasoningEffort:
    allowed = {"minimal", "low", "medium", "high"}
    effort = value if value in allowed else "low"
    return cast(ReasoningEffort, effort)


def _plan_agent(model: str) -> Agent[Any]:
    if model not in _PLAN_AGENT_CACHE:
        _PLAN_AGENT_CACHE[model] = Agent[Any](
            name=PLAN_AGENT_NAME,
            instructions=PLAN_AGENT_INSTRUCTIONS,
            model=model,
            tools=[],
            model_settings=ModelSettings(store=False),
        )
    return _PLAN_AGENT_CACHE[model]


async def _run_agent(agent: Agent[Any], prompt: str, settings: Settings) -> Any:
    if not settings.openai_api_key:
        raise ProviderError("OPENAI_API_KEY is not configured.", reason="missing_api_key")
    result = await Runner.run(
        agent,
        prompt,
        context=None,
        run_config=RunConfig(
            model_settings=ModelSettings(
                reasoning=Reasoning(effort=_reasoning_effort(settings.llm_reasoning), summary="auto"),
            )
        ),
    )
    return result.final_output


def coerce_plan_payload(raw: Any) -> LlmPlanPayload:
    """Parse agent output into a payload, tolerating prose around the JSON object."""
    if isinstance(raw, LlmPlanPayload):
        return raw
    if isinstance(raw, dict):
        return LlmPlanPayload.model_validate(raw)
    if isinstance(raw, BaseModel):
        return LlmPlanPayload.model_validate(raw.model_dump())
    if isinstance(raw, str):
        match = _JSON_OBJECT.search(raw)
        if match is None:
            raise ValueError("Planner response did not contain a JSON object.")
        return LlmPlanPayload.model_validate(json.loads(match.group(0)))
    raise TypeError(f"Unsupported planner payload type: {type(raw).__name__}")


@dataclass(frozen=True)
class _TaskBlock:
    entry: LlmTaskPayload
    name: str
    minutes: int


def _focus_blocks(
    entries: List[Union[LlmTaskPayload, LlmBreakPayload]],
    budget_minutes: int,
) -> List[Union[_TaskBlock, LlmBreakPayload]]:
    """Split provider tasks into focus blocks, keeping at most one block per budget minute."""
    tasks = [entry for entry in entries if isinstance(entry, LlmTaskPayload)]
    capped = cap_focus_parts([entry.duration for entry in tasks], budget_minutes)
    blocks: List[Union[_TaskBlock, LlmBreakPayload]] = []
    task_index = 0
    for entry in entries:
        if isinstance(entry, LlmBreakPayload):
            blocks.append(entry)
            continue
        if task_index < len(capped):
            for name, minutes in split_focus_blocks(entry.name.strip(), capped[task_index]):
                blocks.append(_TaskBlock(entry=entry, name=name, minutes=minutes))
        task_index += 1
    return blocks


def normalize_llm_plan(payload: LlmPlanPayload, plan_input: PlanInput) -> List[ScheduleItem]:
    """Split long tasks into focus blocks, resequence ids, pin break length and fit the hour budget."""
    entries = list(payload.plan)
    if not any(isinstance(entry, LlmTaskPayload) for entry in entries):
        raise ProviderError("Planner returned a plan without tasks.", reason="empty_plan")

    budget_minutes = int(plan_input.hours * 60)
    blocks = _focus_blocks(entries, budget_minutes)
    task_blocks = [block for block in blocks if isinstance(block, _TaskBlock)]
    durations = [block.minutes for block in task_blocks]
    break_entries = [block for block in blocks if isinstance(block, LlmBreakPayload)]
    keep_breaks = break_budget(len(task_blocks), sum(durations), budget_minutes, wanted=len(break_entries))
    if sum(durations) + keep_breaks * BREAK_MINUTES > budget_minutes:
        durations = scale_durations(durations, budget_minutes - keep_breaks * BREAK_MINUTES)

    items: List[ScheduleItem] = []
    task_index = 0
    breaks_used = 0
    for block in blocks:
        next_id = len(items) + 1
        if isinstance(block, _TaskBlock):
            entry = block.entry
            difficulty = entry.difficulty.strip().lower()
            if difficulty not in DIFFICULTIES:
                difficulty = "medium"
            items.append(
                Task(
                    id=next_id,
                    name=block.name,
                    duration=durations[task_index],
                    difficulty=difficulty,  # type: ignore[arg-type]
                    focus=(entry.focus or FOCUS_LABELS[task_index % len(FOCUS_LABELS)]).strip(),
                    tip=(entry.tip or DIFFICULTY_TIPS[difficulty]).strip(),
                    subject=(entry.subject or plan_input.display_subject).strip(),
                )
            )
            task_index += 1
        elif breaks_used < keep_breaks:
            items.append(
                Break(
                    id=next_id,
                    name=block.name or BREAK_NAME,
                    duration=BREAK_MINUTES,
                    activity=block.activity or BREAK_ACTIVITIES[breaks_used % len(BREAK_ACTIVITIES)],
                )
            )
            breaks_used += 1
    return items


class LlmPlanGenerator:
    """Delegates plan authoring to the planner agent and falls back to the builder on failure."""

    name = "llm"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        fallback: Optional[AlgorithmicPlanGenerator] = None,
        runner: Optional[AgentRunner] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._fallback = fallback or AlgorithmicPlanGenerator()
        self._runner = runner or _run_agent

    async def generate(
        self,
        plan_input: PlanInput,
        *,
        custom_base_minutes: Optional[int] = None,
    ) -> GeneratedPlan:
        try:
            return await self._generate_with_agent(plan_input, custom_base_minutes=custom_base_minutes)
        except ProviderError as exc:
            logger.warning("Planner agent unavailable (%s); using the local builder: %s", exc.reason, exc)
            emit_event(
                "plan_generation_fallback",
                reason=exc.reason,
                model=self._settings.llm_model,
                subject=plan_input.display_subject,
            )
            result = self._fallback.generate_sync(plan_input, custom_base_minutes=custom_base_minutes)
            return replace(result, source="fallback", used_fallback=True, fallback_reason=exc.reason)

    async def _generate_with_agent(
        self,
        plan_input: PlanInput,
        *,
        custom_base_minutes: Optional[int],
    ) -> GeneratedPlan:
        agent = _plan_agent(self._settings.llm_model)
        prompt = build_plan_prompt(
            plan_input,
            schema=LlmPlanPayload.model_json_schema(),
            estimated_minutes=estimate(plan_input.display_subject, plan_input.knowledge_level, custom_base_minutes),
        )
        started = perf_counter()
        try:
            raw = await asyncio.wait_for(
                self._runner(agent, prompt, self._settings),
                timeout=self._settings.llm_timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise ProviderError(
                f"Planner agent timed out after {self._settings.llm_timeout_seconds:g}s.",
                reason="timeout",
            ) from exc
        except ProviderError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ProviderError(f"Planner agent call failed: {exc}", reason="provider_unavailable") from exc

        latency_ms = round((perf_counter() - started) * 1000.0, 2)
        try:
            payload = coerce_plan_payload(raw)
        except (ValidationError, ValueError, TypeError) as exc:
            raise ProviderError(f"Planner agent returned invalid payload: {exc}", reason="unparsable_response") from exc

        items = normalize_llm_plan(payload, plan_input)
        emit_event(
            "plan_generation_llm",
            model=self._settings.llm_model,
            latency_ms=latency_ms,
            items=len(items),
        )
        return GeneratedPlan(
            items=items,
            source="llm",
            personalized_message=payload.personalizedMessage,
            adaptations=[entry.strip() for entry in payload.adaptations if entry and entry.strip()],
        )


def select_plan_generator(settings: Optional[Settings] = None) -> PlanGenerator:
    """Pick the configured generation strategy."""
    resolved = settings or get_settings()
    if resolved.plan_generator == "llm":
        if not resolved.openai_api_key:
            logger.warning("MINDFLOW_PLAN_GENERATOR=llm but OPENAI_API_KEY is not set; plans will be fallbacks.")
        return LlmPlanGenerator(resolved)
    return AlgorithmicPlanGenerator()


__all__ = [
    "AlgorithmicPlanGenerator",
    "GeneratedPlan",
    "LlmBreakPayload",
    "LlmPlanGenerator",
    "LlmPlanPayload",
    "LlmTaskPayload",
    "PlanGenerator",
    "coerce_plan_payload",
    "normalize_llm_plan",
    "select_plan_generator",
]
