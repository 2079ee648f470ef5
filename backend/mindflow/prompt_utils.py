"""Utilities that build MindFlow planner prompts."""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional, Sequence

from .study_plan import PlanInput

_ENERGY_GUIDANCE = {
    "morning": "The student focuses best in the morning; keep the hardest tasks early.",
    "afternoon": "The student warms up slowly and peaks in the afternoon; ease in before the hardest tasks.",
    "night": "The student peaks at night; save the most demanding tasks for the end of the plan.",
}


def _challenge_summary(challenges: Sequence[str]) -> Optional[str]:
    cleaned = [challenge.strip() for challenge in challenges if challenge and challenge.strip()]
    if not cleaned:
        return None
    return "The student is facing these challenges: " + ", ".join(cleaned) + "."


def build_plan_prompt(
    plan_input: PlanInput,
    *,
    schema: Mapping[str, Any],
    estimated_minutes: Optional[int] = None,
) -> str:
    """Render the user message sent to the planner agent."""
    budget_minutes = int(plan_input.hours * 60)
    sections: list[str] = [
        f"Subject: {plan_input.display_subject}",
        f"Knowledge level: {plan_input.knowledge_level}",
        f"Available study time: {plan_input.hours:g} hours ({budget_minutes} minutes including breaks)",
    ]
    if estimated_minutes:
        sections.append(f"Typical time per topic at this level: about {estimated_minutes} minutes")
    if plan_input.deadline:
        sections.append(f"Deadline: {plan_input.deadline}")
    sections.append(_ENERGY_GUIDANCE.get(plan_input.energy_time, _ENERGY_GUIDANCE["morning"]))
    challenge_text = _challenge_summary(plan_input.challenges)
    if challenge_text:
        sections.append(challenge_text)
    sections.append("Tasks to complete (one per line):\n" + "\n".join(plan_input.task_lines))
    sections.append(
        "Respond strictly with JSON. Schema:\n" + json.dumps(dict(schema), ensure_ascii=False, indent=2)
    )
    return "\n\n".join(sections)


__all__ = ["build_plan_prompt"]
