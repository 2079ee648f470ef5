from mindflow.plan_generator import LlmPlanPayload
from mindflow.prompt_utils import build_plan_prompt
from mindflow.study_service import validate_plan_input


def _prompt(**overrides):
    values = {
        "tasks": "Photosynthesis notes\n\n  Cell division quiz  ",
        "hours": 1.5,
        "subject": "science",
        "knowledge_level": "beginner",
        "energy_time": "night",
        "challenges": ["memory", "time management"],
        "deadline": "Friday",
    }
    values.update(overrides)
    return build_plan_prompt(
        validate_plan_input(**values),
        schema=LlmPlanPayload.model_json_schema(),
        estimated_minutes=85,
    )


def test_prompt_lists_budget_tasks_and_context():
    prompt = _prompt()

    assert "Subject: science" in prompt
    assert "1.5 hours (90 minutes including breaks)" in prompt
    assert "about 85 minutes" in prompt
    assert "Deadline: Friday" in prompt
    assert "save the most demanding tasks for the end" in prompt
    assert "challenges: memory, time." in prompt
    assert "Photosynthesis notes\nCell division quiz" in prompt
    assert '"personalizedMessage"' in prompt


def test_prompt_omits_optional_sections():
    prompt = _prompt(challenges=[], deadline=None, energy_time="morning")

    assert "Deadline" not in prompt
    assert "challenges" not in prompt
    assert "keep the hardest tasks early" in prompt


def test_custom_subject_is_shown_by_name():
    prompt = _prompt(subject=None, custom_subject="Robotics")
    assert "Subject: Robotics" in prompt
