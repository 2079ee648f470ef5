"""End-to-end API flows for plans, mood, sessions and progress."""

from __future__ import annotations

import os
from typing import Any, Dict

from fastapi.testclient import TestClient

os.environ.setdefault("MINDFLOW_DATABASE_URL", "sqlite://")

from mindflow.config import Settings  # noqa: E402
from mindflow.constants import WELLNESS_TIPS  # noqa: E402
from mindflow.db.session import dispose_engine  # noqa: E402
from mindflow.main import app, get_tip_rng  # noqa: E402
from mindflow.plan_generator import LlmPlanGenerator  # noqa: E402
from mindflow.plan_routes import get_study_service  # noqa: E402
from mindflow.study_service import StudyService  # noqa: E402

client = TestClient(app)


def teardown_module() -> None:  # pragma: no cover - test cleanup
    app.dependency_overrides.clear()
    dispose_engine()


def _plan_body(**overrides: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "tasks": "Algebra homework\nGeometry review",
        "hours": 2,
        "subject": "math",
        "knowledge_level": "intermediate",
        "energy_time": "morning",
        "challenges": [],
    }
    body.update(overrides)
    return body


def _create_plan(username: str, **overrides: Any) -> Dict[str, Any]:
    response = client.post(f"/api/users/{username}/plans", json=_plan_body(**overrides))
    assert response.status_code == 201, response.text
    return response.json()


def test_generate_plan_returns_schedule_and_totals() -> None:
    plan = _create_plan("route-ada")

    assert plan["username"] == "route-ada"
    assert plan["source"] == "algorithm"
    assert plan["used_fallback"] is False
    assert plan["total_tasks"] == 6
    assert plan["total_study_time"] == 105
    assert plan["total_break_time"] == 15
    assert plan["completed_tasks"] == 0
    assert [item["type"] for item in plan["plan"]] == ["task", "task", "break"] * 3
    assert plan["personalized_message"]

    fetched = client.get(f"/api/users/route-ada/plans/{plan['id']}")
    assert fetched.status_code == 200
    assert fetched.json()["plan"] == plan["plan"]


def test_invalid_plan_request_reports_the_field() -> None:
    response = client.post("/api/users/route-bad/plans", json=_plan_body(hours=0))
    assert response.status_code == 422
    assert response.json()["detail"]["field"] == "hours"

    response = client.post("/api/users/route-bad/plans", json=_plan_body(tasks="   \n"))
    assert response.status_code == 422
    assert response.json()["detail"]["field"] == "tasks"

    response = client.post("/api/users/route-bad/plans", json=_plan_body(challenges=["boredom"]))
    assert response.status_code == 422
    assert response.json()["detail"]["field"] == "challenges"


def test_missing_plans_are_not_found() -> None:
    assert client.get("/api/users/route-ghost/plans/does-not-exist").status_code == 404
    assert client.get("/api/users/route-ghost/plans/latest").status_code == 404


def test_other_users_cannot_read_a_plan() -> None:
    plan = _create_plan("route-owner")
    assert client.get(f"/api/users/route-intruder/plans/{plan['id']}").status_code == 404


def test_task_completion_is_credited_once() -> None:
    plan = _create_plan("route-finisher")
    task_id = plan["plan"][0]["id"]
    url = f"/api/users/route-finisher/plans/{plan['id']}/tasks/{task_id}/complete"

    first = client.post(url)
    second = client.post(url)

    assert first.status_code == 200
    assert first.json()["newly_completed"] is True
    assert first.json()["task"]["completed"] is True
    assert second.json()["newly_completed"] is False
    assert second.json()["progress"]["xp"] == first.json()["progress"]["xp"] == 40
    assert second.json()["progress"]["tasks_completed"] == 1

    refreshed = client.get(f"/api/users/route-finisher/plans/{plan['id']}").json()
    assert refreshed["completed_tasks"] == 1


def test_start_then_complete_break_and_unknown_task() -> None:
    plan = _create_plan("route-starter")
    base = f"/api/users/route-starter/plans/{plan['id']}/tasks"

    started = client.post(f"{base}/1/start")
    assert started.status_code == 200
    assert started.json()["task"]["progress"] == 50

    break_response = client.post(f"{base}/3/complete")
    assert break_response.status_code == 422
    assert break_response.json()["detail"]["field"] == "task_id"

    assert client.post(f"{base}/99/complete").status_code == 404


def test_adapt_reorders_and_persists() -> None:
    plan = _create_plan("route-tired", knowledge_level="advanced")

    response = client.post(
        f"/api/users/route-tired/plans/{plan['id']}/adapt",
        json={"emotion": "tired"},
    )

    assert response.status_code == 200
    payload = response.json()
    assert payload["emotion"] == "tired"
    assert payload["reordered"] is True
    assert payload["recommended_break_minutes"] == 15
    assert [item["id"] for item in payload["plan"]] == [4, 5, 3, 1, 2, 6]
    assert payload["progress"] is None

    stored = client.get(f"/api/users/route-tired/plans/{plan['id']}").json()
    assert [item["id"] for item in stored["plan"]] == [4, 5, 3, 1, 2, 6]


def test_adapt_rejects_unknown_emotion() -> None:
    plan = _create_plan("route-angry")
    response = client.post(
        f"/api/users/route-angry/plans/{plan['id']}/adapt",
        json={"emotion": "furious"},
    )
    assert response.status_code == 422
    assert response.json()["detail"]["field"] == "emotion"


def test_regenerate_links_back_to_the_original() -> None:
    plan = _create_plan("route-regen")

    response = client.post(f"/api/users/route-regen/plans/{plan['id']}/regenerate")

    assert response.status_code == 201
    fresh = response.json()
    assert fresh["regenerated_from"] == plan["id"]
    assert client.get("/api/users/route-regen/plans/latest").json()["id"] == fresh["id"]
    assert len(client.get("/api/users/route-regen/plans").json()) == 2
    assert client.get("/api/users/route-regen/progress").json()["plans_created"] == 1


def test_emotion_journal_round_trip() -> None:
    response = client.post(
        "/api/users/route-journal/emotions",
        json={"emotion": "Normal", "intensity": 2, "context": "after lunch"},
    )
    assert response.status_code == 201
    payload = response.json()
    assert payload["entry"]["emotion"] == "calm"
    assert payload["progress"]["xp"] == 5
    assert payload["progress"]["emotion_checkins"] == 1

    entries = client.get("/api/users/route-journal/emotions").json()
    assert [entry["context"] for entry in entries] == ["after lunch"]

    invalid = client.post("/api/users/route-journal/emotions", json={"emotion": "calm", "intensity": 9})
    assert invalid.status_code == 422
    assert invalid.json()["detail"]["field"] == "intensity"


def test_study_sessions_feed_minutes_and_streak() -> None:
    response = client.post("/api/users/route-focus/sessions", json={"duration": 30, "focus_level": 7})
    assert response.status_code == 201
    progress = response.json()["progress"]
    assert progress["total_study_minutes"] == 30
    assert progress["current_streak"] == 1
    assert progress["xp"] == 0

    sessions = client.get("/api/users/route-focus/sessions").json()
    assert sessions[0]["duration"] == 30

    missing_plan = client.post(
        "/api/users/route-focus/sessions",
        json={"duration": 10, "plan_id": "nope"},
    )
    assert missing_plan.status_code == 404


def test_progress_and_achievements_for_a_new_user() -> None:
    progress = client.get("/api/users/route-newbie/progress").json()
    assert progress["xp"] == 0
    assert progress["level"] == 1
    assert progress["xp_to_next_level"] == 100

    _create_plan("route-newbie")
    achievements = client.get("/api/users/route-newbie/achievements").json()
    assert achievements["total_count"] == 9
    assert achievements["unlocked_count"] == 1
    unlocked = [entry["id"] for entry in achievements["achievements"] if entry["unlocked"]]
    assert unlocked == ["first_steps"]


def test_provider_outage_is_reported_as_fallback() -> None:
    async def failing_runner(agent, prompt, settings):  # type: ignore[no-untyped-def]
        raise RuntimeError("rate limited")

    llm_settings = Settings(OPENAI_API_KEY="sk-test", MINDFLOW_PLAN_GENERATOR="llm")  # type: ignore[call-arg]
    service = StudyService(generator_factory=lambda _: LlmPlanGenerator(llm_settings, runner=failing_runner))
    app.dependency_overrides[get_study_service] = lambda: service
    try:
        plan = _create_plan("route-outage")
    finally:
        app.dependency_overrides.pop(get_study_service, None)

    assert plan["source"] == "fallback"
    assert plan["used_fallback"] is True
    assert plan["fallback_reason"] == "provider_unavailable"
    assert plan["total_tasks"] == 6


def test_unexpected_generator_crash_is_unavailable() -> None:
    class _Broken:
        name = "broken"

        async def generate(self, plan_input, *, custom_base_minutes=None):  # type: ignore[no-untyped-def]
            raise KeyError("boom")

    service = StudyService(generator_factory=lambda _: _Broken())
    app.dependency_overrides[get_study_service] = lambda: service
    try:
        response = client.post("/api/users/route-crash/plans", json=_plan_body())
    finally:
        app.dependency_overrides.pop(get_study_service, None)

    assert response.status_code == 503


def test_wellness_tips() -> None:
    response = client.get("/api/wellness-tips")
    assert response.status_code == 200
    payload = response.json()
    assert len(payload["tips"]) == len(WELLNESS_TIPS)
    assert payload["random_tip"] in payload["tips"]


def test_wellness_tip_uses_injected_rng() -> None:
    class _First:
        def choice(self, options):  # type: ignore[no-untyped-def]
            return options[0]

    app.dependency_overrides[get_tip_rng] = lambda: _First()
    try:
        payload = client.get("/api/wellness-tips").json()
    finally:
        app.dependency_overrides.pop(get_tip_rng, None)
    assert payload["random_tip"] == WELLNESS_TIPS[0]


def test_developer_routes_are_hidden_by_default() -> None:
    assert client.get("/api/developer/telemetry").status_code == 404
