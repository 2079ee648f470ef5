"""To-do list and study session completion flows."""

from __future__ import annotations

import os

from fastapi.testclient import TestClient

os.environ.setdefault("MINDFLOW_DATABASE_URL", "sqlite://")

from mindflow.db.session import dispose_engine  # noqa: E402
from mindflow.main import app  # noqa: E402

client = TestClient(app)


def teardown_module() -> None:  # pragma: no cover - test cleanup
    dispose_engine()


def test_todo_create_list_update_delete() -> None:
    base = "/api/users/todo-ada/todos"
    created = client.post(base, json={"title": "  Buy flashcards ", "priority": "HIGH"})
    assert created.status_code == 201, created.text
    flashcards = created.json()
    assert flashcards["title"] == "Buy flashcards"
    assert flashcards["priority"] == "high"
    assert flashcards["completed"] is False

    assert client.post(base, json={"title": "Email tutor", "priority": "low"}).status_code == 201
    assert client.post(base, json={"title": "Print notes"}).status_code == 201

    titles = [entry["title"] for entry in client.get(base).json()]
    assert titles == ["Buy flashcards", "Print notes", "Email tutor"]

    patched = client.patch(f"{base}/{flashcards['id']}", json={"completed": True})
    assert patched.status_code == 200
    assert patched.json()["completed"] is True
    assert patched.json()["title"] == "Buy flashcards"
    assert patched.json()["priority"] == "high"

    titles = [entry["title"] for entry in client.get(base).json()]
    assert titles == ["Print notes", "Email tutor", "Buy flashcards"]

    assert client.delete(f"{base}/{flashcards['id']}").status_code == 204
    assert client.get(f"{base}/{flashcards['id']}").status_code == 404
    assert client.delete(f"{base}/{flashcards['id']}").status_code == 404


def test_todo_fields_are_validated() -> None:
    base = "/api/users/todo-bad/todos"
    blank = client.post(base, json={"title": "   "})
    assert blank.status_code == 422
    assert blank.json()["detail"]["field"] == "title"

    urgent = client.post(base, json={"title": "Revise", "priority": "urgent"})
    assert urgent.status_code == 422
    assert urgent.json()["detail"]["field"] == "priority"

    todo = client.post(base, json={"title": "Revise"}).json()
    cleared = client.patch(f"{base}/{todo['id']}", json={"title": None})
    assert cleared.status_code == 422
    assert cleared.json()["detail"]["field"] == "title"


def test_todos_are_scoped_to_their_owner() -> None:
    todo = client.post("/api/users/todo-owner/todos", json={"title": "Private"}).json()

    assert client.get(f"/api/users/todo-intruder/todos/{todo['id']}").status_code == 404
    assert client.delete(f"/api/users/todo-intruder/todos/{todo['id']}").status_code == 404
    assert client.get("/api/users/todo-intruder/todos").json() == []


def test_deleting_a_linked_todo_leaves_the_plan_alone() -> None:
    plan = client.post(
        "/api/users/todo-planner/plans",
        json={"tasks": "Algebra homework", "hours": 1, "subject": "math"},
    ).json()
    todo = client.post(
        "/api/users/todo-planner/todos",
        json={"title": "Finish algebra", "plan_id": plan["id"]},
    ).json()
    assert todo["plan_id"] == plan["id"]

    assert client.delete(f"/api/users/todo-planner/todos/{todo['id']}").status_code == 204
    assert client.get(f"/api/users/todo-planner/plans/{plan['id']}").json()["plan"] == plan["plan"]

    missing = client.post("/api/users/todo-planner/todos", json={"title": "Orphan", "plan_id": "nope"})
    assert missing.status_code == 404


def test_study_session_is_completed_once() -> None:
    logged = client.post("/api/users/todo-focus/sessions", json={"duration": 25}).json()["session"]
    assert logged["completed_at"] is None

    first = client.post(f"/api/users/todo-focus/sessions/{logged['id']}/complete")
    assert first.status_code == 200
    assert first.json()["newly_completed"] is True
    assert first.json()["session"]["completed_at"] is not None

    second = client.post(f"/api/users/todo-focus/sessions/{logged['id']}/complete").json()
    assert second["newly_completed"] is False
    assert second["session"]["completed_at"] == first.json()["session"]["completed_at"]

    assert client.get("/api/users/todo-focus/sessions").json()[0]["completed_at"] is not None
    assert client.get("/api/users/todo-focus/progress").json()["total_study_minutes"] == 25


def test_completing_an_unknown_session_is_not_found() -> None:
    logged = client.post("/api/users/todo-mine/sessions", json={"duration": 10}).json()["session"]

    assert client.post("/api/users/todo-mine/sessions/missing/complete").status_code == 404
    assert client.post(f"/api/users/todo-other/sessions/{logged['id']}/complete").status_code == 404
