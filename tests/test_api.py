"""Tests for the HTTP API."""

import pytest
from fastapi.testclient import TestClient

from focus_flow.core.config import Config
from focus_flow.web.app import create_app


@pytest.fixture
def config(tmp_path):
    return Config(data_dir=tmp_path / "data", log_dir=tmp_path / "logs", config_dir=tmp_path / "config")


@pytest.fixture
def client(config):
    with TestClient(create_app(config)) as client:
        yield client


def create(client, **body):
    payload = {"name": "Write report", "duration_minutes": 30, "is_pomodoro_mode": False}
    payload.update(body)
    return client.post("/api/tasks", json=payload)


class TestTasks:
    """Task commands over HTTP."""

    def test_create_and_list(self, client):
        response = create(client)
        assert response.status_code == 201
        task = response.json()
        assert task["name"] == "Write report"
        assert task["time_spent_seconds"] == 0
        assert task["progress_percent"] == 0.0
        assert task["phase"] == "focus"

        listed = client.get("/api/tasks").json()
        assert [t["id"] for t in listed] == [task["id"]]

    def test_create_pomodoro(self, client):
        task = create(client, is_pomodoro_mode=True, focus_minutes=50, break_minutes=10).json()
        assert task["pomodoro_state"] == {
            "focusMinutes": 50, "breakMinutes": 10, "cyclesCompleted": 0, "isOnBreak": False,
        }
        assert task["phase_length"] == 3000

    @pytest.mark.parametrize("body", [{"name": " "}, {"duration_minutes": 0}, {"duration_minutes": -1}])
    def test_invalid_input(self, client, body):
        assert create(client, **body).status_code == 422
        assert client.get("/api/tasks").json() == []

    def test_toggle(self, client):
        task_id = create(client).json()["id"]

        started = client.post(f"/api/tasks/{task_id}/toggle").json()
        assert started["is_running"] is True

        paused = client.post(f"/api/tasks/{task_id}/toggle").json()
        assert paused["is_running"] is False

    def test_complete_before_goal(self, client):
        task_id = create(client).json()["id"]
        assert client.post(f"/api/tasks/{task_id}/complete").status_code == 422

    def test_reset(self, client):
        task_id = create(client).json()["id"]
        client.post(f"/api/tasks/{task_id}/toggle")
        reset = client.post(f"/api/tasks/{task_id}/reset").json()
        assert reset["is_running"] is False
        assert reset["time_spent_seconds"] == 0

    def test_delete(self, client):
        task_id = create(client).json()["id"]
        assert client.delete(f"/api/tasks/{task_id}").status_code == 204
        assert client.delete(f"/api/tasks/{task_id}").status_code == 404
        assert client.get(f"/api/tasks/{task_id}").status_code == 404

    def test_unknown_task(self, client):
        assert client.post("/api/tasks/missing/toggle").status_code == 404
        assert client.post("/api/tasks/missing/reset").status_code == 404


class TestStatsAndSettings:
    """Aggregates and global settings."""

    def test_stats(self, client):
        create(client)
        create(client, name="Second")
        stats = client.get("/api/stats").json()
        assert stats == {
            "total_elapsed_seconds": 0,
            "completed_count": 0,
            "active_count": 2,
            "running_count": 0,
            "daily_goal_minutes": 240,
            "daily_goal_progress": 0.0,
        }

    def test_update_settings(self, client):
        response = client.put(
            "/api/settings",
            json={"daily_goal_minutes": 120, "pomodoro_enabled": True, "pomodoro_focus_minutes": 45},
        )
        assert response.status_code == 200
        assert response.json() == {
            "daily_goal_minutes": 120,
            "pomodoro_enabled": True,
            "pomodoro_focus_minutes": 45,
            "pomodoro_break_minutes": 5,
        }

        task = client.post("/api/tasks", json={"name": "Deep", "duration_minutes": 60}).json()
        assert task["is_pomodoro_mode"] is True
        assert task["pomodoro_state"]["focusMinutes"] == 45

    def test_invalid_settings_change_nothing(self, client):
        response = client.put("/api/settings", json={"daily_goal_minutes": 90, "pomodoro_break_minutes": 0})
        assert response.status_code == 422
        assert client.get("/api/settings").json()["daily_goal_minutes"] == 240


class TestPersistence:
    """State survives an app restart."""

    def test_tasks_reload_paused(self, config):
        with TestClient(create_app(config)) as client:
            task_id = create(client).json()["id"]
            client.post(f"/api/tasks/{task_id}/toggle")
            client.put("/api/settings", json={"daily_goal_minutes": 60})

        with TestClient(create_app(config)) as client:
            tasks = client.get("/api/tasks").json()
            assert [t["id"] for t in tasks] == [task_id]
            assert tasks[0]["is_running"] is False
            assert client.get("/api/settings").json()["daily_goal_minutes"] == 60

    def test_health(self, client):
        health = client.get("/api/health").json()
        assert health["status"] == "healthy"
        assert health["database_connected"] is True
        assert client.get("/api/notifications").json() == []
