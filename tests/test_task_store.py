"""Tests for task and settings persistence."""

import json

import pytest

from focus_flow.focus.controller import TaskCollectionController
from focus_flow.focus.settings import Settings
from focus_flow.focus.task import PomodoroState, Task
from focus_flow.storage.database import Database
from focus_flow.storage.task_store import (
    DAILY_GOAL_KEY,
    POMODORO_ENABLED_KEY,
    POMODORO_FOCUS_KEY,
    TASKS_KEY,
    TaskStore,
    deserialize_tasks,
    serialize_tasks,
)


@pytest.fixture
async def db(tmp_path):
    database = Database(tmp_path / "focus_flow.db")
    await database.connect()
    yield database
    await database.close()


@pytest.fixture
def store(db):
    return TaskStore(db)


class TestTaskPersistence:
    """Saving and loading the collection."""

    async def test_round_trip_pauses_running_tasks(self, store):
        tasks = [
            Task(name="Read", duration_minutes=30, time_spent_seconds=100, is_running=True),
            Task(
                name="Deep",
                duration_minutes=60,
                time_spent_seconds=1700,
                is_pomodoro_mode=True,
                pomodoro_state=PomodoroState(cycles_completed=2, is_on_break=True),
            ),
        ]
        await store.save_tasks(tasks)
        loaded = await store.load_tasks()

        for task in tasks:
            task.is_running = False
        assert loaded == tasks

    async def test_empty_store(self, store):
        assert await store.load_tasks() == []

    async def test_malformed_json(self, store, db):
        await db.set_value(TASKS_KEY, "{not json")
        assert await store.load_tasks() == []

    async def test_skips_bad_entries(self, store, db):
        await db.set_value(TASKS_KEY, json.dumps([
            "garbage",
            {"id": "a", "name": "A", "durationMinutes": 10},
            {"id": "a", "name": "Duplicate", "durationMinutes": 10},
        ]))
        loaded = await store.load_tasks()
        assert [t.name for t in loaded] == ["A"]

    def test_serialize_helpers(self):
        task = Task(name="Read", duration_minutes=30)
        assert deserialize_tasks(serialize_tasks([task])) == [task]
        assert deserialize_tasks(json.dumps({"not": "a list"})) == []


class TestSettingsPersistence:
    """Scalar settings entries."""

    async def test_defaults_when_missing(self, db):
        defaults = Settings(daily_goal_minutes=120, pomodoro_focus_minutes=50)
        store = TaskStore(db, defaults=defaults)
        assert await store.load_settings() == defaults

    async def test_round_trip(self, store):
        settings = Settings(
            daily_goal_minutes=300, pomodoro_enabled=True, pomodoro_focus_minutes=45, pomodoro_break_minutes=15
        )
        await store.save_settings(settings)
        assert await store.load_settings() == settings

    async def test_malformed_entries_fall_back(self, store, db):
        await db.set_value(DAILY_GOAL_KEY, "four hours")
        await db.set_value(POMODORO_ENABLED_KEY, "maybe")
        await db.set_value(POMODORO_FOCUS_KEY, "-10")
        assert await store.load_settings() == Settings()


class TestAutosave:
    """Attached stores follow the controller."""

    async def test_saves_collection_changes(self, store):
        controller = TaskCollectionController(tick_interval=3600)
        store.attach(controller)

        kept = controller.add_task("Keep", 10)
        dropped = controller.add_task("Drop", 10)
        controller.delete_task(dropped.id)
        await store.flush()

        assert [t.id for t in await store.load_tasks()] == [kept.id]

    async def test_saves_settings_changes(self, store):
        controller = TaskCollectionController()
        store.attach(controller)

        controller.update_daily_goal(90)
        controller.set_pomodoro_enabled(True)
        await store.flush()

        settings = await store.load_settings()
        assert settings.daily_goal_minutes == 90
        assert settings.pomodoro_enabled is True

    async def test_save_failures_are_absorbed(self, store, db):
        controller = TaskCollectionController()
        store.attach(controller)
        await db.close()

        controller.add_task("Write", 10)
        await store.flush()

        assert len(controller.tasks) == 1


class TestNonFiniteNumbers:
    """JSON allows Infinity and NaN; they fall back like any other bad number."""

    @pytest.mark.parametrize("literal", ["Infinity", "-Infinity", "NaN"])
    def test_elapsed_time_falls_back(self, literal):
        raw = f'[{{"id": "a", "name": "A", "durationMinutes": 10, "timeSpentSeconds": {literal}}}]'
        [task] = deserialize_tasks(raw)
        assert task.time_spent_seconds == 0
        assert task.duration_minutes == 10

    @pytest.mark.parametrize("literal", ["Infinity", "NaN", "2.5"])
    def test_duration_falls_back(self, literal):
        raw = f'[{{"id": "a", "name": "A", "durationMinutes": {literal}}}]'
        [task] = deserialize_tasks(raw)
        assert task.duration_minutes == 25

    def test_pomodoro_lengths_fall_back(self):
        raw = (
            '[{"id": "p", "name": "P", "isPomodoroMode": true,'
            ' "pomodoroState": {"focusMinutes": NaN, "breakMinutes": Infinity, "cyclesCompleted": 1}}]'
        )
        [task] = deserialize_tasks(raw, Settings(pomodoro_focus_minutes=40, pomodoro_break_minutes=10))
        assert task.pomodoro_state == PomodoroState(focus_minutes=40, break_minutes=10, cycles_completed=1)

    async def test_store_still_loads(self, store, db):
        await db.set_value(
            TASKS_KEY,
            '[{"id": "a", "name": "A", "durationMinutes": NaN},'
            ' {"id": "b", "name": "B", "durationMinutes": 10, "timeSpentSeconds": Infinity}]',
        )
        loaded = await store.load_tasks()
        assert [(t.id, t.duration_minutes, t.time_spent_seconds) for t in loaded] == [
            ("a", 25, 0),
            ("b", 10, 0),
        ]
