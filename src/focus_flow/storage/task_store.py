"""Persistence of the task collection and global settings."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Iterable

from focus_flow.focus.controller import TaskCollectionController
from focus_flow.focus.settings import Settings
from focus_flow.focus.task import Task
from focus_flow.storage.database import Database

logger = logging.getLogger(__name__)

TASKS_KEY = "focus_flow.tasks"
DAILY_GOAL_KEY = "focus_flow.daily_goal"
POMODORO_ENABLED_KEY = "focus_flow.pomodoro_enabled"
POMODORO_FOCUS_KEY = "focus_flow.pomodoro_focus"
POMODORO_BREAK_KEY = "focus_flow.pomodoro_break"


def serialize_tasks(tasks: Iterable[Task]) -> str:
    return json.dumps([task.to_dict() for task in tasks])


def deserialize_tasks(raw: str | None, defaults: Settings | None = None) -> list[Task]:
    """Parse a stored task array.

    An unreadable array yields an empty collection; unreadable entries are
    skipped; unreadable fields fall back to their defaults.
    """
    if not raw:
        return []
    defaults = defaults or Settings()

    try:
        records = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Stored task collection is not valid JSON, starting empty: {e}")
        return []
    if not isinstance(records, list):
        logger.warning("Stored task collection is not a list, starting empty")
        return []

    tasks: list[Task] = []
    seen: set[str] = set()
    for record in records:
        if not isinstance(record, dict):
            logger.warning(f"Skipping malformed task record: {record!r}")
            continue
        try:
            task = Task.from_dict(
                record,
                default_focus=defaults.pomodoro_focus_minutes,
                default_break=defaults.pomodoro_break_minutes,
            )
        except (ValueError, OverflowError, TypeError) as e:
            logger.error(f"Skipping unreadable task record {record.get('id')!r}: {e}")
            continue
        if task.id in seen:
            logger.warning(f"Skipping duplicate task id {task.id}")
            continue
        seen.add(task.id)
        tasks.append(task)
    return tasks


class TaskStore:
    """Loads and saves tasks and settings under fixed keys.

    Once attached to a controller every collection or settings change is
    saved best-effort: saves are coalesced so at most one is in flight, and
    failures are logged rather than raised.

    Usage:
        store = TaskStore(db, defaults=config.defaults.to_settings())
        controller = TaskCollectionController(
            tasks=await store.load_tasks(), settings=await store.load_settings()
        )
        store.attach(controller)
        ...
        await store.flush()
    """

    def __init__(self, db: Database, defaults: Settings | None = None):
        self.db = db
        self.defaults = defaults or Settings()

        self._pending_tasks: list[Task] | None = None
        self._pending_settings: Settings | None = None
        self._save_task: asyncio.Task | None = None

    # ----- Tasks -----
    async def load_tasks(self) -> list[Task]:
        """Load the collection. Timers never resume: every task comes back paused."""
        try:
            raw = await self.db.get_value(TASKS_KEY)
        except Exception as e:
            logger.error(f"Failed to read tasks, starting empty: {e}")
            return []
        tasks = deserialize_tasks(raw, self.defaults)
        logger.info(f"Loaded {len(tasks)} tasks")
        return tasks

    async def save_tasks(self, tasks: Iterable[Task]) -> None:
        await self.db.set_value(TASKS_KEY, serialize_tasks(tasks))

    # ----- Settings -----
    async def load_settings(self) -> Settings:
        """Load settings, falling back to the configured defaults per entry."""
        values: dict[str, str | None] = {}
        for key in (DAILY_GOAL_KEY, POMODORO_ENABLED_KEY, POMODORO_FOCUS_KEY, POMODORO_BREAK_KEY):
            try:
                values[key] = await self.db.get_value(key)
            except Exception as e:
                logger.error(f"Failed to read {key}: {e}")
                values[key] = None

        return Settings(
            daily_goal_minutes=_parse_positive_int(
                values[DAILY_GOAL_KEY], self.defaults.daily_goal_minutes, DAILY_GOAL_KEY
            ),
            pomodoro_enabled=_parse_bool(
                values[POMODORO_ENABLED_KEY], self.defaults.pomodoro_enabled, POMODORO_ENABLED_KEY
            ),
            pomodoro_focus_minutes=_parse_positive_int(
                values[POMODORO_FOCUS_KEY], self.defaults.pomodoro_focus_minutes, POMODORO_FOCUS_KEY
            ),
            pomodoro_break_minutes=_parse_positive_int(
                values[POMODORO_BREAK_KEY], self.defaults.pomodoro_break_minutes, POMODORO_BREAK_KEY
            ),
        )

    async def save_settings(self, settings: Settings) -> None:
        await self.db.set_values({
            DAILY_GOAL_KEY: str(settings.daily_goal_minutes),
            POMODORO_ENABLED_KEY: "true" if settings.pomodoro_enabled else "false",
            POMODORO_FOCUS_KEY: str(settings.pomodoro_focus_minutes),
            POMODORO_BREAK_KEY: str(settings.pomodoro_break_minutes),
        })

    # ----- Autosave -----
    def attach(self, controller: TaskCollectionController) -> None:
        """Save on every change the controller publishes."""
        controller.changes.subscribe(self._on_tasks_changed)
        controller.settings_changes.subscribe(self._on_settings_changed)

    async def flush(self) -> None:
        """Wait until all scheduled saves have been written."""
        while self._save_task is not None:
            await asyncio.shield(self._save_task)

    def _on_tasks_changed(self, tasks: list[Task]) -> None:
        self._pending_tasks = tasks
        self._schedule_save()

    def _on_settings_changed(self, settings: Settings) -> None:
        self._pending_settings = settings
        self._schedule_save()

    def _schedule_save(self) -> None:
        if self._save_task is None:
            self._save_task = asyncio.get_running_loop().create_task(self._save_pending())

    async def _save_pending(self) -> None:
        try:
            while self._pending_tasks is not None or self._pending_settings is not None:
                tasks, self._pending_tasks = self._pending_tasks, None
                settings, self._pending_settings = self._pending_settings, None
                try:
                    if tasks is not None:
                        await self.save_tasks(tasks)
                    if settings is not None:
                        await self.save_settings(settings)
                except Exception as e:
                    logger.error(f"Failed to save focus state: {e}")
        finally:
            self._save_task = None


def _parse_positive_int(raw: str | None, default: int, key: str) -> int:
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        value = 0
    if value <= 0:
        logger.warning(f"Invalid stored {key}={raw!r}, using {default}")
        return default
    return value


def _parse_bool(raw: Any, default: bool, key: str) -> bool:
    if raw is None:
        return default
    if raw in ("true", "false"):
        return raw == "true"
    logger.warning(f"Invalid stored {key}={raw!r}, using {default}")
    return default
