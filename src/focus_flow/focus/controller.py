"""Task collection controller: the single owner of all task state."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from datetime import datetime
from typing import Callable, Iterable

from focus_flow.focus.cycle import CycleProgress, Phase, calculate_cycle, clamp_percent, simple_progress
from focus_flow.focus.errors import InvalidCommandError, TaskNotFoundError
from focus_flow.focus.events import (
    EventChannel,
    GoalReached,
    Notification,
    PhaseChanged,
    Signal,
    TickResult,
    TimerEvent,
)
from focus_flow.focus.settings import Settings
from focus_flow.focus.task import PomodoroState, Task, validate_minutes, validate_name
from focus_flow.focus.timer_engine import DEFAULT_TICK_INTERVAL, TaskTimerEngine

logger = logging.getLogger(__name__)

EngineFactory = Callable[..., TaskTimerEngine]


class TaskCollectionController:
    """Applies commands and timer events to an ordered task collection.

    Every command runs to completion before the next one starts (all calls
    happen on one event loop), validates its input before mutating anything
    and publishes the new collection on ``changes``. Timer engines only
    produce events; ``dispatch`` turns them into state changes and raises
    the matching ``Notification`` on ``notifications``.

    Usage:
        controller = TaskCollectionController(tasks=await store.load_tasks())
        controller.notifications.subscribe(alerts.handle)
        task = controller.add_task("Write report", 50)
        controller.toggle_timer(task.id)  # start
        ...
        controller.toggle_timer(task.id)  # pause
    """

    def __init__(
        self,
        tasks: Iterable[Task] = (),
        settings: Settings | None = None,
        tick_interval: float = DEFAULT_TICK_INTERVAL,
        engine_factory: EngineFactory = TaskTimerEngine,
    ):
        self.settings = settings or Settings()
        self.tick_interval = tick_interval
        self._engine_factory = engine_factory

        # dicts keep insertion order, which is display order
        self._tasks: dict[str, Task] = {}
        for task in tasks:
            task = task.copy()
            task.is_running = False
            self._tasks[task.id] = task

        self._engines: dict[str, TaskTimerEngine] = {}

        self.changes: EventChannel[list[Task]] = EventChannel("changes")
        self.settings_changes: EventChannel[Settings] = EventChannel("settings_changes")
        self.notifications: EventChannel[Notification] = EventChannel("notifications")
        self.ticks: EventChannel[TickResult] = EventChannel("ticks")

    # ----- Queries -----
    @property
    def tasks(self) -> list[Task]:
        """Snapshot of all tasks in display order."""
        return [task.copy() for task in self._tasks.values()]

    def get_task(self, task_id: str) -> Task | None:
        """Snapshot of one task, or None if it does not exist."""
        task = self._tasks.get(task_id)
        return task.copy() if task else None

    def is_ticking(self, task_id: str) -> bool:
        engine = self._engines.get(task_id)
        return engine is not None and engine.is_running

    def progress(self, task_id: str) -> CycleProgress:
        """Progress of a task within its current phase (or toward its goal)."""
        task = self._require(task_id)
        if task.is_pomodoro_mode and task.pomodoro_state:
            state = task.pomodoro_state
            return calculate_cycle(
                task.time_spent_seconds, state.focus_minutes, state.break_minutes, state.is_on_break
            )
        return CycleProgress(
            current_phase=Phase.FOCUS,
            phase_elapsed=min(task.time_spent_seconds, task.goal_seconds),
            phase_length=task.goal_seconds,
            progress_percent=simple_progress(task.time_spent_seconds, task.duration_minutes),
        )

    # ----- Aggregates -----
    def total_elapsed_seconds(self) -> int:
        return sum(task.time_spent_seconds for task in self._tasks.values())

    def completed_count(self) -> int:
        return sum(1 for task in self._tasks.values() if task.completed)

    def active_count(self) -> int:
        """Tasks not yet completed."""
        return sum(1 for task in self._tasks.values() if not task.completed)

    def running_count(self) -> int:
        return sum(1 for task in self._tasks.values() if task.is_running)

    def daily_goal_progress(self) -> float:
        """Percent of the daily goal covered by all tracked time (0-100)."""
        goal_seconds = self.settings.daily_goal_minutes * 60
        return clamp_percent(self.total_elapsed_seconds() / goal_seconds * 100)

    # ----- Commands -----
    def add_task(
        self,
        name: str,
        duration_minutes: int,
        is_pomodoro_mode: bool | None = None,
        focus_minutes: int | None = None,
        break_minutes: int | None = None,
    ) -> Task:
        """Create a task.

        ``is_pomodoro_mode`` defaults to the global Pomodoro flag; focus and
        break lengths default to the global Pomodoro settings.
        """
        name = validate_name(name)
        validate_minutes(duration_minutes, "Duration")

        if is_pomodoro_mode is None:
            is_pomodoro_mode = self.settings.pomodoro_enabled

        state = None
        if is_pomodoro_mode:
            if focus_minutes is None:
                focus_minutes = self.settings.pomodoro_focus_minutes
            if break_minutes is None:
                break_minutes = self.settings.pomodoro_break_minutes
            state = PomodoroState(
                focus_minutes=validate_minutes(focus_minutes, "Focus"),
                break_minutes=validate_minutes(break_minutes, "Break"),
            )

        task = Task(
            name=name,
            duration_minutes=duration_minutes,
            is_pomodoro_mode=is_pomodoro_mode,
            pomodoro_state=state,
        )
        self._tasks[task.id] = task
        logger.info(f"Task added: {task.name} ({task.id}){' [pomodoro]' if is_pomodoro_mode else ''}")
        self._emit_change()
        return task.copy()

    def toggle_timer(self, task_id: str) -> Task:
        """Start a paused task or pause a running one."""
        task = self._require(task_id)
        if task.is_running:
            return self.pause_timer(task_id)
        return self.start_timer(task_id)

    def start_timer(self, task_id: str) -> Task:
        task = self._require(task_id)
        if task.completed:
            raise InvalidCommandError(f'Task "{task.name}" is already completed')
        if task.is_running:
            return task.copy()

        task.is_running = True
        engine = self._engine_factory(
            task_id, snapshot=self.get_task, publish=self.dispatch, interval=self.tick_interval
        )
        try:
            engine.start()
        except Exception:
            task.is_running = False
            raise
        self._engines[task_id] = engine
        self._emit_change()
        return task.copy()

    def pause_timer(self, task_id: str) -> Task:
        task = self._require(task_id)
        self._stop_engine(task_id)
        if task.is_running:
            task.is_running = False
            self._emit_change()
        return task.copy()

    def delete_task(self, task_id: str) -> Task | None:
        """Remove a task. Deleting an unknown id is a no-op returning None."""
        self._stop_engine(task_id)
        task = self._tasks.pop(task_id, None)
        if task is None:
            return None
        task.is_running = False
        logger.info(f"Task deleted: {task.name} ({task_id})")
        self._emit_change()
        return task

    def complete_task(self, task_id: str) -> Task:
        """Mark a simple-mode task whose goal was reached as completed."""
        task = self._require(task_id)
        if task.completed:
            raise InvalidCommandError(f'Task "{task.name}" is already completed')
        if task.is_pomodoro_mode:
            raise InvalidCommandError("Pomodoro tasks cannot be completed")
        if not task.goal_reached:
            raise InvalidCommandError(
                f'Task "{task.name}" has not reached its {task.duration_minutes}m goal yet'
            )

        self._stop_engine(task_id)
        task.completed = True
        task.is_running = False
        task.completed_at = datetime.now()
        logger.info(f"Task completed: {task.name} ({task_id})")
        self._emit_change()
        return task.copy()

    def reset_task(self, task_id: str) -> Task:
        """Zero the elapsed time and cycle state of a task."""
        task = self._require(task_id)
        self._stop_engine(task_id)
        task.time_spent_seconds = 0
        task.is_running = False
        if task.pomodoro_state:
            task.pomodoro_state = replace(task.pomodoro_state, cycles_completed=0, is_on_break=False)
        logger.info(f"Task reset: {task.name} ({task_id})")
        self._emit_change()
        return task.copy()

    def update_time(self, task_id: str, seconds: int) -> bool:
        """Record elapsed time reported by a tick. Returns False if it was dropped."""
        task = self._tasks.get(task_id)
        if task is None or task.completed or not task.is_running:
            logger.debug(f"Dropping time update for inactive task {task_id}")
            return False
        task.time_spent_seconds = seconds
        self._emit_change()
        return True

    def pomodoro_phase_end(self, task_id: str, phase: Phase, cycles_completed: int) -> bool:
        """Record a phase boundary reported by a tick. Returns False if it was dropped."""
        task = self._tasks.get(task_id)
        if task is None or task.pomodoro_state is None or not task.is_running:
            logger.debug(f"Dropping phase change for inactive task {task_id}")
            return False
        task.pomodoro_state.is_on_break = phase == Phase.BREAK
        task.pomodoro_state.cycles_completed = cycles_completed
        self._emit_change()
        return True

    def dispatch(self, event: TimerEvent) -> None:
        """Apply an event produced by a timer engine."""
        if isinstance(event, TickResult):
            if self.update_time(event.task_id, event.time_spent_seconds):
                self.ticks.publish(event)
        elif isinstance(event, PhaseChanged):
            if not self.pomodoro_phase_end(event.task_id, event.phase, event.cycles_completed):
                return
            signal = Signal.BREAK_STARTED if event.phase == Phase.BREAK else Signal.FOCUS_STARTED
            self.notifications.publish(Notification(signal, event.task_id, event.task_name))
        elif isinstance(event, GoalReached):
            task = self._tasks.get(event.task_id)
            if task is None or not task.is_running:
                logger.debug(f"Dropping goal reached for inactive task {event.task_id}")
                return
            self.pause_timer(event.task_id)
            self.notifications.publish(
                Notification(Signal.GOAL_REACHED, event.task_id, event.task_name)
            )

    # ----- Settings -----
    def update_daily_goal(self, minutes: int) -> Settings:
        validate_minutes(minutes, "Daily goal")
        self.settings = replace(self.settings, daily_goal_minutes=minutes)
        logger.info(f"Daily goal set to {minutes} minutes")
        self.settings_changes.publish(self.settings)
        return self.settings

    def set_pomodoro_enabled(self, enabled: bool) -> Settings:
        """Choose whether new tasks default to Pomodoro mode."""
        self.settings = replace(self.settings, pomodoro_enabled=bool(enabled))
        logger.info(f"Pomodoro mode {'enabled' if enabled else 'disabled'} for new tasks")
        self.settings_changes.publish(self.settings)
        return self.settings

    def update_pomodoro_defaults(self, focus_minutes: int, break_minutes: int) -> Settings:
        validate_minutes(focus_minutes, "Focus")
        validate_minutes(break_minutes, "Break")
        self.settings = replace(
            self.settings,
            pomodoro_focus_minutes=focus_minutes,
            pomodoro_break_minutes=break_minutes,
        )
        logger.info(f"Pomodoro defaults set to {focus_minutes}m focus / {break_minutes}m break")
        self.settings_changes.publish(self.settings)
        return self.settings

    # ----- Lifecycle -----
    def stop_all(self) -> None:
        """Pause every running task."""
        for task_id in list(self._engines):
            self.pause_timer(task_id)

    async def shutdown(self) -> None:
        """Pause every running task and wait for the tick loops to unwind."""
        engines = list(self._engines.values())
        self.stop_all()
        await asyncio.gather(*(engine.wait_closed() for engine in engines))

    # ----- Internals -----
    def _require(self, task_id: str) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def _stop_engine(self, task_id: str) -> None:
        engine = self._engines.pop(task_id, None)
        if engine:
            engine.stop()

    def _emit_change(self) -> None:
        self.changes.publish(self.tasks)
