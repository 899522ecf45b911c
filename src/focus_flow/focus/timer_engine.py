"""Per-task timer engine driving one-second ticks on the event loop."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable

from focus_flow.focus.cycle import Phase, calculate_cycle
from focus_flow.focus.errors import InvalidCommandError, TaskNotFoundError
from focus_flow.focus.events import GoalReached, PhaseChanged, TickResult, TimerEvent
from focus_flow.focus.task import Task

logger = logging.getLogger(__name__)

DEFAULT_TICK_INTERVAL = 1.0


class TaskTimerEngine:
    """Tick source bound to exactly one task.

    The engine holds no task data. Each tick asks ``snapshot`` for a fresh
    copy of the task, works out what one more second means for it and hands
    the resulting events to ``publish``. Stopping cancels the tick loop; a
    tick that still slips through finds the engine stopped and does nothing.

    Usage:
        engine = TaskTimerEngine(task.id, snapshot=store.get, publish=controller.dispatch)
        engine.start()
        # ... ticks flow into publish() once per second ...
        engine.stop()
    """

    def __init__(
        self,
        task_id: str,
        snapshot: Callable[[str], Task | None],
        publish: Callable[[TimerEvent], None],
        interval: float = DEFAULT_TICK_INTERVAL,
    ):
        self.task_id = task_id
        self.interval = interval
        self._snapshot = snapshot
        self._publish = publish
        self._task: asyncio.Task | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self) -> None:
        """Begin ticking. Requires a running event loop."""
        if self._running:
            return

        task = self._snapshot(self.task_id)
        if task is None:
            raise TaskNotFoundError(self.task_id)
        if task.completed:
            raise InvalidCommandError(f'Task "{task.name}" is already completed')

        self._running = True
        self._task = asyncio.get_running_loop().create_task(self._tick_loop())
        logger.info(f"Timer started for task {self.task_id}")

    def stop(self) -> None:
        """Cancel the tick loop. Safe to call any number of times."""
        if not self._running:
            return

        self._running = False
        if self._task and not self._task.done():
            self._task.cancel()
        logger.info(f"Timer stopped for task {self.task_id}")

    async def wait_closed(self) -> None:
        """Wait for a stopped tick loop to unwind."""
        task, self._task = self._task, None
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            pass

    def tick(self, task: Task | None) -> list[TimerEvent]:
        """Advance ``task`` by one second and return the resulting events.

        Late ticks for a stopped engine, a deleted, paused or completed task
        are discarded.
        """
        if not self._running or task is None or task.completed or not task.is_running:
            logger.debug(f"Discarding stale tick for task {self.task_id}")
            return []

        elapsed = task.time_spent_seconds + 1

        if task.is_pomodoro_mode and task.pomodoro_state:
            state = task.pomodoro_state
            progress = calculate_cycle(
                elapsed, state.focus_minutes, state.break_minutes, state.is_on_break
            )
            events: list[TimerEvent] = [TickResult(task.id, elapsed, progress)]
            if progress.phase_just_ended:
                if state.is_on_break:
                    new_phase = Phase.FOCUS
                    cycles = state.cycles_completed + 1
                else:
                    new_phase = Phase.BREAK
                    cycles = state.cycles_completed
                logger.info(
                    f"Task {task.id} switched to {new_phase.value} at {elapsed}s "
                    f"({cycles} cycles completed)"
                )
                events.append(PhaseChanged(task.id, task.name, new_phase, cycles))
            return events

        events = [TickResult(task.id, elapsed)]
        if elapsed >= task.goal_seconds:
            logger.info(f"Task {task.id} reached its {task.duration_minutes}m goal, pausing")
            self.stop()
            events.append(GoalReached(task.id, task.name, elapsed))
        return events

    async def _tick_loop(self) -> None:
        """Main timer tick loop."""
        try:
            while self._running:
                await asyncio.sleep(self.interval)
                if not self._running:
                    break

                events = self.tick(self._snapshot(self.task_id))
                if not events and self._running:
                    # Task vanished or was paused behind our back
                    self._running = False
                    break

                for event in events:
                    try:
                        self._publish(event)
                    except Exception as e:
                        logger.error(f"Error publishing {type(event).__name__}: {e}")

        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Error in timer tick loop: {e}")
            self._running = False
