"""Events flowing from timer engines to the controller and presentation."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

from focus_flow.focus.cycle import CycleProgress, Phase

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class TickResult:
    """One second was added to a task."""
    task_id: str
    time_spent_seconds: int
    progress: CycleProgress | None = None


@dataclass(frozen=True)
class PhaseChanged:
    """A Pomodoro task crossed a phase boundary and is now in ``phase``."""
    task_id: str
    task_name: str
    phase: Phase
    cycles_completed: int


@dataclass(frozen=True)
class GoalReached:
    """A simple-mode task hit its duration and the timer paused itself."""
    task_id: str
    task_name: str
    time_spent_seconds: int


TimerEvent = TickResult | PhaseChanged | GoalReached


class Signal(Enum):
    """Alerts the presentation layer renders as sound and toast."""
    BREAK_STARTED = "break_started"
    FOCUS_STARTED = "focus_started"
    GOAL_REACHED = "goal_reached"


@dataclass(frozen=True)
class Notification:
    """A signal raised for a specific task."""
    signal: Signal
    task_id: str
    task_name: str

    @property
    def title(self) -> str:
        titles = {
            Signal.BREAK_STARTED: "Break Time!",
            Signal.FOCUS_STARTED: "Focus Time!",
            Signal.GOAL_REACHED: "Goal reached!",
        }
        return titles[self.signal]

    @property
    def message(self) -> str:
        if self.signal == Signal.BREAK_STARTED:
            return f'Take a break from "{self.task_name}"'
        if self.signal == Signal.FOCUS_STARTED:
            return f'Back to work on "{self.task_name}"'
        return f'"{self.task_name}" reached its goal. Mark as complete?'


class EventChannel(Generic[T]):
    """Synchronous fan-out of events to subscribers.

    A failing subscriber is logged and skipped; it never affects the
    publisher or the other subscribers. Coroutine results are scheduled on
    the running loop.
    """

    def __init__(self, name: str = "events"):
        self.name = name
        self._subscribers: list[Callable[[T], Any]] = []
        self._pending: set[asyncio.Task] = set()

    def subscribe(self, callback: Callable[[T], Any]) -> Callable[[], None]:
        """Register a subscriber and return a function that removes it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def publish(self, event: T) -> None:
        for callback in list(self._subscribers):
            result = None
            try:
                result = callback(event)
                if asyncio.iscoroutine(result):
                    task = asyncio.get_running_loop().create_task(result)
                    self._pending.add(task)
                    task.add_done_callback(self._on_done)
            except Exception as e:
                if asyncio.iscoroutine(result):
                    result.close()
                logger.error(f"Error in {self.name} subscriber: {e}")

    def _on_done(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Error in {self.name} subscriber: {task.exception()}")

    def __len__(self) -> int:
        return len(self._subscribers)
