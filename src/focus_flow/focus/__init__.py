"""Focus timers: task entity, Pomodoro cycle math, timer engines and the task controller."""

from focus_flow.focus.controller import TaskCollectionController
from focus_flow.focus.cycle import CycleProgress, Phase, calculate_cycle, format_clock, simple_progress
from focus_flow.focus.errors import InvalidCommandError, TaskNotFoundError
from focus_flow.focus.events import (
    EventChannel,
    GoalReached,
    Notification,
    PhaseChanged,
    Signal,
    TickResult,
)
from focus_flow.focus.settings import Settings
from focus_flow.focus.task import PomodoroState, Task
from focus_flow.focus.timer_engine import TaskTimerEngine

__all__ = [
    "TaskCollectionController",
    "CycleProgress",
    "Phase",
    "calculate_cycle",
    "format_clock",
    "simple_progress",
    "InvalidCommandError",
    "TaskNotFoundError",
    "EventChannel",
    "GoalReached",
    "Notification",
    "PhaseChanged",
    "Signal",
    "TickResult",
    "Settings",
    "PomodoroState",
    "Task",
    "TaskTimerEngine",
]
