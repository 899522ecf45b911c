"""Task entity tracked by the focus timers."""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from focus_flow.focus.errors import InvalidCommandError

logger = logging.getLogger(__name__)

# Fallbacks applied when a stored record is malformed
DEFAULT_TASK_NAME = "Untitled task"
DEFAULT_DURATION_MINUTES = 25
DEFAULT_FOCUS_MINUTES = 25
DEFAULT_BREAK_MINUTES = 5


def new_task_id() -> str:
    """Generate an opaque task identifier."""
    return uuid.uuid4().hex


def validate_name(name: str) -> str:
    """Return the stripped task name or reject it."""
    if not isinstance(name, str) or not name.strip():
        raise InvalidCommandError("Task name must not be empty")
    return name.strip()


def validate_minutes(value: int, label: str) -> int:
    """Reject non-positive (or non-integer) minute values."""
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise InvalidCommandError(f"{label} must be a positive number of minutes, got {value!r}")
    return value


@dataclass
class PomodoroState:
    """Pomodoro sub-state of a task."""
    focus_minutes: int = DEFAULT_FOCUS_MINUTES
    break_minutes: int = DEFAULT_BREAK_MINUTES
    cycles_completed: int = 0
    is_on_break: bool = False

    @property
    def focus_seconds(self) -> int:
        return self.focus_minutes * 60

    @property
    def break_seconds(self) -> int:
        return self.break_minutes * 60

    def to_dict(self) -> dict[str, Any]:
        return {
            "focusMinutes": self.focus_minutes,
            "breakMinutes": self.break_minutes,
            "cyclesCompleted": self.cycles_completed,
            "isOnBreak": self.is_on_break,
        }

    @classmethod
    def from_dict(
        cls,
        data: Any,
        default_focus: int = DEFAULT_FOCUS_MINUTES,
        default_break: int = DEFAULT_BREAK_MINUTES,
    ) -> PomodoroState:
        """Create from a stored record, falling back per field."""
        if not isinstance(data, dict):
            logger.warning("Malformed pomodoroState, using defaults")
            data = {}
        return cls(
            focus_minutes=_int_field(data, "focusMinutes", default_focus, minimum=1),
            break_minutes=_int_field(data, "breakMinutes", default_break, minimum=1),
            cycles_completed=_int_field(data, "cyclesCompleted", 0, minimum=0),
            is_on_break=_bool_field(data, "isOnBreak", False),
        )


@dataclass
class Task:
    """A focus task with its own elapsed-time timer.

    Simple mode counts up to ``duration_minutes``. Pomodoro mode alternates
    focus and break phases indefinitely and keeps its phase bookkeeping in
    ``pomodoro_state``, which is present exactly when ``is_pomodoro_mode``.
    """
    name: str
    duration_minutes: int
    id: str = field(default_factory=new_task_id)
    time_spent_seconds: int = 0
    completed: bool = False
    is_running: bool = False
    is_pomodoro_mode: bool = False
    pomodoro_state: PomodoroState | None = None
    created_at: datetime = field(default_factory=datetime.now)
    completed_at: datetime | None = None

    @property
    def goal_seconds(self) -> int:
        """Simple-mode target in seconds."""
        return self.duration_minutes * 60

    @property
    def goal_reached(self) -> bool:
        """True once a simple-mode task has run for its full duration."""
        return not self.is_pomodoro_mode and self.time_spent_seconds >= self.goal_seconds

    def copy(self) -> Task:
        """Independent snapshot of this task."""
        state = replace(self.pomodoro_state) if self.pomodoro_state else None
        return replace(self, pomodoro_state=state)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the persisted record format."""
        return {
            "id": self.id,
            "name": self.name,
            "durationMinutes": self.duration_minutes,
            "timeSpentSeconds": self.time_spent_seconds,
            "completed": self.completed,
            "isRunning": self.is_running,
            "isPomodoroMode": self.is_pomodoro_mode,
            "pomodoroState": self.pomodoro_state.to_dict() if self.pomodoro_state else None,
            "createdAt": self.created_at.isoformat(),
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        default_focus: int = DEFAULT_FOCUS_MINUTES,
        default_break: int = DEFAULT_BREAK_MINUTES,
    ) -> Task:
        """Create from a persisted record.

        Timers never resume across a reload, so ``is_running`` is always
        False. Each malformed field falls back to its default instead of
        failing the whole record.
        """
        task_id = data.get("id")
        if not isinstance(task_id, str) or not task_id:
            logger.warning("Stored task without a valid id, assigning a new one")
            task_id = new_task_id()

        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            logger.warning(f"Stored task {task_id} has no name, using default")
            name = DEFAULT_TASK_NAME

        is_pomodoro = _bool_field(data, "isPomodoroMode", False)
        state = None
        if is_pomodoro:
            state = PomodoroState.from_dict(data.get("pomodoroState"), default_focus, default_break)

        completed = _bool_field(data, "completed", False)
        return cls(
            id=task_id,
            name=name.strip(),
            duration_minutes=_int_field(data, "durationMinutes", DEFAULT_DURATION_MINUTES, minimum=1),
            time_spent_seconds=_int_field(data, "timeSpentSeconds", 0, minimum=0),
            completed=completed,
            is_running=False,
            is_pomodoro_mode=is_pomodoro,
            pomodoro_state=state,
            created_at=_datetime_field(data, "createdAt") or datetime.now(),
            completed_at=_datetime_field(data, "completedAt") if completed else None,
        )


def _int_field(data: dict[str, Any], key: str, default: int, minimum: int) -> int:
    value = data.get(key)
    if (
        isinstance(value, bool)
        or not isinstance(value, (int, float))
        or (isinstance(value, float) and not (math.isfinite(value) and value.is_integer()))
        or value < minimum
    ):
        if value is not None:
            logger.warning(f"Invalid {key}={value!r} in stored task, using {default}")
        return default
    return int(value)


def _bool_field(data: dict[str, Any], key: str, default: bool) -> bool:
    value = data.get(key)
    if isinstance(value, bool):
        return value
    if value is not None:
        logger.warning(f"Invalid {key}={value!r} in stored task, using {default}")
    return default


def _datetime_field(data: dict[str, Any], key: str) -> datetime | None:
    value = data.get(key)
    if not value:
        return None
    try:
        if isinstance(value, str) and value.endswith("Z"):
            value = value[:-1] + "+00:00"
        return datetime.fromisoformat(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid {key}={value!r} in stored task, ignoring")
        return None
