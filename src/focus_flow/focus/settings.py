"""Global settings applied to newly created tasks and goal displays."""

from __future__ import annotations

from dataclasses import dataclass

from focus_flow.focus.task import DEFAULT_BREAK_MINUTES, DEFAULT_FOCUS_MINUTES

DEFAULT_DAILY_GOAL_MINUTES = 240  # 4 hours


@dataclass
class Settings:
    """User-editable settings persisted next to the task collection."""
    daily_goal_minutes: int = DEFAULT_DAILY_GOAL_MINUTES
    pomodoro_enabled: bool = False
    pomodoro_focus_minutes: int = DEFAULT_FOCUS_MINUTES
    pomodoro_break_minutes: int = DEFAULT_BREAK_MINUTES

    def to_dict(self) -> dict[str, int | bool]:
        return {
            "daily_goal_minutes": self.daily_goal_minutes,
            "pomodoro_enabled": self.pomodoro_enabled,
            "pomodoro_focus_minutes": self.pomodoro_focus_minutes,
            "pomodoro_break_minutes": self.pomodoro_break_minutes,
        }
