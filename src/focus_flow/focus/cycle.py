"""Pomodoro cycle calculations.

Everything here is pure: the phase and progress of a task are derived from
its accumulated elapsed time and its Pomodoro configuration alone.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from focus_flow.focus.errors import InvalidCommandError


class Phase(Enum):
    """Current sub-state of a Pomodoro task."""
    FOCUS = "focus"
    BREAK = "break"


@dataclass(frozen=True)
class CycleProgress:
    """Where a task stands inside its current phase."""
    current_phase: Phase
    phase_elapsed: int
    phase_length: int
    progress_percent: float
    phase_just_ended: bool = False

    @property
    def phase_remaining(self) -> int:
        return max(0, self.phase_length - self.phase_elapsed)


def clamp_percent(value: float) -> float:
    """Clamp a percentage to [0, 100]."""
    return min(100.0, max(0.0, value))


def calculate_cycle(
    time_spent_seconds: int,
    focus_minutes: int,
    break_minutes: int,
    is_on_break: bool,
) -> CycleProgress:
    """Compute the phase position for a Pomodoro task.

    ``is_on_break`` is the phase the task believes it is in. The phase is
    reported as ended once the position inside the cycle has reached (or
    passed) the end of that phase: ``focus_minutes * 60`` for focus, the
    wrap to the next cycle for break. Whole-second gapless ticks visit the
    exact boundary second, so this fires on the same tick an equality test
    would; the flag flip that follows keeps it from firing twice.

    Args:
        time_spent_seconds: Total elapsed seconds of the task.
        focus_minutes: Focus phase length in minutes.
        break_minutes: Break phase length in minutes.
        is_on_break: Phase flag before this evaluation.
    """
    if focus_minutes <= 0 or break_minutes <= 0:
        raise InvalidCommandError("Focus and break minutes must be positive")
    if time_spent_seconds < 0:
        raise InvalidCommandError("Elapsed time cannot be negative")

    focus_seconds = focus_minutes * 60
    break_seconds = break_minutes * 60
    position = time_spent_seconds % (focus_seconds + break_seconds)

    if is_on_break:
        phase_elapsed = min(break_seconds, max(0, position - focus_seconds))
        phase_length = break_seconds
        # Positions below the break start mean the cycle has wrapped
        just_ended = time_spent_seconds > 0 and position < focus_seconds
        phase = Phase.BREAK
    else:
        phase_elapsed = min(focus_seconds, position)
        phase_length = focus_seconds
        just_ended = position >= focus_seconds
        phase = Phase.FOCUS

    return CycleProgress(
        current_phase=phase,
        phase_elapsed=phase_elapsed,
        phase_length=phase_length,
        progress_percent=clamp_percent(phase_elapsed / phase_length * 100),
        phase_just_ended=just_ended,
    )


def simple_progress(time_spent_seconds: int, duration_minutes: int) -> float:
    """Progress toward a simple-mode goal (0-100)."""
    if duration_minutes <= 0:
        raise InvalidCommandError("Duration must be positive")
    return clamp_percent(time_spent_seconds / (duration_minutes * 60) * 100)


def format_clock(seconds: int) -> str:
    """Format seconds as HH:MM:SS."""
    hours, remainder = divmod(max(0, int(seconds)), 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
