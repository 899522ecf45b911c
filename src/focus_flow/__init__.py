"""Focus Flow - per-task focus timers with simple and Pomodoro modes."""

__version__ = "0.1.0"
