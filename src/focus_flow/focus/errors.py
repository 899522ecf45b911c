"""Errors surfaced to command issuers."""

from __future__ import annotations


class InvalidCommandError(ValueError):
    """A command was rejected before it touched any state."""


class TaskNotFoundError(InvalidCommandError):
    """The command referenced a task id that is not in the collection."""

    def __init__(self, task_id: str):
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id
