"""Storage layer for tasks and settings."""

from focus_flow.storage.database import Database, init_database
from focus_flow.storage.task_store import TaskStore

__all__ = ["Database", "init_database", "TaskStore"]
