"""Shared fixtures for Focus Flow tests."""

import pytest

from focus_flow.focus.controller import TaskCollectionController
from focus_flow.focus.events import TimerEvent

# Long enough that the background tick loop never fires during a test;
# tests drive ticks explicitly through run_ticks().
IDLE_INTERVAL = 3600.0


@pytest.fixture
def controller():
    """Controller whose engines only tick when a test tells them to."""
    return TaskCollectionController(tick_interval=IDLE_INTERVAL)


def run_ticks(controller: TaskCollectionController, task_id: str, count: int = 1) -> list[TimerEvent]:
    """Deliver ``count`` ticks for a task the way its engine's loop would."""
    seen: list[TimerEvent] = []
    for _ in range(count):
        engine = controller._engines.get(task_id)
        if engine is None:
            break
        events = engine.tick(controller.get_task(task_id))
        for event in events:
            controller.dispatch(event)
        seen.extend(events)
    return seen


@pytest.fixture
def tick():
    """The run_ticks helper, as a fixture."""
    return run_ticks
