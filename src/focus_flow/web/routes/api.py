"""API routes for tasks, stats and settings."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from focus_flow.focus.controller import TaskCollectionController
from focus_flow.focus.errors import InvalidCommandError, TaskNotFoundError
from focus_flow.focus.task import Task
from focus_flow.web.app import get_controller, get_db

router = APIRouter(tags=["api"])


class TaskCreate(BaseModel):
    """New task request."""
    name: str
    duration_minutes: int
    is_pomodoro_mode: bool | None = None
    focus_minutes: int | None = None
    break_minutes: int | None = None


class TaskResponse(BaseModel):
    """Task with its progress in the current phase."""
    id: str
    name: str
    duration_minutes: int
    time_spent_seconds: int
    completed: bool
    is_running: bool
    is_pomodoro_mode: bool
    pomodoro_state: dict[str, Any] | None
    created_at: datetime
    completed_at: datetime | None
    phase: str
    phase_elapsed: int
    phase_length: int
    progress_percent: float
    goal_reached: bool


class StatsResponse(BaseModel):
    """Aggregates over the whole collection."""
    total_elapsed_seconds: int
    completed_count: int
    active_count: int
    running_count: int
    daily_goal_minutes: int
    daily_goal_progress: float


class SettingsUpdate(BaseModel):
    """Partial settings update."""
    daily_goal_minutes: int | None = None
    pomodoro_enabled: bool | None = None
    pomodoro_focus_minutes: int | None = None
    pomodoro_break_minutes: int | None = None


class SettingsResponse(BaseModel):
    daily_goal_minutes: int
    pomodoro_enabled: bool
    pomodoro_focus_minutes: int
    pomodoro_break_minutes: int


class NotificationResponse(BaseModel):
    signal: str
    task_id: str
    task_name: str
    title: str
    message: str


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    database_connected: bool
    database_size_mb: float
    total_tasks: int


def _task_response(controller: TaskCollectionController, task: Task) -> TaskResponse:
    progress = controller.progress(task.id)
    return TaskResponse(
        id=task.id,
        name=task.name,
        duration_minutes=task.duration_minutes,
        time_spent_seconds=task.time_spent_seconds,
        completed=task.completed,
        is_running=task.is_running,
        is_pomodoro_mode=task.is_pomodoro_mode,
        pomodoro_state=task.pomodoro_state.to_dict() if task.pomodoro_state else None,
        created_at=task.created_at,
        completed_at=task.completed_at,
        phase=progress.current_phase.value,
        phase_elapsed=progress.phase_elapsed,
        phase_length=progress.phase_length,
        progress_percent=progress.progress_percent,
        goal_reached=task.goal_reached,
    )


def _command_error(e: InvalidCommandError) -> HTTPException:
    if isinstance(e, TaskNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    return HTTPException(status_code=422, detail=str(e))


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """API health check."""
    db = get_db(request)
    controller = get_controller(request)
    return HealthResponse(
        status="healthy" if db.is_connected else "unhealthy",
        database_connected=db.is_connected,
        database_size_mb=await db.get_size_mb(),
        total_tasks=len(controller.tasks),
    )


@router.get("/tasks", response_model=list[TaskResponse])
async def list_tasks(
    controller: TaskCollectionController = Depends(get_controller),
) -> list[TaskResponse]:
    """All tasks in display order."""
    return [_task_response(controller, task) for task in controller.tasks]


@router.post("/tasks", response_model=TaskResponse, status_code=201)
async def create_task(
    body: TaskCreate,
    controller: TaskCollectionController = Depends(get_controller),
) -> TaskResponse:
    try:
        task = controller.add_task(
            body.name,
            body.duration_minutes,
            is_pomodoro_mode=body.is_pomodoro_mode,
            focus_minutes=body.focus_minutes,
            break_minutes=body.break_minutes,
        )
    except InvalidCommandError as e:
        raise _command_error(e)
    return _task_response(controller, task)


@router.get("/tasks/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    controller: TaskCollectionController = Depends(get_controller),
) -> TaskResponse:
    task = controller.get_task(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task not found: {task_id}")
    return _task_response(controller, task)


@router.post("/tasks/{task_id}/toggle", response_model=TaskResponse)
async def toggle_task(
    task_id: str,
    controller: TaskCollectionController = Depends(get_controller),
) -> TaskResponse:
    """Start or pause the task's timer."""
    try:
        task = controller.toggle_timer(task_id)
    except InvalidCommandError as e:
        raise _command_error(e)
    return _task_response(controller, task)


@router.post("/tasks/{task_id}/complete", response_model=TaskResponse)
async def complete_task(
    task_id: str,
    controller: TaskCollectionController = Depends(get_controller),
) -> TaskResponse:
    try:
        task = controller.complete_task(task_id)
    except InvalidCommandError as e:
        raise _command_error(e)
    return _task_response(controller, task)


@router.post("/tasks/{task_id}/reset", response_model=TaskResponse)
async def reset_task(
    task_id: str,
    controller: TaskCollectionController = Depends(get_controller),
) -> TaskResponse:
    try:
        task = controller.reset_task(task_id)
    except InvalidCommandError as e:
        raise _command_error(e)
    return _task_response(controller, task)


@router.delete("/tasks/{task_id}", status_code=204)
async def delete_task(
    task_id: str,
    controller: TaskCollectionController = Depends(get_controller),
) -> None:
    if controller.delete_task(task_id) is None:
        raise HTTPException(status_code=404, detail=f"Task not found: {task_id}")


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    controller: TaskCollectionController = Depends(get_controller),
) -> StatsResponse:
    return StatsResponse(
        total_elapsed_seconds=controller.total_elapsed_seconds(),
        completed_count=controller.completed_count(),
        active_count=controller.active_count(),
        running_count=controller.running_count(),
        daily_goal_minutes=controller.settings.daily_goal_minutes,
        daily_goal_progress=controller.daily_goal_progress(),
    )


@router.get("/settings", response_model=SettingsResponse)
async def get_settings(
    controller: TaskCollectionController = Depends(get_controller),
) -> SettingsResponse:
    return SettingsResponse(**controller.settings.to_dict())


@router.put("/settings", response_model=SettingsResponse)
async def update_settings(
    body: SettingsUpdate,
    controller: TaskCollectionController = Depends(get_controller),
) -> SettingsResponse:
    """Update any subset of the global settings."""
    settings = controller.settings
    focus = settings.pomodoro_focus_minutes
    break_ = settings.pomodoro_break_minutes
    if body.pomodoro_focus_minutes is not None:
        focus = body.pomodoro_focus_minutes
    if body.pomodoro_break_minutes is not None:
        break_ = body.pomodoro_break_minutes

    try:
        # Validate everything before applying anything
        if body.daily_goal_minutes is not None and body.daily_goal_minutes <= 0:
            raise InvalidCommandError("Daily goal must be a positive number of minutes")
        if focus <= 0 or break_ <= 0:
            raise InvalidCommandError("Focus and break must be positive numbers of minutes")

        if body.daily_goal_minutes is not None:
            controller.update_daily_goal(body.daily_goal_minutes)
        if body.pomodoro_enabled is not None:
            controller.set_pomodoro_enabled(body.pomodoro_enabled)
        if body.pomodoro_focus_minutes is not None or body.pomodoro_break_minutes is not None:
            controller.update_pomodoro_defaults(focus, break_)
    except InvalidCommandError as e:
        raise _command_error(e)

    return SettingsResponse(**controller.settings.to_dict())


@router.get("/notifications", response_model=list[NotificationResponse])
async def recent_notifications(request: Request) -> list[NotificationResponse]:
    """Most recent timer notifications, oldest first."""
    return [
        NotificationResponse(
            signal=n.signal.value,
            task_id=n.task_id,
            task_name=n.task_name,
            title=n.title,
            message=n.message,
        )
        for n in request.app.state.notifications
    ]
