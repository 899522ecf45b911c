"""CLI commands for Focus Flow using Typer."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Awaitable, Callable, Optional

import typer
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.progress_bar import ProgressBar
from rich.table import Table
from rich.text import Text

from focus_flow import __version__
from focus_flow.core.config import Config, get_config
from focus_flow.focus.alerts import ConsoleAlerts
from focus_flow.focus.controller import TaskCollectionController
from focus_flow.focus.cycle import Phase, format_clock
from focus_flow.focus.errors import InvalidCommandError, TaskNotFoundError
from focus_flow.focus.task import Task
from focus_flow.storage.database import init_database
from focus_flow.storage.task_store import TaskStore

app = typer.Typer(
    name="focus-flow",
    help="Per-task focus timers with simple and Pomodoro modes.",
    add_completion=False,
)

console = Console()


def setup_logging(log_level: str, log_file: Path | None = None, quiet: bool = False) -> None:
    """Configure logging for the application.

    With ``quiet`` the console only shows warnings; the log file still gets
    everything at ``log_level``.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    stream = logging.StreamHandler()
    if quiet:
        stream.setLevel(max(level, logging.WARNING))
    handlers: list[logging.Handler] = [stream]

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )

    # Reduce noise from external libraries
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def format_minutes(minutes: int) -> str:
    """Format minutes as '1h 30m' or '45m'."""
    hours, mins = divmod(minutes, 60)
    if hours > 0:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def resolve_task_id(controller: TaskCollectionController, prefix: str) -> str:
    """Accept a full task id or any unambiguous prefix of one."""
    matches = [task.id for task in controller.tasks if task.id.startswith(prefix)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        raise InvalidCommandError(f"Task id prefix '{prefix}' is ambiguous")
    raise TaskNotFoundError(prefix)


@asynccontextmanager
async def open_controller(config: Config) -> AsyncIterator[TaskCollectionController]:
    """Load the stored collection, yield its controller and save on the way out."""
    db = await init_database(config.db_path)

    store = TaskStore(db, defaults=config.defaults.to_settings())
    controller = TaskCollectionController(
        tasks=await store.load_tasks(),
        settings=await store.load_settings(),
        tick_interval=config.timer.tick_interval_seconds,
    )
    store.attach(controller)

    try:
        yield controller
    finally:
        await controller.shutdown()
        await store.flush()
        await db.close()


def run_command(
    config: Config, command: Callable[[TaskCollectionController], Awaitable[None]]
) -> None:
    """Run an async command against the stored collection, reporting rejected input."""
    config.ensure_directories()
    setup_logging(config.log_level, config.log_file, quiet=True)

    async def runner():
        async with open_controller(config) as controller:
            await command(controller)

    try:
        asyncio.run(runner())
    except InvalidCommandError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def task_table(controller: TaskCollectionController) -> Table:
    table = Table(title="Tasks", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Name")
    table.add_column("Mode")
    table.add_column("Time", justify="right")
    table.add_column("Progress", justify="right")
    table.add_column("Status")

    for task in controller.tasks:
        progress = controller.progress(task.id)
        if task.is_pomodoro_mode and task.pomodoro_state:
            state = task.pomodoro_state
            mode = f"🍅 {state.focus_minutes}/{state.break_minutes}m · {state.cycles_completed} cycles"
            phase = "break" if state.is_on_break else "focus"
            progress_text = f"{phase} {progress.progress_percent:.0f}%"
        else:
            mode = format_minutes(task.duration_minutes)
            progress_text = f"{progress.progress_percent:.0f}%"

        if task.completed:
            status = "[green]✓ completed[/green]"
        elif task.goal_reached:
            status = "[yellow]goal reached[/yellow]"
        elif task.time_spent_seconds > 0:
            status = "paused"
        else:
            status = "[dim]not started[/dim]"

        table.add_row(
            task.id[:8], task.name, mode, format_clock(task.time_spent_seconds), progress_text, status
        )

    return table


def timer_panel(controller: TaskCollectionController, task: Task) -> Panel:
    """Live view of one running task."""
    progress = controller.progress(task.id)
    on_break = task.is_pomodoro_mode and progress.current_phase == Phase.BREAK
    color = "cyan" if on_break else "magenta"

    lines: list = [
        Text(
            f"{format_clock(progress.phase_elapsed)} / {format_clock(progress.phase_length)}"
            f"  ({format_clock(progress.phase_remaining)} left)",
            style=f"bold {color}",
        ),
        ProgressBar(total=100, completed=progress.progress_percent, complete_style=color),
    ]
    if task.is_pomodoro_mode and task.pomodoro_state:
        lines.append(Text(
            f"Total: {format_clock(task.time_spent_seconds)} · "
            f"{task.pomodoro_state.cycles_completed} cycles completed",
            style="dim",
        ))
    lines.append(Text("Ctrl+C to pause", style="dim"))

    if not task.is_pomodoro_mode:
        title = f"⏱ {task.name}"
    elif on_break:
        title = f"☕ {task.name} · Break"
    else:
        title = f"🧠 {task.name} · Focus"
    return Panel(Group(*lines), title=title, border_style=color, expand=False)


@app.command()
def add(
    name: str = typer.Argument(..., help="Task name"),
    minutes: int = typer.Option(25, "--minutes", "-m", help="Goal duration in minutes"),
    pomodoro: Optional[bool] = typer.Option(
        None,
        "--pomodoro/--simple",
        help="Timer mode (default: the global Pomodoro setting)",
    ),
    focus: int = typer.Option(None, "--focus", "-f", help="Focus minutes (Pomodoro mode)"),
    break_: int = typer.Option(None, "--break", "-b", help="Break minutes (Pomodoro mode)"),
) -> None:
    """Add a task."""
    config = get_config()

    async def command(controller: TaskCollectionController) -> None:
        task = controller.add_task(
            name, minutes, is_pomodoro_mode=pomodoro, focus_minutes=focus, break_minutes=break_
        )
        suffix = " with Pomodoro mode" if task.is_pomodoro_mode else ""
        console.print(f'[green]Task created![/green] "{task.name}" added{suffix} [dim]({task.id[:8]})[/dim]')

    run_command(config, command)


@app.command(name="list")
def list_tasks() -> None:
    """List tasks with their progress."""
    config = get_config()

    async def command(controller: TaskCollectionController) -> None:
        if not controller.tasks:
            console.print("[dim]No tasks yet. Add one with: focus-flow add \"Task name\"[/dim]")
            return
        console.print(task_table(controller))

    run_command(config, command)


@app.command()
def delete(task_id: str = typer.Argument(..., help="Task id or id prefix")) -> None:
    """Delete a task."""
    config = get_config()

    async def command(controller: TaskCollectionController) -> None:
        task = controller.delete_task(resolve_task_id(controller, task_id))
        console.print(f'[yellow]Task deleted:[/yellow] "{task.name}"')

    run_command(config, command)


@app.command()
def complete(task_id: str = typer.Argument(..., help="Task id or id prefix")) -> None:
    """Mark a task whose goal was reached as completed."""
    config = get_config()

    async def command(controller: TaskCollectionController) -> None:
        task = controller.complete_task(resolve_task_id(controller, task_id))
        console.print(f'[green]🎉 Task completed![/green] Awesome work on "{task.name}"!')

    run_command(config, command)


@app.command()
def reset(task_id: str = typer.Argument(..., help="Task id or id prefix")) -> None:
    """Reset a task's timer."""
    config = get_config()

    async def command(controller: TaskCollectionController) -> None:
        task = controller.reset_task(resolve_task_id(controller, task_id))
        console.print(f'[yellow]Timer reset:[/yellow] "{task.name}"')

    run_command(config, command)


@app.command()
def run(task_id: str = typer.Argument(..., help="Task id or id prefix")) -> None:
    """Run a task's timer in the foreground until Ctrl+C or its goal is reached."""
    config = get_config()

    async def command(controller: TaskCollectionController) -> None:
        resolved = resolve_task_id(controller, task_id)
        controller.start_timer(resolved)

        with Live(console=console, refresh_per_second=4, transient=True) as live:
            alerts = ConsoleAlerts(
                live.console,
                bell=config.notifications.bell,
                desktop=config.notifications.desktop,
            )
            controller.notifications.subscribe(alerts.handle)
            try:
                while True:
                    task = controller.get_task(resolved)
                    if task is None or not task.is_running:
                        break
                    live.update(timer_panel(controller, task))
                    await asyncio.sleep(0.25)
            except (KeyboardInterrupt, asyncio.CancelledError):
                pass

        task = controller.pause_timer(resolved)
        console.print(f'[yellow]Paused[/yellow] "{task.name}" at {format_clock(task.time_spent_seconds)}')

    try:
        run_command(config, command)
    except KeyboardInterrupt:
        pass


@app.command()
def stats() -> None:
    """Show totals and progress toward the daily goal."""
    config = get_config()

    async def command(controller: TaskCollectionController) -> None:
        goal = controller.settings.daily_goal_minutes
        table = Table(title="Today", show_header=False)
        table.add_column("Metric", style="bold")
        table.add_column("Value", justify="right")
        table.add_row("Time tracked", format_clock(controller.total_elapsed_seconds()))
        table.add_row("Daily goal", f"{format_minutes(goal)} ({controller.daily_goal_progress():.0f}%)")
        table.add_row("Completed", str(controller.completed_count()))
        table.add_row("Active", str(controller.active_count()))
        console.print(table)

    run_command(config, command)


@app.command()
def goal(minutes: Optional[int] = typer.Argument(None, help="New daily goal in minutes")) -> None:
    """Show or set the daily goal."""
    config = get_config()

    async def command(controller: TaskCollectionController) -> None:
        if minutes is not None:
            controller.update_daily_goal(minutes)
            console.print(f"[green]Goal updated![/green] New daily goal: {format_minutes(minutes)}")
        else:
            console.print(f"Daily goal: {format_minutes(controller.settings.daily_goal_minutes)}")

    run_command(config, command)


@app.command()
def pomodoro(
    enable: Optional[bool] = typer.Option(None, "--enable/--disable", help="Default new tasks to Pomodoro mode"),
    focus: int = typer.Option(None, "--focus", "-f", help="Default focus minutes"),
    break_: int = typer.Option(None, "--break", "-b", help="Default break minutes"),
) -> None:
    """Show or change the global Pomodoro settings."""
    config = get_config()

    async def command(controller: TaskCollectionController) -> None:
        if focus is not None or break_ is not None:
            settings = controller.settings
            controller.update_pomodoro_defaults(
                focus if focus is not None else settings.pomodoro_focus_minutes,
                break_ if break_ is not None else settings.pomodoro_break_minutes,
            )
        if enable is not None:
            controller.set_pomodoro_enabled(enable)

        settings = controller.settings
        table = Table(title="Pomodoro Settings", show_header=True, header_style="bold cyan")
        table.add_column("Setting")
        table.add_column("Value")
        table.add_row("New tasks", "Pomodoro" if settings.pomodoro_enabled else "Simple timer")
        table.add_row("Focus", f"{settings.pomodoro_focus_minutes} minutes")
        table.add_row("Break", f"{settings.pomodoro_break_minutes} minutes")
        console.print(table)

    run_command(config, command)


@app.command()
def serve(
    host: str = typer.Option(None, "--host", help="Bind address (default from config)"),
    port: int = typer.Option(None, "--port", "-p", help="Port (default from config)"),
) -> None:
    """Serve the HTTP API."""
    from focus_flow.web.app import run_server

    config = get_config()
    config.ensure_directories()
    setup_logging(config.log_level, config.log_file)
    run_server(config, host=host, port=port)


@app.command(name="config-show")
def config_show() -> None:
    """Show the effective configuration."""
    config = get_config()

    table = Table(title="Configuration", show_header=True, header_style="bold cyan")
    table.add_column("Setting")
    table.add_column("Value")

    table.add_row("Config file", str(config.config_file))
    table.add_row("Database", str(config.db_path))
    table.add_row("Log file", str(config.log_file))
    table.add_row("Log level", config.log_level)
    table.add_row("Tick interval", f"{config.timer.tick_interval_seconds}s")
    table.add_row("Bell", str(config.notifications.bell))
    table.add_row("Desktop notifications", str(config.notifications.desktop))
    table.add_row("Web", f"{config.web.host}:{config.web.port}")

    console.print(table)


@app.command()
def version() -> None:
    """Show version."""
    console.print(f"Focus Flow v{__version__}")


@app.callback()
def main_callback() -> None:
    """Focus Flow - focus timers for your tasks."""
    pass


if __name__ == "__main__":
    app()
