"""Render timer notifications as console toasts, bells and desktop alerts."""

from __future__ import annotations

import logging
import platform
import subprocess

from rich.console import Console
from rich.panel import Panel

from focus_flow.focus.events import Notification, Signal

logger = logging.getLogger(__name__)

STYLES = {
    Signal.BREAK_STARTED: ("☕", "cyan"),
    Signal.FOCUS_STARTED: ("🧠", "magenta"),
    Signal.GOAL_REACHED: ("🎉", "green"),
}


class ConsoleAlerts:
    """Subscriber for ``TaskCollectionController.notifications``.

    Usage:
        alerts = ConsoleAlerts(console, bell=True, desktop=False)
        controller.notifications.subscribe(alerts.handle)
    """

    def __init__(self, console: Console | None = None, bell: bool = True, desktop: bool = False):
        self.console = console or Console()
        self.bell = bell
        self.desktop = desktop

    def handle(self, notification: Notification) -> None:
        icon, color = STYLES[notification.signal]
        logger.info(f"{notification.signal.value}: {notification.task_name} ({notification.task_id})")

        if self.bell:
            self.console.bell()

        self.console.print(
            Panel(
                notification.message,
                title=f"{icon} {notification.title}",
                border_style=color,
                expand=False,
            )
        )

        if self.desktop:
            send_desktop_notification(notification.title, notification.message)


def send_desktop_notification(title: str, message: str) -> bool:
    """Send a native notification. Returns False where none is available."""
    system = platform.system()
    if system == "Darwin":
        command = ["osascript", "-e", f'display notification "{message}" with title "{title}"']
    elif system == "Linux":
        command = ["notify-send", title, message]
    else:
        return False

    try:
        subprocess.run(command, capture_output=True, timeout=5)
        return True
    except (subprocess.SubprocessError, FileNotFoundError, OSError) as e:
        logger.debug(f"Desktop notification unavailable: {e}")
        return False
