"""FastAPI application exposing the task controller over HTTP."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from focus_flow import __version__
from focus_flow.core.config import Config, get_config
from focus_flow.focus.controller import TaskCollectionController
from focus_flow.focus.events import Notification
from focus_flow.storage.database import Database, init_database
from focus_flow.storage.task_store import TaskStore

logger = logging.getLogger(__name__)

# Notifications kept for clients that poll /api/notifications
NOTIFICATION_BACKLOG = 50


def get_controller(request: Request) -> TaskCollectionController:
    """Dependency returning the controller owned by the running app."""
    return request.app.state.controller


def get_db(request: Request) -> Database:
    return request.app.state.db


def create_app(config: Config | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler."""
        logger.info("Starting Focus Flow API...")

        db = await init_database(config.db_path)

        store = TaskStore(db, defaults=config.defaults.to_settings())
        controller = TaskCollectionController(
            tasks=await store.load_tasks(),
            settings=await store.load_settings(),
            tick_interval=config.timer.tick_interval_seconds,
        )
        store.attach(controller)

        notifications: deque[Notification] = deque(maxlen=NOTIFICATION_BACKLOG)
        controller.notifications.subscribe(notifications.append)

        app.state.db = db
        app.state.store = store
        app.state.controller = controller
        app.state.notifications = notifications

        yield

        # Shutdown
        await controller.shutdown()
        await store.flush()
        await db.close()
        logger.info("Focus Flow API shutdown complete")

    app = FastAPI(
        title="Focus Flow",
        description="Per-task focus timers with Pomodoro cycles",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from focus_flow.web.routes import api

    app.include_router(api.router, prefix="/api")

    return app


def run_server(config: Config | None = None, host: str | None = None, port: int | None = None) -> None:
    """Run the web server."""
    import uvicorn

    config = config or get_config()
    host = host or config.web.host
    port = port or config.web.port

    logger.info(f"Starting API at http://{host}:{port}")

    uvicorn.run(create_app(config), host=host, port=port, log_level="info")
