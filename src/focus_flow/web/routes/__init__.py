"""API routes for Focus Flow."""

from focus_flow.web.routes import api

__all__ = ["api"]
