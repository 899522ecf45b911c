"""Core application components."""

from focus_flow.core.config import Config, get_config

__all__ = ["Config", "get_config"]
