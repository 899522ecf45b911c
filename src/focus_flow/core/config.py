"""Configuration management with Pydantic and YAML support."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from focus_flow.focus.settings import DEFAULT_DAILY_GOAL_MINUTES, Settings
from focus_flow.focus.task import DEFAULT_BREAK_MINUTES, DEFAULT_FOCUS_MINUTES

DEFAULT_CONFIG_DIR = Path.home() / ".config/focus-flow"


class TimerConfig(BaseModel):
    """Timer engine configuration."""

    tick_interval_seconds: float = Field(
        default=1.0, gt=0, description="Seconds between ticks; each tick adds one second"
    )


class DefaultsConfig(BaseModel):
    """Initial values for settings that have never been saved."""

    daily_goal_minutes: int = Field(default=DEFAULT_DAILY_GOAL_MINUTES, ge=1)
    pomodoro_enabled: bool = False
    pomodoro_focus_minutes: int = Field(default=DEFAULT_FOCUS_MINUTES, ge=1)
    pomodoro_break_minutes: int = Field(default=DEFAULT_BREAK_MINUTES, ge=1)

    def to_settings(self) -> Settings:
        return Settings(
            daily_goal_minutes=self.daily_goal_minutes,
            pomodoro_enabled=self.pomodoro_enabled,
            pomodoro_focus_minutes=self.pomodoro_focus_minutes,
            pomodoro_break_minutes=self.pomodoro_break_minutes,
        )


class NotificationConfig(BaseModel):
    """How phase changes and reached goals are announced."""

    bell: bool = Field(default=True, description="Ring the terminal bell")
    desktop: bool = Field(default=False, description="Send native desktop notifications")


class WebConfig(BaseModel):
    """HTTP API configuration."""

    host: str = Field(default="127.0.0.1", description="Bind to localhost only")
    port: int = Field(default=8080, ge=1024, le=65535)


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_prefix="FOCUS_FLOW_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(default_factory=lambda: Path.home() / ".local/share/focus-flow")
    log_dir: Path = Field(default_factory=lambda: Path.home() / ".local/state/focus-flow")
    config_dir: Path = Field(default_factory=lambda: DEFAULT_CONFIG_DIR)

    # Log level
    log_level: str = Field(default="INFO", pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")

    # Sub-configurations
    timer: TimerConfig = Field(default_factory=TimerConfig)
    defaults: DefaultsConfig = Field(default_factory=DefaultsConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    web: WebConfig = Field(default_factory=WebConfig)

    @property
    def db_path(self) -> Path:
        """Path to SQLite database."""
        return self.data_dir / "focus_flow.db"

    @property
    def log_file(self) -> Path:
        return self.log_dir / "focus_flow.log"

    @property
    def config_file(self) -> Path:
        """Path to YAML config file."""
        return self.config_dir / "config.yaml"

    def ensure_directories(self) -> None:
        """Create all required directories."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        os.chmod(self.data_dir, 0o700)

    @classmethod
    def load(cls, config_path: Path | None = None) -> Config:
        """Load configuration from YAML file, environment variables, and defaults.

        Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values
        """
        config_path = config_path or DEFAULT_CONFIG_DIR / "config.yaml"

        yaml_config: dict[str, Any] = {}
        if config_path.exists():
            with open(config_path) as f:
                yaml_config = yaml.safe_load(f) or {}

        # Init kwargs outrank env vars in pydantic-settings, so drop keys the
        # environment already sets
        env_keys = {
            key[len("FOCUS_FLOW_"):].split("__")[0].lower()
            for key in os.environ
            if key.startswith("FOCUS_FLOW_")
        }
        yaml_config = {k: v for k, v in yaml_config.items() if k not in env_keys}

        return cls(**yaml_config)

    def save(self, config_path: Path | None = None) -> None:
        """Save current configuration to YAML file."""
        config_path = config_path or self.config_file
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = self.model_dump(exclude_none=True)

        # Convert Path objects to strings for YAML
        for key in ["data_dir", "log_dir", "config_dir"]:
            if key in data:
                data[key] = str(data[key])

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


@lru_cache
def get_config() -> Config:
    """Get cached configuration instance."""
    return Config.load()
