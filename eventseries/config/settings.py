"""Settings management using Pydantic for type validation and configuration."""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, PrivateAttr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

ENV_PREFIX = "EVENTSERIES_"


class LoggingSettings(BaseModel):
    """Logging configuration settings."""

    # Console Logging
    console_enabled: bool = Field(default=True, description="Enable console logging")
    console_level: str = Field(
        default="INFO",
        description="Console log level: DEBUG, VERBOSE, INFO, WARNING, ERROR, CRITICAL",
    )
    console_colors: bool = Field(
        default=True, description="Enable colored console output (auto-detected)"
    )

    # File Logging
    file_enabled: bool = Field(default=False, description="Enable file logging")
    file_level: str = Field(default="DEBUG", description="File log level")
    file_directory: Optional[str] = Field(
        default=None, description="Directory for log files (defaults to <data_dir>/logs)"
    )
    max_log_files: int = Field(default=5, description="Number of rotated log files to keep")

    # Third-party noise
    third_party_level: str = Field(
        default="WARNING", description="Log level for third-party libraries"
    )


class EventSeriesSettings(BaseSettings):
    """Application settings with environment variable and YAML support.

    Priority: explicit arguments > environment > YAML file > defaults.
    """

    _explicit_args: set = PrivateAttr(default_factory=set)
    _env_vars_set: set = PrivateAttr(default_factory=set)

    app_name: str = Field(default="EventSeries", description="Application name")

    # File Paths
    config_dir: Path = Field(default_factory=lambda: Path.home() / ".config" / "eventseries")
    data_dir: Path = Field(
        default_factory=lambda: Path.home() / ".local" / "share" / "eventseries"
    )
    database_name: str = Field(default="series.db", description="SQLite database file name")

    # Expansion
    max_occurrences: int = Field(
        default=1000, description="Maximum occurrences emitted by a single expansion"
    )
    default_window_days: int = Field(
        default=90, description="Window length used when a query gives no end"
    )
    timezone: str = Field(default="UTC", description="Timezone for naive window bounds")

    # Logging Configuration
    logging: LoggingSettings = Field(
        default_factory=LoggingSettings, description="Logging settings"
    )

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
    )

    def __init__(self, **kwargs: Any) -> None:
        config_file = kwargs.pop("config_file", None)

        env_vars_set = {
            key[len(ENV_PREFIX) :].lower() for key in os.environ if key.startswith(ENV_PREFIX)
        }

        super().__init__(**kwargs)

        self._explicit_args = set(kwargs.keys())
        self._env_vars_set = env_vars_set
        self._load_yaml_config(Path(config_file) if config_file else None)

    @field_validator("max_occurrences", "default_window_days")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must be at least 1")
        return value

    def _find_config_file(self) -> Optional[Path]:
        """Find configuration file in the project or user config directory."""
        project_config = Path(__file__).parent.parent.parent / "config" / "config.yaml"
        if project_config.exists():
            return project_config

        user_config = self.config_dir / "config.yaml"
        if user_config.exists():
            return user_config

        return None

    def _load_basic_settings(self, config_data: dict) -> None:
        """Load top-level settings from YAML data."""
        basic_settings = [
            "app_name",
            "data_dir",
            "database_name",
            "max_occurrences",
            "default_window_days",
            "timezone",
        ]

        for setting in basic_settings:
            if (
                setting in config_data
                and setting not in self._explicit_args
                and setting not in self._env_vars_set
            ):
                value = config_data[setting]
                setattr(self, setting, Path(value).expanduser() if setting == "data_dir" else value)

    def _load_logging_config(self, config_data: dict) -> None:
        """Load logging configuration from YAML data."""
        if "logging" not in config_data or "logging" in self._explicit_args:
            return

        logging_config = config_data["logging"] or {}
        for setting, value in logging_config.items():
            if setting in LoggingSettings.model_fields:
                setattr(self.logging, setting, value)
            else:
                logger.warning(f"Ignoring unknown logging setting: {setting}")

    def _load_yaml_config(self, config_file: Optional[Path] = None) -> None:
        """Load configuration from YAML file if it exists."""
        config_file = config_file or self._find_config_file()
        if not config_file:
            return

        try:
            with config_file.open() as f:
                config_data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            # Don't fail if YAML loading fails, just continue with defaults/env vars
            logger.warning(f"Could not load YAML config from {config_file}: {e}")
            return

        if not config_data:
            return

        self._load_basic_settings(config_data)
        self._load_logging_config(config_data)

    @property
    def database_file(self) -> Path:
        """Path to SQLite database file."""
        return self.data_dir / self.database_name

    @property
    def log_directory(self) -> Path:
        if self.logging.file_directory:
            return Path(self.logging.file_directory)
        return self.data_dir / "logs"


# Global settings management
_settings_instance: Optional[EventSeriesSettings] = None


def get_settings() -> EventSeriesSettings:
    """Get the global settings instance, creating it lazily if needed."""
    if globals()["_settings_instance"] is None:
        globals()["_settings_instance"] = EventSeriesSettings()
    return globals()["_settings_instance"]


def reset_settings() -> None:
    """Reset the global settings instance (primarily for testing)."""
    globals()["_settings_instance"] = None
