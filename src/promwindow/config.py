"""
Environment configuration.

Environment variables:
- PROMWINDOW_METRIC_MAX_AGE: default max age in seconds for new collector
  types; "none" disables eviction (default 60)
- PROMWINDOW_DEFAULT_FREQUENCY: default seconds between threaded processor
  runs (default 30)
- PROMWINDOW_LOG_LEVEL: log level name used by the CLI (default INFO)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_METRIC_MAX_AGE = 60.0
DEFAULT_FREQUENCY = 30.0

_NULL_VALUES = {"", "none", "null", "off"}


class Settings(BaseModel):
    """Process-wide defaults for collectors and processors."""

    metric_max_age: float | None = Field(default=DEFAULT_METRIC_MAX_AGE, ge=0)
    default_frequency: float = Field(default=DEFAULT_FREQUENCY, gt=0)
    log_level: str = "INFO"

    model_config = ConfigDict(frozen=True)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Log level must be a standard logging level name."""
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level '{v}'")
        return level

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        """Load settings from environment variables, falling back to defaults."""
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}

        max_age = env.get("PROMWINDOW_METRIC_MAX_AGE")
        if max_age is not None:
            values["metric_max_age"] = None if max_age.strip().lower() in _NULL_VALUES else max_age

        frequency = env.get("PROMWINDOW_DEFAULT_FREQUENCY")
        if frequency:
            values["default_frequency"] = frequency

        log_level = env.get("PROMWINDOW_LOG_LEVEL")
        if log_level:
            values["log_level"] = log_level

        return cls.model_validate(values)


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the cached settings, loading them from the environment on first use."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def reset_settings() -> None:
    """Forget cached settings so the next get_settings() re-reads the environment."""
    global _settings
    _settings = None
