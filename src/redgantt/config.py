"""Configuration file (redgantt_config.yaml) schema and loading.

Example:

    redmine:
      base_url: https://redmine.example.com
      project_id: 12
      page_size: 100
    scheduler:
      cycle_check: directed
      default_link_kind: FS
      default_lag_days: 0

The API key is never read from this file; see ``RedmineClient``.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from . import context
from .scheduler import SchedulingConfig

CONFIG_FILENAME = "redgantt_config.yaml"


class RedmineConfig(BaseModel):
    """Redmine connection settings."""

    base_url: str = Field(..., description="Redmine base URL")
    project_id: int | str | None = Field(
        default=None, description="Default project id or identifier for pull/push"
    )
    page_size: int = Field(default=100, ge=1, le=100, description="Issues per request")
    timeout_seconds: float = Field(default=30.0, gt=0)
    verify_ssl: bool = True

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Strip the trailing slash so paths can be appended directly."""
        return v.rstrip("/")


class RedganttConfig(BaseModel):
    """Top-level configuration."""

    redmine: RedmineConfig | None = None
    scheduler: SchedulingConfig = Field(default_factory=SchedulingConfig)


def load_config(config_path: Path | str) -> RedganttConfig:
    """Load configuration from a YAML file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is empty or invalid
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with config_path.open(encoding="utf-8") as f:
        try:
            data: Any = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Failed to parse config file {config_path}: {e}") from e

    if not data:
        raise ValueError("Empty configuration file")
    if not isinstance(data, dict):
        raise ValueError("Config file must contain a mapping at the root level")

    try:
        return RedganttConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ValueError(f"Invalid configuration in {config_path}: {e}") from e


def discover_config(config_path: Path | None = None) -> RedganttConfig:
    """Find and load the configuration, or return defaults.

    Search order:
    1. Explicit ``config_path`` argument
    2. Path given with the CLI ``--config`` option
    3. ./redgantt_config.yaml
    """
    if config_path is not None:
        return load_config(config_path)

    ctx_config = context.get_config_path()
    if ctx_config is not None:
        return load_config(ctx_config)

    cwd_config = Path(CONFIG_FILENAME)
    if cwd_config.exists():
        return load_config(cwd_config)

    return RedganttConfig()
