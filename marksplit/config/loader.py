"""Configuration loading utilities."""

from __future__ import annotations

import json
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from marksplit.config.schema import Config
from marksplit.errors import ConfigError


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".marksplit" / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file or create default.

    Environment variables (``MARKSPLIT_DISCORD__TOKEN`` and friends) override
    values that are absent from the file.

    Raises:
        ConfigError: if the file exists but is not valid JSON or fails validation.
    """
    path = config_path or get_config_path()

    if not path.exists():
        logger.debug(f"No config file at {path}, using defaults")
        return Config()

    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return Config(**data)
    except (json.JSONDecodeError, OSError) as e:
        raise ConfigError(f"Failed to read config from {path}: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"Invalid config in {path}: {e}") from e
