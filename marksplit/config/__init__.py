"""Configuration module for marksplit."""

from marksplit.config.loader import get_config_path, load_config
from marksplit.config.schema import Config

__all__ = ["Config", "load_config", "get_config_path"]
