"""
Configuration module for Skald.

Uses pydantic-settings for environment variable and YAML loading.
"""

from skald.config.settings import Settings
from skald.config.sources import ConfigFileError
from skald.config.types import CacheConfig, FastPathConfig, LoggingConfig, ModelsConfig

__all__ = [
    "CacheConfig",
    "ConfigFileError",
    "FastPathConfig",
    "LoggingConfig",
    "ModelsConfig",
    "Settings",
]
