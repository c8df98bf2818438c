"""Application configuration helpers."""

from __future__ import annotations

from .directory import BindCredentials, DirectoryConfig, get_directory_config
from .env import env_flag, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .logging import configure_logging
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "BindCredentials",
    "ConfigurationError",
    "DatabaseConfig",
    "DirectoryConfig",
    "MissingConfigurationError",
    "StorageConfig",
    "configure_logging",
    "env_flag",
    "get_database_config",
    "get_directory_config",
    "get_storage_config",
    "require_env_vars",
]
