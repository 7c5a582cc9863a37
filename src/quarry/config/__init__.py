"""Application configuration helpers."""

from __future__ import annotations

from .env import optional_bool_env_var, optional_int_env_var, require_env_vars
from .errors import (
    ConfigurationError,
    MissingConfigurationError,
    SourceFileError,
    UnknownCategoryError,
)
from .importing import DEFAULT_BATCH_SIZE, ImportConfig, get_import_config
from .logging import configure_logging
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config

__all__ = [
    "DEFAULT_BATCH_SIZE",
    "ConfigurationError",
    "DatabaseConfig",
    "ImportConfig",
    "MissingConfigurationError",
    "SourceFileError",
    "StorageConfig",
    "UnknownCategoryError",
    "configure_logging",
    "get_database_config",
    "get_import_config",
    "get_storage_config",
    "optional_bool_env_var",
    "optional_int_env_var",
    "require_env_vars",
]
