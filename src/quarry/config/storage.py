"""Where the destination database lives when no URI is given."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_bool_env_var

APP_DIR_NAME: Final[str] = "quarry"
DEFAULT_DB_FILENAME: Final[str] = "destination.db"

DATA_DIR_ENV: Final[str] = "QUARRY_DATA_DIR"
DATABASE_URI_ENV: Final[str] = "QUARRY_DATABASE_URI"
FALLBACK_DATABASE_URI_ENV: Final[str] = "DATABASE_URI"
SQL_ECHO_ENV: Final[str] = "QUARRY_SQL_ECHO"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Local data directory holding the default SQLite destination."""

    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    def database_path(self) -> Path:
        data_dir = self.data_dir.expanduser().resolve()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir / self.database_filename

    def database_uri(self) -> str:
        return f"sqlite+pysqlite:///{self.database_path()}"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    echo: bool = False


def _platform_data_dir() -> Path:
    if os.name == "nt":
        base = os.getenv("LOCALAPPDATA")
        return Path(base) if base else Path.home() / "AppData" / "Local"
    base = os.getenv("XDG_DATA_HOME")
    return Path(base) if base else Path.home() / ".local" / "share"


def get_storage_config() -> StorageConfig:
    env_dir = os.getenv(DATA_DIR_ENV)
    data_dir = Path(env_dir) if env_dir else _platform_data_dir() / APP_DIR_NAME
    return StorageConfig(data_dir=data_dir)


def get_database_config(
    *, uri: str | None = None, storage: StorageConfig | None = None
) -> DatabaseConfig:
    """Resolve the destination database.

    ``QUARRY_DATABASE_URI`` wins over the generic ``DATABASE_URI``; without
    either the import writes to ``destination.db`` in the data directory.
    An explicit ``uri`` skips the lookup. ``QUARRY_SQL_ECHO`` logs every
    statement the engine sends.
    """

    echo = optional_bool_env_var(SQL_ECHO_ENV) or False
    if uri:
        return DatabaseConfig(uri=uri, echo=echo)
    for name in (DATABASE_URI_ENV, FALLBACK_DATABASE_URI_ENV):
        env_uri = os.getenv(name)
        if env_uri and env_uri.strip():
            return DatabaseConfig(uri=env_uri.strip(), echo=echo)
    storage_config = storage or get_storage_config()
    return DatabaseConfig(uri=storage_config.database_uri(), echo=echo)
