"""Where the course database lives and how to connect to it."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import optional_env_var

APP_DIR_NAME: Final[str] = "coursesync"
DEFAULT_DB_FILENAME: Final[str] = "coursesync.db"
_TRUE_VALUES: Final[frozenset[str]] = frozenset({"1", "true", "yes", "on"})


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Local data directory holding the default SQLite database."""

    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    def database_path(self, *, ensure: bool = True) -> Path:
        data_dir = self.data_dir.expanduser().resolve()
        if ensure:
            data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir / self.database_filename


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    echo: bool = False

    @property
    def is_sqlite(self) -> bool:
        return self.uri.startswith("sqlite")


def _default_data_dir() -> Path:
    xdg_data_home = optional_env_var("XDG_DATA_HOME")
    base = Path(xdg_data_home) if xdg_data_home else Path.home() / ".local" / "share"
    return base / APP_DIR_NAME


def get_storage_config() -> StorageConfig:
    data_dir = optional_env_var("COURSESYNC_DATA_DIR")
    return StorageConfig(data_dir=Path(data_dir) if data_dir else _default_data_dir())


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """Use ``DATABASE_URI`` when set, else a SQLite file in the data directory."""

    echo = (os.getenv("COURSESYNC_SQL_ECHO") or "").strip().lower() in _TRUE_VALUES
    uri = optional_env_var("DATABASE_URI")
    if uri is None:
        storage_config = storage or get_storage_config()
        uri = f"sqlite+pysqlite:///{storage_config.database_path()}"
    return DatabaseConfig(uri=uri, echo=echo)


def get_database_uri() -> str:
    return get_database_config().uri
