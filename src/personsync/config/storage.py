"""Where personsync keeps its SQLite database and HTTP cache."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

APP_DIR_NAME: Final[str] = "personsync"
DEFAULT_DB_FILENAME: Final[str] = "personsync.db"
HTTP_CACHE_FILENAME: Final[str] = "http_cache.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Local data directory; created on first use of one of its paths."""

    data_dir: Path

    def resolve_data_dir(self) -> Path:
        return self.data_dir.expanduser().resolve()

    def path_for(self, filename: str) -> Path:
        directory = self.resolve_data_dir()
        directory.mkdir(parents=True, exist_ok=True)
        return directory / filename

    @property
    def database_path(self) -> Path:
        return self.path_for(DEFAULT_DB_FILENAME)

    @property
    def http_cache_path(self) -> Path:
        return self.path_for(HTTP_CACHE_FILENAME)


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def default_data_dir() -> Path:
    xdg_data_home = os.getenv("XDG_DATA_HOME")
    base = Path(xdg_data_home) if xdg_data_home else Path.home() / ".local" / "share"
    return base / APP_DIR_NAME


def get_storage_config() -> StorageConfig:
    override = os.getenv("PERSONSYNC_DATA_DIR")
    return StorageConfig(data_dir=Path(override) if override else default_data_dir())


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """``DATABASE_URI`` wins; otherwise a SQLite file in the data directory."""

    uri = (os.getenv("DATABASE_URI") or "").strip()
    if uri:
        return DatabaseConfig(uri=uri)
    database_path = (storage or get_storage_config()).database_path
    return DatabaseConfig(uri=f"sqlite+pysqlite:///{database_path}")


def get_http_cache_path(*, storage: StorageConfig | None = None) -> Path:
    return (storage or get_storage_config()).http_cache_path
