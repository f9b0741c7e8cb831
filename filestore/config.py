"""Configuration settings for the file store."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from common.constants import (
    DEFAULT_API_HOST,
    DEFAULT_API_PORT,
    DEFAULT_CHUNK_SIZE_BYTES,
    DEFAULT_DATABASE_PATH,
)
from filestore.exceptions import ConfigurationError


DATABASE_PATH = os.environ.get("FILESTORE_DATABASE_PATH", DEFAULT_DATABASE_PATH)

CHUNK_SIZE = os.environ.get("FILESTORE_CHUNK_SIZE", str(DEFAULT_CHUNK_SIZE_BYTES))

API_HOST = os.environ.get("FILESTORE_API_HOST", DEFAULT_API_HOST)

API_PORT = int(os.environ.get("FILESTORE_API_PORT", str(DEFAULT_API_PORT)))

MEMORY_DATABASE = ":memory:"


@dataclass(frozen=True)
class StoreSettings:
    database_path: str
    chunk_size: int


def validate_chunk_size(value: Union[int, str]) -> int:
    try:
        chunk_size = int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"Chunk size must be an integer, got {value!r}")
    if chunk_size <= 0:
        raise ConfigurationError(f"Chunk size must be positive, got {chunk_size}")
    return chunk_size


def validate_database_path(value: Optional[Union[str, Path]]) -> str:
    if value is None or not str(value).strip():
        raise ConfigurationError("No database path was supplied")
    path = str(value)
    if path == MEMORY_DATABASE:
        return path
    if Path(path).is_dir():
        raise ConfigurationError(f"Database path {path} is a directory")
    return path


def load_settings(
    database_path: Optional[Union[str, Path]] = None,
    chunk_size: Optional[Union[int, str]] = None,
) -> StoreSettings:
    """
    Resolve store settings from explicit values or the environment.

    Args:
        database_path: SQLite database file, or ':memory:'. Defaults to FILESTORE_DATABASE_PATH
        chunk_size: Chunk size in bytes for new files. Defaults to FILESTORE_CHUNK_SIZE

    Returns:
        Validated StoreSettings

    Raises:
        ConfigurationError: If a value is missing or invalid
    """
    return StoreSettings(
        database_path=validate_database_path(
            database_path if database_path is not None else DATABASE_PATH
        ),
        chunk_size=validate_chunk_size(chunk_size if chunk_size is not None else CHUNK_SIZE),
    )
