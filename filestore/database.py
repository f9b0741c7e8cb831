"""Database schema and shared connection management for SQLite."""

import asyncio
import functools
import sqlite3
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Generator, Optional, TypeVar

from common.constants import FILE_DATE_FORMAT, RECORD_DATE_FORMAT
from common.logging_config import get_logger
from filestore.config import MEMORY_DATABASE, validate_database_path
from filestore.exceptions import ConfigurationError, StoreError

logger = get_logger(__name__)

T = TypeVar("T")


def init_schema(conn: sqlite3.Connection) -> None:
    """
    Create tables and indexes if they don't exist.
    """
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS files (
            file_id TEXT PRIMARY KEY,
            file_date TEXT NOT NULL,
            record_date TEXT NOT NULL,
            original_name TEXT,
            generated_name TEXT,
            mime_type TEXT,
            file_extension TEXT,
            file_source TEXT,
            file_hierarchy TEXT NOT NULL DEFAULT '[]',
            file_size INTEGER NOT NULL,
            file_checksum TEXT,
            chunk_size INTEGER NOT NULL,
            attributes TEXT NOT NULL DEFAULT '{}',
            status TEXT NOT NULL
        )
    """)

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS file_chunks (
            file_id TEXT NOT NULL,
            chunk_number INTEGER NOT NULL,
            chunk_checksum TEXT NOT NULL,
            data BLOB NOT NULL,
            PRIMARY KEY(file_id, chunk_number),
            FOREIGN KEY(file_id) REFERENCES files(file_id) ON DELETE CASCADE
        )
    """)

    cursor.execute("""
        CREATE INDEX IF NOT EXISTS idx_files_checksum ON files(file_checksum)
    """)

    cursor.execute("""
        CREATE INDEX IF NOT EXISTS idx_files_file_date ON files(file_date)
    """)


@contextmanager
def transaction(conn: sqlite3.Connection, immediate: bool = False) -> Generator[sqlite3.Cursor, None, None]:
    """
    Run statements in one transaction on an autocommit connection.

    Args:
        conn: Connection opened with isolation_level=None
        immediate: Take the write lock up front (BEGIN IMMEDIATE)
    """
    cursor = conn.cursor()
    cursor.execute("BEGIN IMMEDIATE" if immediate else "BEGIN")
    try:
        yield cursor
    except BaseException:
        cursor.execute("ROLLBACK")
        raise
    else:
        cursor.execute("COMMIT")


def row_to_dict(row: Optional[sqlite3.Row]) -> Optional[dict]:
    if row is None:
        return None
    return {key: row[key] for key in row.keys()}


def to_utc(value: datetime) -> datetime:
    """Naive datetimes are taken as UTC; aware ones are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_file_date(value: datetime) -> str:
    return to_utc(value).strftime(FILE_DATE_FORMAT)


def format_record_date(value: datetime) -> str:
    return to_utc(value).strftime(RECORD_DATE_FORMAT)


def parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value).replace(tzinfo=timezone.utc)


class StoreContext:
    """
    Process-wide handle on the SQLite store.

    Owns one connection and a single-worker executor. Every statement runs on
    that worker, so coroutines awaiting store calls never block the event loop
    and statements on the shared connection never interleave.
    """

    def __init__(self, database_path: str):
        self.database_path = validate_database_path(database_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._executor: Optional[ThreadPoolExecutor] = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    def open(self) -> "StoreContext":
        """
        Open the connection and create the schema.

        Raises:
            ConfigurationError: If the database cannot be opened
        """
        if self._conn is not None:
            return self

        if self.database_path != MEMORY_DATABASE:
            try:
                Path(self.database_path).parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise ConfigurationError(
                    f"Cannot create database directory for {self.database_path}: {e}"
                ) from e

        try:
            conn = sqlite3.connect(
                self.database_path,
                check_same_thread=False,
                isolation_level=None,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            init_schema(conn)
        except sqlite3.Error as e:
            raise ConfigurationError(f"Cannot open database {self.database_path}: {e}") from e

        self._conn = conn
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="filestore-db")
        logger.info(f"Store opened [database={self.database_path}]")
        return self

    def close(self) -> None:
        """
        Release the connection. Safe to call more than once.
        """
        if self._conn is None:
            return

        executor, conn = self._executor, self._conn
        self._executor = None
        self._conn = None

        executor.shutdown(wait=True)
        conn.close()
        logger.info(f"Store closed [database={self.database_path}]")

    async def run(self, operation: Callable[..., T], *args: Any) -> T:
        """
        Run operation(conn, *args) on the store worker.

        Raises:
            StoreError: If the store is closed or the statement fails
        """
        if self._conn is None:
            raise StoreError(f"Store {self.database_path} is not open")

        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                self._executor,
                functools.partial(operation, self._conn, *args),
            )
        except sqlite3.Error as e:
            raise StoreError(str(e)) from e

    def __enter__(self) -> "StoreContext":
        return self.open()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
