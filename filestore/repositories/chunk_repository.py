"""Chunk repository for database operations."""

import sqlite3
from typing import List, Optional

from common.logging_config import get_logger
from common.types import ChunkRecord
from filestore.database import StoreContext
from filestore.exceptions import StoreError

logger = get_logger(__name__)


class ChunkRepository:
    """
    Stores chunk rows keyed by (file_id, chunk_number).
    """

    def __init__(self, context: StoreContext):
        self.context = context

    async def write_chunk(self, file_id: str, chunk_number: int, checksum: str, data: bytes) -> None:
        """
        Persist one chunk. Rows are never overwritten.

        Rewriting an existing chunk with the same checksum is a no-op, so a
        writer restarted after an interrupted upload can run from chunk 0.

        Raises:
            StoreError: If the insert fails, or the chunk exists with other content
        """
        await self.context.run(self._write_chunk, file_id, chunk_number, checksum, bytes(data))
        logger.debug(f"Wrote chunk {chunk_number} ({len(data)} bytes) [file_id={file_id}]")

    @staticmethod
    def _write_chunk(
        conn: sqlite3.Connection,
        file_id: str,
        chunk_number: int,
        checksum: str,
        data: bytes,
    ) -> None:
        cursor = conn.execute(
            """
            INSERT INTO file_chunks (file_id, chunk_number, chunk_checksum, data)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(file_id, chunk_number) DO NOTHING
            """,
            (file_id, chunk_number, checksum, data)
        )
        if cursor.rowcount > 0:
            return

        row = conn.execute(
            "SELECT chunk_checksum FROM file_chunks WHERE file_id = ? AND chunk_number = ?",
            (file_id, chunk_number)
        ).fetchone()
        if row is None or row["chunk_checksum"] != checksum:
            raise StoreError(
                f"Chunk {chunk_number} of file {file_id} already stored with different content"
            )
        logger.debug(f"Chunk {chunk_number} already stored [file_id={file_id}]")

    async def read_chunk(self, file_id: str, chunk_number: int) -> Optional[bytes]:
        """
        Fetch the bytes of one chunk.

        Returns:
            Chunk data, or None if the chunk does not exist
        """
        chunk = await self.get_chunk(file_id, chunk_number)
        return chunk.data if chunk is not None else None

    async def get_chunk(self, file_id: str, chunk_number: int) -> Optional[ChunkRecord]:
        return await self.context.run(self._get_chunk, file_id, chunk_number)

    @staticmethod
    def _get_chunk(conn: sqlite3.Connection, file_id: str, chunk_number: int) -> Optional[ChunkRecord]:
        row = conn.execute(
            """
            SELECT file_id, chunk_number, chunk_checksum, data
            FROM file_chunks
            WHERE file_id = ? AND chunk_number = ?
            """,
            (file_id, chunk_number)
        ).fetchone()

        if row is None:
            return None

        return ChunkRecord(
            file_id=row["file_id"],
            chunk_number=row["chunk_number"],
            chunk_checksum=row["chunk_checksum"],
            data=bytes(row["data"]),
        )

    async def list_chunk_numbers(self, file_id: str) -> List[int]:
        return await self.context.run(self._list_chunk_numbers, file_id)

    @staticmethod
    def _list_chunk_numbers(conn: sqlite3.Connection, file_id: str) -> List[int]:
        rows = conn.execute(
            "SELECT chunk_number FROM file_chunks WHERE file_id = ? ORDER BY chunk_number",
            (file_id,)
        ).fetchall()
        return [row["chunk_number"] for row in rows]
