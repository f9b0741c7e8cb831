"""Chunked streaming: split a byte stream into stored chunks and read it back."""

from typing import AsyncIterable, Callable, Iterable, Optional, Union

from common.checksum import compute_checksum
from common.logging_config import get_logger
from filestore.exceptions import ConfigurationError, MissingChunkError, StreamClosedError

logger = get_logger(__name__)

ByteSource = Union[Iterable[bytes], AsyncIterable[bytes]]


async def _drive(writer, source: ByteSource) -> None:
    if hasattr(source, "__aiter__"):
        async for buffer in source:
            await writer.submit(buffer)
    else:
        for buffer in source:
            await writer.submit(buffer)
    await writer.finish()


class ChunkWriter:
    """
    Splits inbound buffers of any size into fixed-size chunks and persists them.

    Bytes that do not fill a whole chunk are carried in a remainder buffer
    until more input arrives or finish() writes them as the last chunk.
    Chunk numbers start at 0 and increase by one per persisted chunk. Each
    chunk write completes before the next one is issued.

    A writer is owned by a single caller. After finish() or after any store
    failure it refuses further input.
    """

    def __init__(
        self,
        file_id: str,
        chunk_size: int,
        chunk_store,
        metadata_store,
        checksum: Callable[[bytes], str] = compute_checksum,
    ):
        if chunk_size <= 0:
            raise ConfigurationError(f"Chunk size must be positive, got {chunk_size}")

        self.file_id = file_id
        self.chunk_size = chunk_size
        self.chunk_store = chunk_store
        self.metadata_store = metadata_store
        self.checksum = checksum

        self.next_chunk_number = 0
        self.bytes_received = 0
        self._remainder = b""
        self._finished = False
        self._failed = False

    @property
    def remainder(self) -> bytes:
        return self._remainder

    @property
    def chunks_written(self) -> int:
        return self.next_chunk_number

    @property
    def closed(self) -> bool:
        return self._finished or self._failed

    def _ensure_open(self) -> None:
        if self._failed:
            raise StreamClosedError(f"Writer for file {self.file_id} failed and cannot be reused")
        if self._finished:
            raise StreamClosedError(f"Writer for file {self.file_id} is already finished")

    async def _persist(self, piece: bytes) -> None:
        chunk_number = self.next_chunk_number
        try:
            await self.chunk_store.write_chunk(
                self.file_id,
                chunk_number,
                self.checksum(piece),
                piece,
            )
        except Exception as e:
            self._failed = True
            logger.error(f"Failed to persist chunk {chunk_number} [file_id={self.file_id}]: {e}")
            raise
        self.next_chunk_number += 1

    async def submit(self, buffer: bytes) -> None:
        """
        Accept the next buffer from the producer.

        Every full chunk that the remainder plus buffer yields is persisted
        before this returns; the tail becomes the new remainder.

        Raises:
            StreamClosedError: If the writer finished or failed earlier
            StoreError: If a chunk write fails
        """
        self._ensure_open()

        self.bytes_received += len(buffer)
        current = self._remainder + bytes(buffer)

        if len(current) < self.chunk_size:
            self._remainder = current
            return

        # exact multiples leave an empty tail, never an empty chunk
        full_chunks = len(current) // self.chunk_size
        for index in range(full_chunks):
            start = index * self.chunk_size
            await self._persist(current[start:start + self.chunk_size])

        self._remainder = current[full_chunks * self.chunk_size:]

    async def finish(self) -> None:
        """
        Persist the remainder as the last chunk, if any, and mark the file finished.

        Raises:
            StreamClosedError: If the writer finished or failed earlier
            StoreError: If the chunk write or the status update fails
        """
        self._ensure_open()

        if self._remainder:
            await self._persist(self._remainder)
            self._remainder = b""

        try:
            await self.metadata_store.update_status(self.file_id)
        except Exception as e:
            self._failed = True
            logger.error(f"Failed to finalize file [file_id={self.file_id}]: {e}")
            raise

        self._finished = True
        logger.info(
            f"Finished writing file [file_id={self.file_id}] "
            f"chunks={self.next_chunk_number} bytes={self.bytes_received}"
        )

    async def consume(self, source: ByteSource) -> None:
        """
        Submit every buffer from a sync or async iterable, then finish().
        """
        await _drive(self, source)


class DiscardWriter:
    """
    Sink for files that are already finished: accepts input, stores nothing.
    """

    def __init__(self, file_id: str):
        self.file_id = file_id
        self.bytes_received = 0
        self.chunks_written = 0
        self.closed = False

    async def submit(self, buffer: bytes) -> None:
        self.bytes_received += len(buffer)

    async def finish(self) -> None:
        self.closed = True
        logger.debug(
            f"Discarded {self.bytes_received} bytes for finished file [file_id={self.file_id}]"
        )

    async def consume(self, source: ByteSource) -> None:
        await _drive(self, source)


class ChunkReader:
    """
    Forward-only async sequence of a file's chunks, fetched on demand.

    Chunk i is requested from the store only when the consumer asks for the
    next item. A chunk missing below chunk_count raises MissingChunkError and
    ends the sequence. Readers are not restartable.
    """

    def __init__(self, file_id: str, chunk_count: int, chunk_store):
        self.file_id = file_id
        self.chunk_count = chunk_count
        self.chunk_store = chunk_store
        self._index = 0
        self._done = False

    @property
    def chunks_read(self) -> int:
        return self._index

    async def read_chunk(self) -> Optional[bytes]:
        """
        Fetch the next chunk.

        Returns:
            Chunk bytes, or None once every chunk has been delivered

        Raises:
            MissingChunkError: If the store has no row for the next chunk
            StoreError: If the fetch fails
        """
        if self._done:
            return None

        chunk_number = self._index
        if chunk_number >= self.chunk_count:
            self._done = True
            return None

        self._index += 1
        try:
            data = await self.chunk_store.read_chunk(self.file_id, chunk_number)
        except Exception:
            self._done = True
            raise

        if data is None:
            self._done = True
            logger.error(
                f"Chunk {chunk_number} of {self.chunk_count} missing [file_id={self.file_id}]"
            )
            raise MissingChunkError(self.file_id, chunk_number)

        return data

    def __aiter__(self) -> "ChunkReader":
        return self

    async def __anext__(self) -> bytes:
        data = await self.read_chunk()
        if data is None:
            raise StopAsyncIteration
        return data
