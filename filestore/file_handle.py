"""File handle: one metadata record plus its streaming adapters."""

from typing import Union

from common.types import FileMetadata
from filestore.streaming import ChunkReader, ChunkWriter, DiscardWriter


class FileHandle:
    """
    Reference to a stored file.

    Holds a snapshot of the record taken when the handle was created; the
    database stays the authority on status and chunks.
    """

    def __init__(self, metadata: FileMetadata, metadata_store, chunk_store):
        self._metadata = metadata
        self.metadata_store = metadata_store
        self.chunk_store = chunk_store

    @property
    def metadata(self) -> FileMetadata:
        return self._metadata

    @property
    def file_id(self) -> str:
        return self._metadata.file_id

    @property
    def chunk_count(self) -> int:
        return self._metadata.chunk_count

    @property
    def is_finished(self) -> bool:
        return self._metadata.is_finished

    def write_stream(self) -> Union[ChunkWriter, DiscardWriter]:
        """
        Writer for this file's content.

        A file already finished (typically reused through deduplication)
        gets a DiscardWriter so known content is never stored twice.
        """
        if self.is_finished:
            return DiscardWriter(self.file_id)
        return ChunkWriter(
            file_id=self.file_id,
            chunk_size=self._metadata.file_chunk_size,
            chunk_store=self.chunk_store,
            metadata_store=self.metadata_store,
        )

    def read_stream(self) -> ChunkReader:
        """
        New reader over chunk_count chunks, whatever the file's status.
        """
        return ChunkReader(self.file_id, self.chunk_count, self.chunk_store)

    async def read_all(self) -> bytes:
        """
        Collect every chunk into one buffer.
        """
        pieces = [piece async for piece in self.read_stream()]
        return b"".join(pieces)

    def __repr__(self) -> str:
        return (
            f"FileHandle(file_id={self.file_id!r}, status={self._metadata.status.value!r}, "
            f"size={self._metadata.file_size})"
        )
