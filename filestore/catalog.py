"""Catalog: main interface for file storage and retrieval."""

from typing import Any, Dict, List, Optional, Tuple, Union

from common.constants import DEFAULT_CHUNK_SIZE_BYTES
from common.logging_config import get_logger
from common.types import FileMetadata
from filestore.config import load_settings, validate_chunk_size
from filestore.database import StoreContext
from filestore.file_handle import FileHandle
from filestore.models import (
    FileDraft,
    FileFilter,
    MetadataUpdate,
    UpsertPolicy,
    validate_model,
)
from filestore.repositories import ChunkRepository, MetadataRepository

logger = get_logger(__name__)


class FileCatalog:
    """
    Lists, saves and updates stored files, handing out FileHandles.
    """

    def __init__(
        self,
        metadata_store,
        chunk_store,
        chunk_size: int = DEFAULT_CHUNK_SIZE_BYTES,
        context: Optional[StoreContext] = None,
    ):
        self.metadata_store = metadata_store
        self.chunk_store = chunk_store
        self.chunk_size = validate_chunk_size(chunk_size)
        self.context = context

    def _handle(self, metadata: FileMetadata) -> FileHandle:
        return FileHandle(metadata, self.metadata_store, self.chunk_store)

    async def list_files(
        self,
        file_filter: Union[FileFilter, Dict[str, Any], None] = None,
    ) -> List[FileHandle]:
        """
        Files matching the filter, ordered by file date.

        Args:
            file_filter: Date range, hierarchy overlap, name substring and id.
                         None or an empty filter matches every file.

        Returns:
            One FileHandle per matching record
        """
        query = validate_model(FileFilter, file_filter)
        records = await self.metadata_store.query_metadata(query)
        logger.info(f"Listed {len(records)} files")
        return [self._handle(record) for record in records]

    async def get_file(self, file_id: str) -> Optional[FileHandle]:
        metadata = await self.metadata_store.get_by_id(file_id)
        return self._handle(metadata) if metadata is not None else None

    async def save_file(
        self,
        draft: Union[FileDraft, Dict[str, Any]],
        deduplicate: bool = True,
    ) -> FileHandle:
        """
        Create the record for a file about to be written.

        With deduplicate (the default) a file whose checksum is already
        stored comes back as the existing record; if that record is
        finished, its write_stream() discards input. Without deduplicate,
        a supplied file_id is the conflict key instead.

        Args:
            draft: File metadata; size and checksum describe the full content
            deduplicate: Reuse an existing record with the same checksum

        Returns:
            FileHandle bound to the new or existing record
        """
        draft = validate_model(FileDraft, draft)
        if draft.file_chunk_size is None:
            draft = draft.model_copy(update={"file_chunk_size": self.chunk_size})

        policy = UpsertPolicy.resolve(deduplicate, draft.file_id)
        metadata = await self.metadata_store.upsert_metadata(draft, policy)
        return self._handle(metadata)

    async def update_file(
        self,
        update: Union[MetadataUpdate, Dict[str, Any]],
    ) -> Optional[FileMetadata]:
        """
        Sparse update of one record.

        Returns:
            The updated record, or None if file_id is not found
        """
        update = validate_model(MetadataUpdate, update)
        return await self.metadata_store.update_fields(update)

    def close(self) -> None:
        if self.context is not None:
            self.context.close()

    async def __aenter__(self) -> "FileCatalog":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


def group_by_hierarchy(handles: List[FileHandle]) -> Dict[Tuple[str, ...], List[FileHandle]]:
    """
    Group handles by their full hierarchy, in order of first appearance.
    """
    groups: Dict[Tuple[str, ...], List[FileHandle]] = {}
    for handle in handles:
        groups.setdefault(handle.metadata.file_hierarchy, []).append(handle)
    return groups


def open_catalog(
    database_path: Optional[str] = None,
    chunk_size: Optional[int] = None,
) -> FileCatalog:
    """
    Open the store and build a catalog over it.

    Args:
        database_path: SQLite file or ':memory:'. Defaults to FILESTORE_DATABASE_PATH
        chunk_size: Chunk size for new files. Defaults to FILESTORE_CHUNK_SIZE

    Raises:
        ConfigurationError: If settings are invalid or the database cannot be opened
    """
    settings = load_settings(database_path, chunk_size)
    context = StoreContext(settings.database_path).open()
    return FileCatalog(
        metadata_store=MetadataRepository(context),
        chunk_store=ChunkRepository(context),
        chunk_size=settings.chunk_size,
        context=context,
    )
