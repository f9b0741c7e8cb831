"""Command handler functions for CLI operations."""

import mimetypes
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from common.checksum import IncrementalChecksumCalculator, checksum_of_pieces
from common.logging_config import get_logger
from cli.config import Config
from cli.models import DownloadCommand, ListCommand, UploadCommand
from cli.utils import (
    display_progress,
    ensure_folder_exists,
    finish_progress,
    format_file_size,
    iter_file_pieces,
)
from filestore.catalog import FileCatalog, group_by_hierarchy, open_catalog
from filestore.exceptions import IntegrityMismatchError
from filestore.file_handle import FileHandle

logger = get_logger(__name__)


_catalog: Optional[FileCatalog] = None
_database_override: Optional[str] = None


def set_database_path(path: Optional[str]) -> None:
    """
    Point later commands at another database, closing any open catalog.
    """
    global _catalog, _database_override
    _database_override = path
    if _catalog is not None:
        _catalog.close()
        _catalog = None


def get_catalog() -> FileCatalog:
    """
    Get or create global FileCatalog instance.

    Returns:
        FileCatalog instance
    """
    global _catalog
    if _catalog is None:
        config = Config()
        database_path = _database_override or config.get_database_path()
        logger.debug(f"Opening file catalog at {database_path}")
        _catalog = open_catalog(database_path, config.get_chunk_size())
    return _catalog


def close_catalog() -> None:
    global _catalog
    if _catalog is not None:
        _catalog.close()
        _catalog = None


def _display_name(handle: FileHandle) -> str:
    metadata = handle.metadata
    return metadata.generated_name or metadata.original_name or metadata.file_id


async def handle_list(cmd: ListCommand, catalog: Optional[FileCatalog] = None) -> str:
    """
    Handle 'list' command.

    Args:
        cmd: ListCommand with filters
        catalog: Optional FileCatalog for dependency injection (testing)

    Returns:
        Files grouped by hierarchy with count and total size
    """
    logger.info(f"Executing list command: filters={cmd.filters}")
    if catalog is None:
        catalog = get_catalog()

    handles = await catalog.list_files(cmd.filters.to_filter())
    if not handles:
        return "No files found"

    lines = []
    for hierarchy, group in group_by_hierarchy(handles).items():
        lines.append(f"/{'/'.join(hierarchy)}")
        for handle in group:
            metadata = handle.metadata
            lines.append(
                f"  {_display_name(handle)}  {format_file_size(metadata.file_size)}  "
                f"{metadata.file_date:%Y-%m-%d %H:%M:%S}  [{metadata.status.value}]"
            )

    total_size = sum(handle.metadata.file_size for handle in handles)
    lines.append(f"{len(handles)} file(s), {format_file_size(total_size)}")
    logger.debug("List command completed")
    return "\n".join(lines)


def _local_file_name(handle: FileHandle) -> str:
    """Stored names may hold separators; only the last component is used locally."""
    name = Path(_display_name(handle).replace("\\", "/")).name
    if name in ("", ".", ".."):
        return handle.file_id
    return name


async def _download_one(handle: FileHandle, folder: Path) -> Path:
    target = folder / _local_file_name(handle)
    calculator = IncrementalChecksumCalculator()

    with open(target, 'wb') as f:
        async for piece in handle.read_stream():
            calculator.update(piece)
            f.write(piece)

    expected = handle.metadata.file_checksum
    actual = calculator.finalize()
    if expected is not None and actual != expected:
        logger.error(f"Downloaded content does not match its checksum [file_id={handle.file_id}]")
        raise IntegrityMismatchError(handle.file_id, expected, actual)
    return target


async def handle_download(cmd: DownloadCommand, catalog: Optional[FileCatalog] = None) -> str:
    """
    Handle 'download' command.

    Each matching file is written to dest_dir/<hierarchy>/<name>, or straight
    into dest_dir with flat.

    Args:
        cmd: DownloadCommand with destination, filters and flat flag
        catalog: Optional FileCatalog for dependency injection (testing)

    Returns:
        Summary of downloaded files

    Raises:
        MissingChunkError: If a stored file lacks a chunk
        IntegrityMismatchError: If downloaded content fails its checksum
    """
    logger.info(f"Executing download command: dest_dir={cmd.dest_dir} filters={cmd.filters}")
    if catalog is None:
        catalog = get_catalog()

    handles = await catalog.list_files(cmd.filters.to_filter())
    if not handles:
        return "No files found"

    total = len(handles)
    downloaded_bytes = 0
    for index, handle in enumerate(handles, start=1):
        hierarchy = () if cmd.flat else handle.metadata.file_hierarchy
        folder = ensure_folder_exists(cmd.dest_dir, hierarchy)
        display_progress("Downloading", index, total)
        await _download_one(handle, folder)
        downloaded_bytes += handle.metadata.file_size
    finish_progress()

    logger.debug("Download command completed")
    return f"Downloaded {total} file(s), {format_file_size(downloaded_bytes)} to {cmd.dest_dir}"


async def handle_upload(cmd: UploadCommand, catalog: Optional[FileCatalog] = None) -> str:
    """
    Handle 'upload' command.

    Args:
        cmd: UploadCommand with local path and metadata options
        catalog: Optional FileCatalog for dependency injection (testing)

    Returns:
        Success message naming the stored file id

    Raises:
        IntegrityMismatchError: If the file changed between hashing and writing
    """
    logger.info(f"Executing upload command: path={cmd.path} hierarchy={list(cmd.hierarchy)}")
    if catalog is None:
        catalog = get_catalog()

    path = Path(cmd.path)
    if not path.is_file():
        return f"Error: {cmd.path} is not a file"

    checksum, size = checksum_of_pieces(iter_file_pieces(str(path)))
    file_date = cmd.file_date or datetime.fromtimestamp(os.path.getmtime(path), tz=timezone.utc)
    mime_type, _ = mimetypes.guess_type(path.name)

    handle = await catalog.save_file(
        {
            "file_id": cmd.file_id,
            "file_date": file_date,
            "original_name": path.name,
            "generated_name": cmd.name or path.name,
            "mime_type": mime_type,
            "file_extension": path.suffix.lstrip(".") or None,
            "file_source": "cli",
            "file_hierarchy": list(cmd.hierarchy),
            "file_size": size,
            "file_checksum": checksum,
        },
        deduplicate=cmd.deduplicate,
    )

    if handle.is_finished:
        logger.info(f"Content already stored, skipping write [file_id={handle.file_id}]")
        return f"Already stored as {handle.file_id}"

    writer = handle.write_stream()
    calculator = IncrementalChecksumCalculator()
    for piece in iter_file_pieces(str(path)):
        calculator.update(piece)
        await writer.submit(piece)

    # the record stays unfinished if the file changed since it was hashed
    written = calculator.finalize()
    if calculator.bytes_seen != size or written != checksum:
        logger.error(f"{path} changed during upload [file_id={handle.file_id}]")
        raise IntegrityMismatchError(handle.file_id, checksum, written)
    await writer.finish()

    logger.debug("Upload command completed")
    return (
        f"Stored {path.name} as {handle.file_id} "
        f"({format_file_size(writer.bytes_received)}, {writer.chunks_written} chunk(s))"
    )
