"""Shared data type definitions (FileMetadata, ChunkRecord, FileStatus)."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from common.constants import STATUS_FINISHED, STATUS_NEW


class FileStatus(str, Enum):
    """Completion marker of a stored file."""
    NEW = STATUS_NEW
    FINISHED = STATUS_FINISHED


def chunk_count_for(file_size: int, chunk_size: int) -> int:
    """
    Number of chunks a file of file_size bytes is split into.

    Args:
        file_size: Total byte length of the file
        chunk_size: Fixed chunk size the file was written with

    Returns:
        ceil(file_size / chunk_size), 0 for an empty file
    """
    if file_size <= 0:
        return 0
    return math.ceil(file_size / chunk_size)


@dataclass(frozen=True)
class FileMetadata:
    """
    Complete metadata for a stored file.
    """
    file_id: str
    file_date: datetime
    record_date: datetime
    file_size: int
    file_chunk_size: int
    status: FileStatus
    original_name: Optional[str] = None
    generated_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_extension: Optional[str] = None
    file_source: Optional[str] = None
    file_checksum: Optional[str] = None
    file_hierarchy: Tuple[str, ...] = ()
    attributes: Dict[str, Any] = field(default_factory=dict)

    @property
    def chunk_count(self) -> int:
        return chunk_count_for(self.file_size, self.file_chunk_size)

    @property
    def is_finished(self) -> bool:
        return self.status == FileStatus.FINISHED


@dataclass(frozen=True)
class ChunkRecord:
    """
    A single persisted chunk of a file.
    """
    file_id: str
    chunk_number: int
    chunk_checksum: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)
