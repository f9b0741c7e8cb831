"""Pydantic schemas for file operation endpoints."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from common.types import FileMetadata, FileStatus


class FileMetadataResponse(BaseModel):
    """Response model for file metadata."""
    file_id: str
    file_date: str
    record_date: str
    original_name: Optional[str] = None
    generated_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_extension: Optional[str] = None
    file_source: Optional[str] = None
    file_hierarchy: List[str]
    file_size: int
    file_checksum: Optional[str] = None
    file_chunk_size: int
    chunk_count: int
    attributes: Dict[str, Any]
    status: FileStatus

    @classmethod
    def from_metadata(cls, metadata: FileMetadata) -> "FileMetadataResponse":
        return cls(
            file_id=metadata.file_id,
            file_date=metadata.file_date.isoformat(),
            record_date=metadata.record_date.isoformat(),
            original_name=metadata.original_name,
            generated_name=metadata.generated_name,
            mime_type=metadata.mime_type,
            file_extension=metadata.file_extension,
            file_source=metadata.file_source,
            file_hierarchy=list(metadata.file_hierarchy),
            file_size=metadata.file_size,
            file_checksum=metadata.file_checksum,
            file_chunk_size=metadata.file_chunk_size,
            chunk_count=metadata.chunk_count,
            attributes=metadata.attributes,
            status=metadata.status,
        )


class ListFilesResponse(BaseModel):
    """Response model for file listing."""
    files: List[FileMetadataResponse]
    total_count: int
    total_size: int


class AddFileResponse(BaseModel):
    """Response model for file upload."""
    file: FileMetadataResponse
    deduplicated: bool
    chunks_written: int
    bytes_received: int


class UpdateFileRequest(BaseModel):
    """Request model for a sparse metadata update; omitted fields are kept."""
    file_date: Optional[datetime] = None
    original_name: Optional[str] = None
    generated_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_extension: Optional[str] = None
    file_source: Optional[str] = None
    file_hierarchy: Optional[List[str]] = None
    attributes: Optional[Dict[str, Any]] = Field(default=None)
