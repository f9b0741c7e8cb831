"""Pydantic schemas for API requests and responses."""

from api.schemas.files import (
    AddFileResponse,
    FileMetadataResponse,
    ListFilesResponse,
    UpdateFileRequest,
)
from api.schemas.common import ErrorResponse

__all__ = [
    "AddFileResponse",
    "FileMetadataResponse",
    "ListFilesResponse",
    "UpdateFileRequest",
    "ErrorResponse",
]
