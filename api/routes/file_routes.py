"""File operation API routes."""

import json
from datetime import datetime
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.responses import StreamingResponse

from api.schemas.common import ErrorResponse
from api.schemas.files import (
    AddFileResponse,
    FileMetadataResponse,
    ListFilesResponse,
    UpdateFileRequest,
)
from common.checksum import IncrementalChecksumCalculator
from common.logging_config import get_logger
from filestore.catalog import FileCatalog
from filestore.exceptions import (
    ConfigurationError,
    FileRecordNotFoundError,
    IntegrityMismatchError,
    InvalidMetadataError,
)
from filestore.file_handle import FileHandle
from filestore.models import FileFilter

logger = get_logger(__name__)

router = APIRouter(
    prefix="/files",
    tags=["Files"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)

UPLOAD_READ_SIZE = 64 * 1024


def get_catalog(request: Request) -> FileCatalog:
    catalog = getattr(request.app.state, "catalog", None)
    if catalog is None:
        raise ConfigurationError("File catalog is not initialized")
    return catalog


async def _read_upload(upload: UploadFile) -> AsyncIterator[bytes]:
    while True:
        piece = await upload.read(UPLOAD_READ_SIZE)
        if not piece:
            break
        yield piece


@router.get("", response_model=ListFilesResponse)
async def list_files(
    start_date: Optional[datetime] = Query(None, description="Earliest file date (inclusive)"),
    end_date: Optional[datetime] = Query(None, description="Latest file date (inclusive)"),
    hierarchy: Optional[str] = Query(None, description="Comma-separated hierarchy segments, any may match"),
    name: Optional[str] = Query(None, description="Substring of the generated name"),
    file_id: Optional[str] = Query(None),
    catalog: FileCatalog = Depends(get_catalog),
):
    """
    List files matching every supplied filter, ordered by file date.

    Returns:
        - files: File metadata
        - total_count / total_size: Aggregates over the listed files
    """
    handles = await catalog.list_files(FileFilter(
        start_date=start_date,
        end_date=end_date,
        file_hierarchy=hierarchy,
        file_name=name,
        file_id=file_id,
    ))

    return ListFilesResponse(
        files=[FileMetadataResponse.from_metadata(handle.metadata) for handle in handles],
        total_count=len(handles),
        total_size=sum(handle.metadata.file_size for handle in handles),
    )


@router.post("", response_model=AddFileResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    file_date: datetime = Form(...),
    hierarchy: str = Form(""),
    generated_name: Optional[str] = Form(None),
    mime_type: Optional[str] = Form(None),
    file_source: Optional[str] = Form(None),
    file_id: Optional[str] = Form(None),
    attributes: Optional[str] = Form(None, description="JSON object"),
    deduplicate: bool = Form(True),
    catalog: FileCatalog = Depends(get_catalog),
):
    """
    Store an uploaded file.

    Size and checksum are computed from the upload. With deduplicate (the
    default) content that is already stored is not written again and the
    existing record is returned.

    Raises:
        - 400: Invalid metadata
        - 503: Store unavailable
    """
    try:
        attribute_bag = json.loads(attributes) if attributes else {}
    except json.JSONDecodeError as e:
        raise InvalidMetadataError(f"attributes must be a JSON object: {e}") from e

    calculator = IncrementalChecksumCalculator()
    async for piece in _read_upload(file):
        calculator.update(piece)
    await file.seek(0)

    original_name = file.filename
    extension = original_name.rsplit(".", 1)[-1] if original_name and "." in original_name else None

    handle = await catalog.save_file(
        {
            "file_id": file_id,
            "file_date": file_date,
            "original_name": original_name,
            "generated_name": generated_name or original_name,
            "mime_type": mime_type or file.content_type,
            "file_extension": extension,
            "file_source": file_source,
            "file_hierarchy": hierarchy,
            "file_size": calculator.bytes_seen,
            "file_checksum": calculator.finalize(),
            "attributes": attribute_bag,
        },
        deduplicate=deduplicate,
    )

    deduplicated = handle.is_finished
    writer = handle.write_stream()
    await writer.consume(_read_upload(file))

    refreshed = await catalog.get_file(handle.file_id)
    logger.info(
        f"Upload stored [file_id={handle.file_id}] deduplicated={deduplicated} "
        f"chunks={writer.chunks_written}"
    )

    return AddFileResponse(
        file=FileMetadataResponse.from_metadata((refreshed or handle).metadata),
        deduplicated=deduplicated,
        chunks_written=writer.chunks_written,
        bytes_received=writer.bytes_received,
    )


@router.get("/{file_id}", response_model=FileMetadataResponse)
async def get_file_metadata(
    file_id: str,
    catalog: FileCatalog = Depends(get_catalog),
):
    handle = await catalog.get_file(file_id)
    if handle is None:
        raise FileRecordNotFoundError(f"File {file_id} not found")
    return FileMetadataResponse.from_metadata(handle.metadata)


async def _stream_verified(handle: FileHandle, first: Optional[bytes], reader) -> AsyncIterator[bytes]:
    calculator = IncrementalChecksumCalculator()
    if first is not None:
        calculator.update(first)
        yield first
        async for piece in reader:
            calculator.update(piece)
            yield piece

    actual = calculator.finalize()
    expected = handle.metadata.file_checksum
    if expected is not None and actual != expected:
        logger.error(f"Integrity check failed during download [file_id={handle.file_id}]")
        raise IntegrityMismatchError(handle.file_id, expected, actual)


@router.get("/{file_id}/download")
async def download_file(
    file_id: str,
    catalog: FileCatalog = Depends(get_catalog),
):
    """
    Stream a file's content chunk by chunk.

    The first chunk is fetched before the response starts so a missing
    leading chunk is reported as an error response rather than an empty body.

    Raises:
        - 404: File not found
        - 500: Missing chunk
        - 503: Store unavailable
    """
    handle = await catalog.get_file(file_id)
    if handle is None:
        raise FileRecordNotFoundError(f"File {file_id} not found")

    reader = handle.read_stream()
    first = await reader.read_chunk()

    metadata = handle.metadata
    filename = metadata.generated_name or metadata.original_name or metadata.file_id
    headers = {
        "Content-Disposition": f'attachment; filename="{filename}"',
        "Content-Length": str(metadata.file_size),
    }
    if metadata.file_checksum:
        headers["X-File-Checksum"] = metadata.file_checksum

    return StreamingResponse(
        _stream_verified(handle, first, reader),
        media_type=metadata.mime_type or "application/octet-stream",
        headers=headers,
    )


@router.patch("/{file_id}", response_model=FileMetadataResponse)
async def update_file(
    file_id: str,
    request: UpdateFileRequest,
    catalog: FileCatalog = Depends(get_catalog),
):
    """
    Update the supplied metadata fields of a file.

    Raises:
        - 400: Invalid metadata
        - 404: File not found
    """
    updated = await catalog.update_file({"file_id": file_id, **request.model_dump(exclude_none=True)})
    if updated is None:
        raise FileRecordNotFoundError(f"File {file_id} not found")
    return FileMetadataResponse.from_metadata(updated)
