"""Custom exception classes for the file store."""

from typing import Optional


class FileStoreException(Exception):
    """
    Base exception class for all file store errors.
    """
    pass


class StoreError(FileStoreException):
    """
    Raised when a metadata or chunk store operation fails.
    """
    pass


class ConfigurationError(FileStoreException):
    """
    Raised at setup time when connection or storage settings are invalid.
    """
    pass


class InvalidMetadataError(FileStoreException):
    """
    Raised when a metadata draft, update or filter fails validation.
    """
    pass


class FileRecordNotFoundError(FileStoreException):
    """
    Raised when a requested file record does not exist.
    """
    pass


class StreamClosedError(FileStoreException):
    """
    Raised when a chunk writer is used after it finished or failed.
    """
    pass


class MissingChunkError(FileStoreException):
    """
    Raised when a chunk expected from the file's metadata is absent.
    """

    def __init__(self, file_id: str, chunk_number: int):
        self.file_id = file_id
        self.chunk_number = chunk_number
        super().__init__(f"No data for chunk {chunk_number} of file {file_id}")


class IntegrityMismatchError(FileStoreException):
    """
    Raised when reassembled content does not match the stored file checksum.
    """

    def __init__(self, file_id: str, expected: Optional[str], actual: str):
        self.file_id = file_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Checksum mismatch for file {file_id}: expected {expected}, got {actual}"
        )
