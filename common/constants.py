"""Project-wide constants (chunk size, timestamp formats, defaults)."""

DEFAULT_CHUNK_SIZE_BYTES: int = 512 * 1024  # 512 KiB default chunk size

DEFAULT_DATABASE_PATH: str = "/app/data/filestore.db"

DEFAULT_API_HOST: str = "0.0.0.0"
DEFAULT_API_PORT: int = 8000

# Stored timestamps are UTC text; fixed width keeps lexical order chronological.
FILE_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"
RECORD_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S.%f"

STATUS_NEW: str = "new"
STATUS_FINISHED: str = "finished"
