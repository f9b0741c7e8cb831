"""Metadata repository for file record operations."""

import json
import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from common.constants import STATUS_FINISHED
from common.logging_config import get_logger
from common.types import FileMetadata, FileStatus
from filestore.database import (
    StoreContext,
    format_file_date,
    format_record_date,
    parse_timestamp,
    transaction,
)
from filestore.exceptions import FileRecordNotFoundError, InvalidMetadataError
from filestore.models import FileDraft, FileFilter, MetadataUpdate, UpsertPolicy

logger = get_logger(__name__)

FILE_COLUMNS = (
    "file_id, file_date, record_date, original_name, generated_name, mime_type, "
    "file_extension, file_source, file_hierarchy, file_size, file_checksum, "
    "chunk_size, attributes, status"
)

# MetadataUpdate field -> files column, for fields whose names differ
_UPDATE_COLUMNS = {
    "file_chunk_size": "chunk_size",
}


def row_to_metadata(row: sqlite3.Row) -> FileMetadata:
    return FileMetadata(
        file_id=row["file_id"],
        file_date=parse_timestamp(row["file_date"]),
        record_date=parse_timestamp(row["record_date"]),
        original_name=row["original_name"],
        generated_name=row["generated_name"],
        mime_type=row["mime_type"],
        file_extension=row["file_extension"],
        file_source=row["file_source"],
        file_hierarchy=tuple(json.loads(row["file_hierarchy"] or "[]")),
        file_size=row["file_size"],
        file_checksum=row["file_checksum"],
        file_chunk_size=row["chunk_size"],
        attributes=json.loads(row["attributes"] or "{}"),
        status=FileStatus(row["status"]),
    )


def _column_value(name: str, value: Any) -> Any:
    if name == "file_date":
        return format_file_date(value)
    if name == "record_date":
        return format_record_date(value)
    if name in ("file_hierarchy", "attributes"):
        return json.dumps(value)
    if isinstance(value, FileStatus):
        return value.value
    return value


class MetadataRepository:
    """
    Stores one record per file, keyed by file_id.
    """

    def __init__(self, context: StoreContext):
        self.context = context

    async def upsert_metadata(self, draft: FileDraft, policy: UpsertPolicy) -> FileMetadata:
        """
        Save a new record, or return the existing one the policy matches.

        Args:
            draft: Validated draft; file_chunk_size must be set
            policy: Conflict key to honour (checksum, id, or none)

        Returns:
            The inserted record (status new) or the existing record unchanged
        """
        if draft.file_chunk_size is None:
            raise InvalidMetadataError("file_chunk_size must be resolved before saving")

        record_date = datetime.now(timezone.utc)
        metadata, created = await self.context.run(self._upsert, draft, policy, record_date)
        if created:
            logger.info(f"Created file record [file_id={metadata.file_id}] [policy={policy.value}]")
        else:
            logger.info(
                f"Reusing existing file record [file_id={metadata.file_id}] "
                f"[policy={policy.value}] [status={metadata.status.value}]"
            )
        return metadata

    @staticmethod
    def _upsert(
        conn: sqlite3.Connection,
        draft: FileDraft,
        policy: UpsertPolicy,
        record_date: datetime,
    ) -> Tuple[FileMetadata, bool]:
        file_id = draft.file_id or str(uuid.uuid4())

        with transaction(conn, immediate=True) as cursor:
            existing = None
            if policy == UpsertPolicy.BY_CHECKSUM and draft.file_checksum:
                cursor.execute(
                    f"SELECT {FILE_COLUMNS} FROM files WHERE file_checksum = ? "
                    "ORDER BY record_date LIMIT 1",
                    (draft.file_checksum,)
                )
                existing = cursor.fetchone()
            elif policy == UpsertPolicy.BY_ID:
                cursor.execute(
                    f"SELECT {FILE_COLUMNS} FROM files WHERE file_id = ?",
                    (file_id,)
                )
                existing = cursor.fetchone()

            if existing is not None:
                return row_to_metadata(existing), False

            cursor.execute(
                f"""
                INSERT INTO files ({FILE_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    file_id,
                    format_file_date(draft.file_date),
                    format_record_date(record_date),
                    draft.original_name,
                    draft.generated_name,
                    draft.mime_type,
                    draft.file_extension,
                    draft.file_source,
                    json.dumps(draft.file_hierarchy),
                    draft.file_size,
                    draft.file_checksum,
                    draft.file_chunk_size,
                    json.dumps(draft.attributes),
                    FileStatus.NEW.value,
                )
            )
            cursor.execute(f"SELECT {FILE_COLUMNS} FROM files WHERE file_id = ?", (file_id,))
            return row_to_metadata(cursor.fetchone()), True

    async def update_status(self, file_id: str) -> None:
        """
        Mark a file finished.

        Raises:
            FileRecordNotFoundError: If no record has this id
        """
        updated = await self.context.run(self._update_status, file_id)
        if not updated:
            raise FileRecordNotFoundError(f"File {file_id} not found")
        logger.info(f"File marked {STATUS_FINISHED} [file_id={file_id}]")

    @staticmethod
    def _update_status(conn: sqlite3.Connection, file_id: str) -> int:
        cursor = conn.execute(
            "UPDATE files SET status = ? WHERE file_id = ?",
            (FileStatus.FINISHED.value, file_id)
        )
        return cursor.rowcount

    async def update_fields(self, update: MetadataUpdate) -> Optional[FileMetadata]:
        """
        Apply the non-empty fields of update to an existing record.

        Returns:
            The updated record, or None if the id is not found
        """
        changes = update.changed_fields()
        logger.debug(f"Updating file [file_id={update.file_id}] fields={sorted(changes)}")
        return await self.context.run(self._update_fields, update.file_id, changes)

    @staticmethod
    def _update_fields(
        conn: sqlite3.Connection,
        file_id: str,
        changes: Dict[str, Any],
    ) -> Optional[FileMetadata]:
        with transaction(conn) as cursor:
            if changes:
                assignments = ", ".join(
                    f"{_UPDATE_COLUMNS.get(name, name)} = ?" for name in changes
                )
                params = [_column_value(name, value) for name, value in changes.items()]
                cursor.execute(
                    f"UPDATE files SET {assignments} WHERE file_id = ?",
                    params + [file_id]
                )
                if cursor.rowcount == 0:
                    return None

            cursor.execute(f"SELECT {FILE_COLUMNS} FROM files WHERE file_id = ?", (file_id,))
            row = cursor.fetchone()
            return row_to_metadata(row) if row is not None else None

    async def get_by_id(self, file_id: str) -> Optional[FileMetadata]:
        return await self.context.run(self._get_by_id, file_id)

    @staticmethod
    def _get_by_id(conn: sqlite3.Connection, file_id: str) -> Optional[FileMetadata]:
        row = conn.execute(
            f"SELECT {FILE_COLUMNS} FROM files WHERE file_id = ?",
            (file_id,)
        ).fetchone()
        return row_to_metadata(row) if row is not None else None

    async def query_metadata(self, file_filter: FileFilter) -> List[FileMetadata]:
        """
        Records matching every set filter field, oldest file_date first.
        """
        records = await self.context.run(self._query, file_filter)
        logger.debug(f"Metadata query matched {len(records)} records")
        return records

    @staticmethod
    def _query(conn: sqlite3.Connection, file_filter: FileFilter) -> List[FileMetadata]:
        clauses = []
        params: List[Any] = []

        if file_filter.start_date is not None:
            clauses.append("file_date >= ?")
            params.append(format_file_date(file_filter.start_date))
        if file_filter.end_date is not None:
            clauses.append("file_date <= ?")
            params.append(format_file_date(file_filter.end_date))
        if file_filter.file_hierarchy:
            placeholders = ",".join("?" for _ in file_filter.file_hierarchy)
            clauses.append(
                "EXISTS (SELECT 1 FROM json_each(files.file_hierarchy) "
                f"WHERE json_each.value IN ({placeholders}))"
            )
            params.extend(file_filter.file_hierarchy)
        if file_filter.file_name:
            clauses.append("instr(generated_name, ?) > 0")
            params.append(file_filter.file_name)
        if file_filter.file_id:
            clauses.append("file_id = ?")
            params.append(file_filter.file_id)

        where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
        rows = conn.execute(
            f"SELECT {FILE_COLUMNS} FROM files {where} ORDER BY file_date, record_date",
            params
        ).fetchall()
        return [row_to_metadata(row) for row in rows]
