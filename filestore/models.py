"""Validated input models for the store boundary (drafts, updates, filters)."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Type, TypeVar, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from common.types import FileStatus
from filestore.exceptions import InvalidMetadataError

M = TypeVar("M", bound=BaseModel)

_OPTIONAL_TEXT_FIELDS = (
    "file_id",
    "original_name",
    "generated_name",
    "mime_type",
    "file_extension",
    "file_source",
    "file_checksum",
)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _clean_hierarchy(value: Any) -> Any:
    if value is None:
        return value
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, (list, tuple)):
        return value
    segments = [str(segment).strip() for segment in value if segment is not None]
    return [segment for segment in segments if segment]


class UpsertPolicy(str, Enum):
    """
    Conflict handling applied when a new metadata record is saved.
    """
    BY_CHECKSUM = "by_checksum"
    BY_ID = "by_id"
    ALWAYS_INSERT = "always_insert"

    @classmethod
    def resolve(cls, deduplicate: bool = True, file_id: Optional[str] = None) -> "UpsertPolicy":
        if deduplicate:
            return cls.BY_CHECKSUM
        if file_id:
            return cls.BY_ID
        return cls.ALWAYS_INSERT


class FileDraft(BaseModel):
    """Metadata submitted by a caller that wants to save a file."""
    file_id: Optional[str] = None
    file_date: datetime
    original_name: Optional[str] = None
    generated_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_extension: Optional[str] = None
    file_source: Optional[str] = None
    file_hierarchy: List[str] = Field(default_factory=list)
    file_size: int = Field(ge=0)
    file_checksum: Optional[str] = None
    file_chunk_size: Optional[int] = Field(default=None, gt=0)
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @field_validator(*_OPTIONAL_TEXT_FIELDS, mode="before")
    @classmethod
    def blank_text_to_none(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("file_hierarchy", mode="before")
    @classmethod
    def split_hierarchy(cls, value: Any) -> Any:
        return _clean_hierarchy(value)

    @field_validator("attributes", mode="before")
    @classmethod
    def default_attributes(cls, value: Any) -> Any:
        return {} if value is None else value


class MetadataUpdate(BaseModel):
    """Sparse update of an existing record; unset or empty fields are left alone."""
    file_id: str = Field(min_length=1)
    file_date: Optional[datetime] = None
    record_date: Optional[datetime] = None
    original_name: Optional[str] = None
    generated_name: Optional[str] = None
    mime_type: Optional[str] = None
    file_extension: Optional[str] = None
    file_source: Optional[str] = None
    file_hierarchy: Optional[List[str]] = None
    file_size: Optional[int] = Field(default=None, ge=0)
    file_checksum: Optional[str] = None
    file_chunk_size: Optional[int] = Field(default=None, gt=0)
    attributes: Optional[Dict[str, Any]] = None
    status: Optional[FileStatus] = None

    @field_validator(*_OPTIONAL_TEXT_FIELDS[1:], mode="before")
    @classmethod
    def blank_text_to_none(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("file_hierarchy", mode="before")
    @classmethod
    def split_hierarchy(cls, value: Any) -> Any:
        return _clean_hierarchy(value)

    def changed_fields(self) -> Dict[str, Any]:
        """
        Fields carrying a value to write, keyed by model field name.

        Returns:
            Mapping without file_id, None values and empty collections
        """
        changes = {}
        for name, value in self.model_dump(exclude={"file_id"}).items():
            if value is None:
                continue
            if isinstance(value, (list, dict)) and not value:
                continue
            changes[name] = value
        return changes


class FileFilter(BaseModel):
    """Query filter for listing files. An empty filter matches every record."""
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    file_hierarchy: Optional[List[str]] = None
    file_name: Optional[str] = None
    file_id: Optional[str] = None

    @field_validator("file_name", "file_id", mode="before")
    @classmethod
    def blank_text_to_none(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("file_hierarchy", mode="before")
    @classmethod
    def split_hierarchy(cls, value: Any) -> Any:
        return _clean_hierarchy(value)


def validate_model(model_cls: Type[M], data: Union[M, Dict[str, Any], None]) -> M:
    """
    Build a model instance, translating validation failures.

    Raises:
        InvalidMetadataError: If data does not satisfy the model
    """
    if isinstance(data, model_cls):
        return data
    try:
        return model_cls.model_validate(data or {})
    except ValidationError as e:
        raise InvalidMetadataError(f"Invalid {model_cls.__name__}: {e}") from e
