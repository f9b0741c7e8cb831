"""Command request data types for CLI."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional


@dataclass(frozen=True)
class FilterArgs:
    """Filters shared by list and download."""

    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    hierarchy: tuple[str, ...] = ()
    name: Optional[str] = None
    file_id: Optional[str] = None

    def to_filter(self) -> dict:
        return {
            "start_date": self.start_date,
            "end_date": self.end_date,
            "file_hierarchy": list(self.hierarchy) or None,
            "file_name": self.name,
            "file_id": self.file_id,
        }


@dataclass(frozen=True)
class ListCommand:
    """Summarize files matching filters."""

    filters: FilterArgs = field(default_factory=FilterArgs)
    command: Literal["list"] = "list"


@dataclass(frozen=True)
class DownloadCommand:
    """Download files matching filters into a destination folder."""

    dest_dir: str
    filters: FilterArgs = field(default_factory=FilterArgs)
    flat: bool = False
    command: Literal["download"] = "download"


@dataclass(frozen=True)
class UploadCommand:
    """Store a local file."""

    path: str
    hierarchy: tuple[str, ...] = ()
    file_date: Optional[datetime] = None
    name: Optional[str] = None
    file_id: Optional[str] = None
    deduplicate: bool = True
    command: Literal["upload"] = "upload"


CommandRequest = (
    ListCommand
    | DownloadCommand
    | UploadCommand
)
