"""Utility functions for CLI operations."""

import sys
from pathlib import Path
from typing import Iterator, Sequence

from cli.constants import GREEN, RESET

READ_PIECE_SIZE = 64 * 1024

SIZE_UNITS = ('KiB', 'MiB', 'GiB', 'TiB', 'PiB')


def iter_file_pieces(file_path: str, piece_size: int = READ_PIECE_SIZE) -> Iterator[bytes]:
    """
    Read a local file in pieces of at most piece_size bytes.

    The file is reopened on every call, so the same path can be read once
    for its checksum and again for storage.
    """
    with open(file_path, 'rb') as source:
        for piece in iter(lambda: source.read(piece_size), b''):
            yield piece


def ensure_folder_exists(base: str, hierarchy: Sequence[str] = ()) -> Path:
    """
    Create base/<segment>/<segment>/... and return it.

    Segments never leave base: separators split them, and empty, '.' and
    '..' parts are dropped.
    """
    parts = [
        part
        for segment in hierarchy
        for part in segment.replace("\\", "/").split("/")
        if part not in ("", ".", "..")
    ]
    folder = Path(base).joinpath(*parts)
    folder.mkdir(parents=True, exist_ok=True)
    return folder


def display_progress(label: str, current: int, total: int) -> None:
    """Overwrite the current line with a padded 'current/total' counter."""
    width = len(str(total))
    sys.stdout.write(f"\r{label} {GREEN}{current:>{width}}/{total}{RESET}")
    sys.stdout.flush()


def finish_progress() -> None:
    sys.stdout.write('\n')
    sys.stdout.flush()


def format_file_size(size_bytes: int) -> str:
    """
    Human-readable size in binary units, e.g. '512 B' or '1.50 MiB'.
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    value = float(size_bytes)
    for unit in SIZE_UNITS:
        value /= 1024.0
        if value < 1024.0 or unit == SIZE_UNITS[-1]:
            return f"{value:.2f} {unit}"
