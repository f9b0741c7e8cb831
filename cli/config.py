"""Configuration management for the file store CLI."""

import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from common.constants import DEFAULT_CHUNK_SIZE_BYTES, DEFAULT_DATABASE_PATH
from common.logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / '.filestore' / 'config.json'


class Config:
    """
    JSON settings for the CLI: which database to open and the chunk size
    given to newly stored files. Missing keys fall back to the environment.
    """

    DEFAULT_CONFIG = {
        "database_path": os.environ.get("FILESTORE_DATABASE_PATH", DEFAULT_DATABASE_PATH),
        "chunk_size": int(os.environ.get("FILESTORE_CHUNK_SIZE", str(DEFAULT_CHUNK_SIZE_BYTES))),
    }

    def __init__(self, config_path: Path = DEFAULT_CONFIG_PATH):
        self.config_path = self._writable_location(Path(config_path))
        self.data = self._load()

    @staticmethod
    def _writable_location(config_path: Path) -> Path:
        """Fall back to the temp dir when the home folder is read-only."""
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            return config_path
        except PermissionError:
            fallback = Path(tempfile.gettempdir()) / '.filestore' / config_path.name
            fallback.parent.mkdir(parents=True, exist_ok=True)
            logger.warning(f"Cannot write {config_path.parent}, using {fallback}")
            return fallback

    def _load(self) -> dict:
        """
        Defaults overlaid with the file's values.

        An unreadable file is copied to config.json.bak and defaults are
        used; a missing file is created with the defaults.
        """
        config = dict(self.DEFAULT_CONFIG)

        if not self.config_path.exists():
            self.data = config
            self.save()
            return config

        try:
            with open(self.config_path, 'r') as f:
                config.update(json.load(f))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable config {self.config_path}: {e}")
            self._backup()
            return dict(self.DEFAULT_CONFIG)
        return config

    def _backup(self) -> None:
        try:
            shutil.copy(self.config_path, self.config_path.with_suffix('.json.bak'))
        except OSError as e:
            logger.warning(f"Could not back up config: {e}")

    def save(self) -> None:
        try:
            with open(self.config_path, 'w') as f:
                json.dump(self.data, f, indent=2)
        except OSError as e:
            logger.warning(f"Could not save config {self.config_path}: {e}")

    def get_database_path(self) -> str:
        return self.data.get('database_path', DEFAULT_DATABASE_PATH)

    def set_database_path(self, path: str) -> None:
        self.data['database_path'] = path
        self.save()

    def get_chunk_size(self) -> Optional[int]:
        return self.data.get('chunk_size', DEFAULT_CHUNK_SIZE_BYTES)
