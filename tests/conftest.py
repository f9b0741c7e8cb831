"""Shared pytest fixtures for all tests."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from cli.config import Config
from filestore.catalog import open_catalog


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to temporary .filestore directory
    """
    config_dir = tmp_path / '.filestore'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir):
    """
    Create temporary config instance.

    Args:
        temp_config_dir: Temporary config directory fixture

    Returns:
        Config instance with temp config file
    """
    return Config(temp_config_dir / 'config.json')


@pytest.fixture
def db_path(tmp_path) -> Path:
    return tmp_path / 'data' / 'filestore.db'


@pytest.fixture
def catalog(db_path):
    """
    Catalog over a fresh SQLite file with a 4-byte chunk size.
    """
    store = open_catalog(str(db_path), chunk_size=4)
    yield store
    store.close()


def _make_draft(**overrides) -> dict:
    """Minimal valid draft for a 9-byte file."""
    draft = {
        'file_date': datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc),
        'generated_name': 'report.txt',
        'original_name': 'report.txt',
        'file_hierarchy': ['reports', '2024'],
        'file_size': 9,
        'file_checksum': 'checksum-abcdefghi',
    }
    draft.update(overrides)
    return draft


@pytest.fixture
def make_draft():
    return _make_draft
