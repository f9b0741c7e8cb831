"""Tests for CLI configuration module."""

import json

from common.constants import DEFAULT_CHUNK_SIZE_BYTES
from cli.config import Config


def test_config_creates_default_file(tmp_path):
    """Test that config file is created with defaults if missing."""
    config_path = tmp_path / '.filestore' / 'config.json'
    config = Config(config_path)

    assert config_path.exists()
    assert config.get_database_path() == Config.DEFAULT_CONFIG['database_path']
    assert config.get_chunk_size() == Config.DEFAULT_CONFIG['chunk_size']


def test_config_loads_existing_file(tmp_path):
    """Test loading existing config file."""
    config_path = tmp_path / '.filestore' / 'config.json'
    config_path.parent.mkdir(parents=True)

    with open(config_path, 'w') as f:
        json.dump({'database_path': '/data/custom.db'}, f)

    config = Config(config_path)

    assert config.get_database_path() == '/data/custom.db'
    assert 'chunk_size' in config.data


def test_config_handles_corrupted_file(tmp_path):
    """Test that corrupted config file falls back to defaults and is backed up."""
    config_path = tmp_path / '.filestore' / 'config.json'
    config_path.parent.mkdir(parents=True)
    config_path.write_text('{ invalid json }')

    config = Config(config_path)

    assert config.data == Config.DEFAULT_CONFIG
    assert config_path.with_suffix('.json.bak').exists()


def test_set_database_path_persists(temp_config):
    temp_config.set_database_path('/tmp/other.db')

    reloaded = Config(temp_config.config_path)
    assert reloaded.get_database_path() == '/tmp/other.db'


def test_default_chunk_size_fallback(temp_config):
    del temp_config.data['chunk_size']

    assert temp_config.get_chunk_size() == DEFAULT_CHUNK_SIZE_BYTES
