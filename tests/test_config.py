"""
Tests for catalog configuration.
"""

import json
import tempfile
from pathlib import Path

import pytest

from series_catalog.exceptions import ConfigurationError
from series_catalog.models.config import CatalogConfig, load_config, save_config


@pytest.fixture
def temp_dir():
    """Create a temporary directory for testing."""
    with tempfile.TemporaryDirectory() as tmp:
        yield Path(tmp)


class TestCatalogConfig:
    """Test the configuration model."""

    def test_defaults(self):
        config = CatalogConfig.default()
        assert config.storage.catalog_path == Path("./data") / "catalog.json"
        assert config.uploads.max_file_size == 500 * 1024 * 1024
        assert config.access.policy == "admin_flag"
        assert config.access.admins == ["admin"]

    def test_default_with_data_dir(self, temp_dir):
        config = CatalogConfig.default(temp_dir)
        assert config.storage.uploads_path == temp_dir / "uploads"

    def test_save_and_load(self, temp_dir):
        config = CatalogConfig.default(temp_dir / "data")
        config.access.policy = "fixed_admin"
        config.access.admin_handle = "boss"
        path = temp_dir / "config.json"

        save_config(config, path)
        loaded = load_config(path)

        assert loaded == config
        assert isinstance(loaded.storage.data_dir, Path)

    def test_partial_file_keeps_defaults(self, temp_dir):
        path = temp_dir / "config.json"
        path.write_text(json.dumps({"uploads": {"blob_prefix": "media"}}))

        config = load_config(path)

        assert config.uploads.blob_prefix == "media"
        assert config.uploads.chunk_size == 1024 * 1024

    def test_unknown_option_rejected(self, temp_dir):
        path = temp_dir / "config.json"
        path.write_text(json.dumps({"storage": {"bucket": "x"}}))

        with pytest.raises(ConfigurationError, match="bucket"):
            load_config(path)

    def test_invalid_json_rejected(self, temp_dir):
        path = temp_dir / "config.json"
        path.write_text("{")

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_validate(self):
        config = CatalogConfig.default()
        config.access.policy = "anyone"
        with pytest.raises(ConfigurationError):
            config.validate()

        config = CatalogConfig.default()
        config.uploads.blob_prefix = "a/b"
        with pytest.raises(ConfigurationError):
            config.validate()
