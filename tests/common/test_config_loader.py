"""Tests for the multi-source configuration loader."""

import os
import pytest
import platformdirs
from unittest.mock import patch
from pydantic import ValidationError

from unbox.common import ConfigLoader
from unbox.config import UnboxConfig


@pytest.fixture
def isolated_loader(tmp_path, monkeypatch):
    """Loader that sees no system or user config."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.setattr(
        platformdirs,
        "user_config_dir",
        lambda appname=None, appauthor=None: str(tmp_path / "user")
    )
    for key in list(os.environ):
        if key.startswith("UNBOX_"):
            monkeypatch.delenv(key)

    loader = ConfigLoader(app_name="unbox", config_class=UnboxConfig)
    with patch.object(ConfigLoader, "_load_system_config", return_value=None):
        yield loader


class TestConfigLoader:
    """Test configuration sources and their priority."""

    def test_defaults_without_any_source(self, isolated_loader):
        """Test that built-in defaults apply when nothing is configured."""
        config = isolated_loader.load()

        assert config.logging.level == "WARNING"
        assert config.extraction.destination == "."
        assert config.extraction.skip_unknown is False
        assert config.detection.sniff_bytes == 131072
        assert config.progress.enabled is True

    def test_explicit_config_file(self, isolated_loader, tmp_path):
        """Test loading values from a given config file."""
        config_file = tmp_path / "custom.toml"
        config_file.write_text(
            '[extraction]\n'
            'destination = "/srv/unpacked"\n'
            'skip_unknown = true\n'
            '\n'
            '[logging]\n'
            'level = "debug"\n'
        )

        config = isolated_loader.load(config_file=config_file)

        assert config.extraction.destination == "/srv/unpacked"
        assert config.extraction.skip_unknown is True
        assert config.logging.level == "DEBUG"

    def test_missing_config_file(self, isolated_loader, tmp_path):
        """Test that a config file given explicitly must exist."""
        with pytest.raises(FileNotFoundError):
            isolated_loader.load(config_file=tmp_path / "missing.toml")

    def test_working_directory_is_not_searched(self, isolated_loader, tmp_path):
        """Test that only the documented locations are read."""
        config_dir = tmp_path / "config"
        config_dir.mkdir()
        (config_dir / "defaults.toml").write_text('[progress]\nenabled = false\n')

        config = isolated_loader.load()

        assert config.progress.enabled is True

    def test_user_config(self, isolated_loader, tmp_path):
        """Test that the user config is read."""
        user_dir = tmp_path / "user"
        user_dir.mkdir()
        (user_dir / "config.toml").write_text('[detection]\nsniff_bytes = 8192\n')

        config = isolated_loader.load()

        assert config.detection.sniff_bytes == 8192

    def test_config_file_overrides_user_config(self, isolated_loader, tmp_path):
        """Test that the file given on the command line wins over the user config."""
        config_file = tmp_path / "custom.toml"
        config_file.write_text('[detection]\nsniff_bytes = 4096\n')
        user_dir = tmp_path / "user"
        user_dir.mkdir()
        (user_dir / "config.toml").write_text(
            '[detection]\nsniff_bytes = 8192\n\n[progress]\nenabled = false\n'
        )

        config = isolated_loader.load(config_file=config_file)

        assert config.detection.sniff_bytes == 4096
        assert config.progress.enabled is False

    def test_environment_overrides(self, isolated_loader, monkeypatch, tmp_path):
        """Test UNBOX_<SECTION>_<KEY> environment overrides."""
        config_file = tmp_path / "custom.toml"
        config_file.write_text('[extraction]\nskip_unknown = false\n')
        monkeypatch.setenv("UNBOX_EXTRACTION_SKIP_UNKNOWN", "true")
        monkeypatch.setenv("UNBOX_EXTRACTION_COPY_BUFFER_SIZE", "65536")
        monkeypatch.setenv("UNBOX_PROGRESS_REFRESH_PER_SECOND", "2.5")
        monkeypatch.setenv("UNBOX_LOGGING_LEVEL", "info")

        config = isolated_loader.load(config_file=config_file)

        assert config.extraction.skip_unknown is True
        assert config.extraction.copy_buffer_size == 65536
        assert config.progress.refresh_per_second == 2.5
        assert config.logging.level == "INFO"

    def test_unrelated_environment_is_ignored(self, isolated_loader, monkeypatch):
        """Test that variables for unknown sections do not fail validation."""
        monkeypatch.setenv("UNBOX_TEST_RUN", "1")

        config = isolated_loader.load()

        assert config.extraction.skip_unknown is False

    def test_invalid_values_are_rejected(self, isolated_loader, tmp_path):
        """Test that out-of-range values fail validation."""
        config_file = tmp_path / "custom.toml"
        config_file.write_text('[detection]\nsniff_bytes = 16\n')

        with pytest.raises(ValidationError):
            isolated_loader.load(config_file=config_file)

    def test_unknown_section_is_rejected(self, isolated_loader, tmp_path):
        """Test that unknown sections in a file fail validation."""
        config_file = tmp_path / "custom.toml"
        config_file.write_text('[scanner]\nworkers = 4\n')

        with pytest.raises(ValidationError):
            isolated_loader.load(config_file=config_file)


class TestDeepMerge:
    """Test dictionary merging."""

    def test_nested_values_are_merged(self):
        """Test that nested sections merge key by key."""
        loader = ConfigLoader()
        merged = loader._deep_merge(
            {"extraction": {"destination": ".", "skip_unknown": False}},
            {"extraction": {"skip_unknown": True}}
        )

        assert merged == {"extraction": {"destination": ".", "skip_unknown": True}}


class TestConvertEnvValue:
    """Test environment value conversion."""

    @pytest.mark.parametrize("value,expected", [
        ("true", True),
        ("No", False),
        ("42", 42),
        ("0.5", 0.5),
        ("a, b", "a, b"),
        ("plain", "plain"),
    ])
    def test_conversion(self, value, expected):
        """Test conversion of typical values."""
        assert ConfigLoader()._convert_env_value(value) == expected
