"""
Unit tests for the configuration singleton.
"""

import pytest

from pingmonitor.config import (
    clear_config_cache,
    get_config,
    get_config_info,
    is_config_loaded,
    set_config_path,
)
from pingmonitor.config import find_unknown_keys, load_toml_file, manager
from pingmonitor.validation import ValidationError


@pytest.mark.unit
class TestConfigManager:
    """Test cases for loading and caching configuration."""

    def test_load_from_explicit_path(self, config_file):
        set_config_path(config_file)
        config = get_config()

        assert config.probe.timeout_seconds == 2.0
        assert config.probe.ip_version == 4
        assert config.stream.stats_window_size == 5
        assert config.logging.level == "DEBUG"

    def test_config_is_cached(self, config_file):
        set_config_path(config_file)

        assert is_config_loaded() is False
        first = get_config()
        assert is_config_loaded() is True
        assert get_config() is first

    def test_clear_cache_forces_reload(self, config_file):
        set_config_path(config_file)
        first = get_config()

        clear_config_cache()

        assert is_config_loaded() is False
        assert get_config() is not first

    def test_set_path_clears_cache(self, config_file, temp_dir):
        set_config_path(config_file)
        get_config()

        other = temp_dir / "other.toml"
        other.write_text("[probe]\ncount = 7\n")
        set_config_path(other)

        assert get_config().probe.count == 7

    def test_explicit_missing_file_raises(self, temp_dir):
        set_config_path(temp_dir / "missing.toml")

        with pytest.raises(FileNotFoundError):
            get_config()

    def test_missing_default_file_uses_defaults(self, temp_dir, monkeypatch):
        monkeypatch.setattr(manager, "_CONFIG_FILE_PATH", temp_dir / "absent.toml")
        monkeypatch.setattr(manager, "_CONFIG_PATH_EXPLICIT", False)
        monkeypatch.setattr(manager, "_CONFIG", None)

        config = get_config()

        assert config.probe.count == 1
        assert config.logging.level == "INFO"

    def test_invalid_values_raise(self, temp_dir):
        path = temp_dir / "bad.toml"
        path.write_text("[probe]\nttl = 0\n")
        set_config_path(path)

        with pytest.raises(ValidationError):
            get_config()

    def test_malformed_toml_raises(self, temp_dir):
        import tomllib

        path = temp_dir / "broken.toml"
        path.write_text("[probe\ncount = ")
        set_config_path(path)

        with pytest.raises(tomllib.TOMLDecodeError):
            get_config()

    def test_config_info(self, config_file):
        set_config_path(config_file)
        info = get_config_info()

        assert info["config_loaded"] is False
        assert info["config_path"] == str(config_file)
        assert info["config_path_explicit"] is True
        assert info["config_file_exists"] is True


@pytest.mark.unit
class TestConfigLoader:
    """Test cases for reading config.toml."""

    def test_find_unknown_keys(self):
        data = {
            "probe": {"count": 1, "cuont": 2},
            "stream": {"batch_size": 3},
            "extras": {"x": 1},
        }
        assert find_unknown_keys(data) == ["probe.cuont", "extras"]

    def test_unknown_keys_are_logged(self, temp_dir, caplog):
        path = temp_dir / "typo.toml"
        path.write_text("[probe]\ntll = 12\n")
        set_config_path(path)

        with caplog.at_level("WARNING"):
            config = get_config()

        assert config.probe.ttl == 64
        assert "probe.tll" in caplog.text

    def test_load_toml_file_missing(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            load_toml_file(temp_dir / "nothing.toml")
