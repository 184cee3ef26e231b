"""Tests for configuration loading."""

import json
from unittest.mock import patch

import pytest

from storalyzer.config import DEFAULT_SKIP_NAMES, Settings, load_settings
from storalyzer.exceptions import ConfigError


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.max_folder_depth == 3
        assert settings.recent_days == 30
        assert settings.old_days == 180
        assert settings.top_n == 10
        assert settings.output_dir == "outputs"
        assert settings.verify_empty_folders is True
        assert "$Recycle.Bin" in settings.skip_names

    def test_default_lists_are_independent(self):
        first = Settings()
        first.skip_names.append("extra")
        assert "extra" not in Settings().skip_names
        assert "extra" not in DEFAULT_SKIP_NAMES


class TestLoadSettings:
    def test_missing_default_file_gives_defaults(self, tmp_path):
        with patch("storalyzer.config.CONFIG_FILE", tmp_path / "nope.json"):
            assert load_settings() == Settings()

    def test_missing_explicit_file_raises(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_settings(tmp_path / "nope.json")

    def test_partial_override(self, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"recent_days": 7, "skip_names": ["cache"]}))

        settings = load_settings(config_file)
        assert settings.recent_days == 7
        assert settings.skip_names == ["cache"]
        assert settings.old_days == 180

    def test_invalid_json(self, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text("{not json")

        with pytest.raises(ConfigError, match="Could not read"):
            load_settings(config_file)

    def test_invalid_value(self, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({"max_folder_depth": 0}))

        with pytest.raises(ConfigError, match="Invalid config"):
            load_settings(config_file)

    def test_non_object(self, tmp_path):
        config_file = tmp_path / "config.json"
        config_file.write_text("[1, 2]")

        with pytest.raises(ConfigError, match="JSON object"):
            load_settings(config_file)
