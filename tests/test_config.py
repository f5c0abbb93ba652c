"""Tests for configuration file handling."""

import json
from unittest.mock import patch

import pytest

from cleanslim.config import (
    CONFIG_DIR_ENV,
    Settings,
    get_config_file,
    load_config_data,
    load_settings,
    save_config_data,
    save_settings,
)


@pytest.fixture
def config_file(tmp_path):
    return tmp_path / "config.json"


class TestConfigFile:
    def test_default_location(self):
        with patch.dict("os.environ", {CONFIG_DIR_ENV: ""}):
            assert get_config_file().parts[-2:] == (".cleanslim", "config.json")

    def test_env_override(self, tmp_path):
        with patch.dict("os.environ", {CONFIG_DIR_ENV: str(tmp_path)}):
            assert get_config_file() == tmp_path / "config.json"

    def test_missing_file_is_empty(self, config_file):
        assert load_config_data(config_file) == {}

    def test_invalid_json_is_empty(self, config_file):
        config_file.write_text("{not json")
        assert load_config_data(config_file) == {}

    def test_non_object_is_empty(self, config_file):
        config_file.write_text("[1, 2]")
        assert load_config_data(config_file) == {}

    def test_save_creates_directory(self, tmp_path):
        target = tmp_path / "nested" / "config.json"
        assert save_config_data({"a": 1}, target)
        assert json.loads(target.read_text()) == {"a": 1}

    def test_save_failure_returns_false(self, config_file):
        with patch("builtins.open", side_effect=PermissionError("read-only")):
            assert not save_config_data({"a": 1}, config_file)


class TestSettings:
    def test_defaults(self, config_file):
        settings = load_settings(config_file)
        assert settings.min_clean_display_seconds == 0.0
        assert settings.max_clean_workers is None
        assert settings.credit_policy == "pre_scan"

    def test_round_trip_preserves_other_keys(self, config_file):
        config_file.write_text(json.dumps({"selection": {"system_cache": False}}))
        save_settings(Settings(min_clean_display_seconds=1.5, max_clean_workers=2), config_file)

        data = json.loads(config_file.read_text())
        assert data["selection"] == {"system_cache": False}
        settings = load_settings(config_file)
        assert settings.min_clean_display_seconds == 1.5
        assert settings.max_clean_workers == 2

    def test_invalid_settings_fall_back_to_defaults(self, config_file):
        config_file.write_text(json.dumps({"settings": {"credit_policy": "generous"}}))
        assert load_settings(config_file) == Settings()

    def test_negative_delay_rejected(self, config_file):
        config_file.write_text(json.dumps({"settings": {"scan_step_delay": -1}}))
        assert load_settings(config_file).scan_step_delay == 0.0
