"""
Unit tests for configuration management.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from eventgallery.config import Config, get_config, get_environment, load_env_file, reset_config
from eventgallery.errors import ConfigurationError


class TestConfig:
    """Test cases for Config."""

    def test_get_from_environment(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("BASE_URL", "https://photos.example.com")

        assert Config().get("BASE_URL") == "https://photos.example.com"

    def test_overrides_win(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("BASE_URL", "https://env.example.com")

        assert Config({"BASE_URL": "https://override.example.com"}).get("BASE_URL") == "https://override.example.com"

    def test_empty_value_counts_as_unset(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("GCS_BUCKET_NAME", "")

        assert Config().get("GCS_BUCKET_NAME", "fallback") == "fallback"

    @pytest.mark.parametrize(
        "raw,expected",
        [("true", True), ("1", True), ("YES", True), ("on", True), ("false", False), ("0", False), ("nope", False)],
    )
    def test_bool_cast(self, raw, expected):
        assert Config({"FLAG": raw}).get("FLAG", cast_type=bool) is expected

    def test_int_cast(self):
        assert Config({"MINUTES": "90"}).get("MINUTES", cast_type=int) == 90

    def test_failed_cast_returns_default(self):
        assert Config({"MINUTES": "ninety"}).get("MINUTES", 15, int) == 15

    def test_values_are_cached(self, monkeypatch: pytest.MonkeyPatch):
        config = Config()
        monkeypatch.setenv("BASE_URL", "first")
        assert config.get("BASE_URL") == "first"

        monkeypatch.setenv("BASE_URL", "second")
        assert config.get("BASE_URL") == "first"

        config.clear_cache()
        assert config.get("BASE_URL") == "second"

    def test_get_required(self):
        with pytest.raises(ConfigurationError, match="ACCESS_TOKEN"):
            Config().get_required("ACCESS_TOKEN")

    def test_first(self):
        config = Config({"GOOGLE_CLOUD_PROJECT": "ambient"})

        assert config.first("GCS_PROJECT_ID", "GOOGLE_CLOUD_PROJECT") == "ambient"
        assert config.first("NOT_SET", "ALSO_NOT_SET", default="d") == "d"

    def test_environment_defaults_to_development(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("ENVIRONMENT", raising=False)

        assert get_environment() == "development"

    def test_environment_reads_global_config(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("ENVIRONMENT", "production")

        assert get_environment() == "production"


class TestEnvFile:
    """Test cases for dotenv loading."""

    def test_load_env_file(self, temp_dir: Path):
        env_file = temp_dir / ".env"
        env_file.write_text("EVENTGALLERY_TEST_VALUE=from-file\nENVIRONMENT=from-file\n")

        with patch.dict(os.environ):
            assert load_env_file(env_file) is True

            assert get_config().get("EVENTGALLERY_TEST_VALUE") == "from-file"
            # Variables already set in the process are not overridden.
            assert get_environment() == "test"

    def test_missing_env_file(self, temp_dir: Path):
        assert load_env_file(temp_dir / "missing.env") is False


class TestGlobalConfig:
    """Test cases for the process-wide configuration."""

    def test_singleton(self):
        first = get_config()

        assert get_config() is first
        reset_config()
        assert get_config() is not first
