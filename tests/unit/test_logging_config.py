"""
Unit tests for structured logging helpers.
"""

import logging
from unittest.mock import MagicMock, patch

import pytest
import structlog

from eventgallery.logging_config import (
    ColoredJSONRenderer,
    build_renderer,
    configure_structured_logging,
    get_log_format,
    get_log_level,
    is_development_environment,
    log_admin_action,
    log_performance,
)


class TestLogLevel:
    """Test cases for get_log_level."""

    @pytest.mark.parametrize(
        "value,expected",
        [("debug", logging.DEBUG), ("WARNING", logging.WARNING), ("verbose", logging.INFO)],
    )
    def test_from_environment(self, monkeypatch: pytest.MonkeyPatch, value, expected):
        monkeypatch.setenv("LOG_LEVEL", value)

        assert get_log_level() == expected

    def test_default(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)

        assert get_log_level() == logging.INFO


class TestEnvironmentDetection:
    """Test cases for is_development_environment."""

    def test_test_environment_is_not_development(self):
        assert is_development_environment() is False

    def test_development(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("ENVIRONMENT", "dev")

        assert is_development_environment() is True


class TestLogFormat:
    """Test cases for choosing the output format and renderer."""

    def test_json_outside_development(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.delenv("LOG_FORMAT", raising=False)

        assert get_log_format() == "json"

    def test_console_in_development(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("ENVIRONMENT", "local")
        monkeypatch.delenv("LOG_FORMAT", raising=False)

        assert get_log_format() == "console"

    def test_explicit_format_wins(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("ENVIRONMENT", "development")
        monkeypatch.setenv("LOG_FORMAT", "JSON")

        assert get_log_format() == "json"

    def test_unknown_format_falls_back(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("LOG_FORMAT", "xml")

        assert get_log_format() == "json"

    @pytest.mark.parametrize(
        "log_format,use_colors,expected",
        [
            ("console", True, structlog.dev.ConsoleRenderer),
            ("console", False, structlog.dev.ConsoleRenderer),
            ("json", True, ColoredJSONRenderer),
            ("json", False, structlog.processors.JSONRenderer),
        ],
    )
    def test_build_renderer(self, log_format, use_colors, expected):
        assert isinstance(build_renderer(log_format, use_colors), expected)

    def test_configure_writes_json_to_stderr(self, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture):
        monkeypatch.setenv("LOG_FORMAT", "json")
        monkeypatch.setenv("LOG_LEVEL", "INFO")
        try:
            configure_structured_logging()
            structlog.get_logger("eventgallery.test").info("photo_uploaded", photo_id="abc")
        finally:
            structlog.reset_defaults()
            for handler in logging.getLogger().handlers[:]:
                logging.getLogger().removeHandler(handler)

        captured = capsys.readouterr()
        assert captured.out == ""
        assert '"event": "photo_uploaded"' in captured.err
        assert '"photo_id": "abc"' in captured.err


class TestColoredJSONRenderer:
    """Test cases for ColoredJSONRenderer."""

    def test_plain_output(self):
        renderer = ColoredJSONRenderer(colors=False)

        output = renderer(None, "info", {"event": "photo_uploaded", "level": "info"})

        assert '"event": "photo_uploaded"' in output
        assert "\033[" not in output

    def test_colored_output(self):
        renderer = ColoredJSONRenderer(colors=True)

        output = renderer(None, "error", {"event": "photo_blob_delete_failed", "level": "error"})

        assert output.startswith("\033[")
        assert output.endswith("\033[0m")


class TestLogHelpers:
    """Test cases for event helpers."""

    @patch("eventgallery.logging_config.get_logger")
    def test_log_performance(self, mock_get_logger):
        mock_logger = MagicMock()
        mock_get_logger.return_value = mock_logger

        log_performance("wipe_all", 1.234567, deleted=3)

        mock_logger.info.assert_called_once_with(
            "performance_metric", operation="wipe_all", duration_seconds=1.2346, deleted=3
        )

    @patch("eventgallery.logging_config.get_logger")
    def test_log_admin_action(self, mock_get_logger):
        mock_logger = MagicMock()
        mock_get_logger.return_value = mock_logger

        log_admin_action("wipe_all_started", photos=4)

        mock_logger.warning.assert_called_once_with("admin_action", action="wipe_all_started", photos=4)
