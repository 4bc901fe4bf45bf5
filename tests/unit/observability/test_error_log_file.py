"""Tests for error log file handler."""

import logging
from unittest.mock import MagicMock

import pytest

from artwork_pipeline.observability import error_log_file
from artwork_pipeline.observability.error_log_file import (
    get_error_log_handler,
    log_invocation_error,
    setup_error_log_file,
)


@pytest.fixture
def mock_config(tmp_path):
    """Create a mock config with error log settings."""
    config = MagicMock()
    config.error_log_file_enabled = True
    config.error_log_file_path = str(tmp_path / "logs" / "errors.log")
    config.error_log_level = "WARNING"
    config.error_log_max_bytes = 1024 * 1024
    config.error_log_backup_count = 3
    return config


@pytest.fixture(autouse=True)
def cleanup_handlers(monkeypatch):
    """Reset the module-level handler and detach it from the root logger."""
    monkeypatch.setattr(error_log_file, "_error_file_handler", None)
    yield
    handler = error_log_file._error_file_handler
    if handler is not None:
        logging.getLogger().removeHandler(handler)
        handler.close()


class TestSetupErrorLogFile:
    def test_creates_log_file_and_directory(self, mock_config, tmp_path):
        handler = setup_error_log_file(mock_config)

        assert handler is not None
        assert (tmp_path / "logs").is_dir()
        assert get_error_log_handler() is handler
        assert handler.level == logging.WARNING

    def test_returns_none_when_disabled(self, mock_config):
        mock_config.error_log_file_enabled = False
        assert setup_error_log_file(mock_config) is None

    def test_idempotent(self, mock_config):
        assert setup_error_log_file(mock_config) is setup_error_log_file(mock_config)


class TestLogInvocationError:
    def test_context_in_message(self, caplog):
        caplog.set_level(logging.ERROR)

        log_invocation_error(
            "removal",
            ValueError("no entry"),
            trace_id="t-9",
            extra={"artwork_id": "art1"},
        )

        [record] = [r for r in caplog.records if r.name == "artwork_pipeline.pipeline.removal"]
        message = record.getMessage()
        assert "operation=removal" in message
        assert "error_type=ValueError" in message
        assert "trace_id=t-9" in message
        assert "artwork_id=art1" in message
        assert "no entry" in message

    def test_written_to_file(self, mock_config, tmp_path):
        handler = setup_error_log_file(mock_config)

        log_invocation_error("creation", "decode failed")
        handler.flush()

        assert "decode failed" in (tmp_path / "logs" / "errors.log").read_text()
