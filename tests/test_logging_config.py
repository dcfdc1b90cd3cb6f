"""Tests for logging_config.py - logging setup and configuration."""

import logging
import sys
from unittest.mock import MagicMock, patch

import pytest

from ghosttype.logging_config import CONSOLE_FORMAT, DEBUG_CONSOLE_FORMAT, setup_logging


@pytest.fixture
def mock_logger():
    """A fresh, handler-less stand-in for the ``ghosttype`` logger."""
    # Only route the "ghosttype" logger to the mock; pytest's own logging
    # plugin calls logging.getLogger() too and must get the real loggers.
    real_get_logger = logging.getLogger
    mock_get_logger = MagicMock()
    logger = MagicMock(spec=logging.Logger)
    logger.handlers = []
    mock_get_logger.return_value = logger

    def get_logger(name=None):
        if name == "ghosttype":
            return mock_get_logger(name)
        return real_get_logger(name)

    with patch("ghosttype.logging_config.logging.getLogger", side_effect=get_logger):
        yield logger
        mock_get_logger.assert_called_with("ghosttype")


@pytest.fixture
def log_dir(tmp_path, monkeypatch):
    log_dir = tmp_path / "logs"
    monkeypatch.setattr("ghosttype.logging_config.LOG_DIR", log_dir)
    monkeypatch.setattr("ghosttype.logging_config.LOG_FILE", log_dir / "ghosttype.log")
    return log_dir


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_logger_passes_debug_to_file(self, mock_logger, log_dir):
        """The logger itself stays at DEBUG so the file handler sees everything."""
        with patch("ghosttype.logging_config.logging.FileHandler"):
            setup_logging(level=logging.WARNING)

        mock_logger.setLevel.assert_called_once_with(logging.DEBUG)

    def test_console_handler_uses_requested_level(self, mock_logger, log_dir):
        with patch("ghosttype.logging_config.logging.StreamHandler") as mock_stream:
            with patch("ghosttype.logging_config.logging.FileHandler"):
                console = MagicMock()
                mock_stream.return_value = console

                setup_logging(level=logging.WARNING)

        mock_stream.assert_called_once_with(sys.stderr)
        console.setLevel.assert_called_once_with(logging.WARNING)
        formatter = console.setFormatter.call_args[0][0]
        assert formatter._fmt == CONSOLE_FORMAT
        assert formatter.datefmt == "%H:%M:%S"
        mock_logger.addHandler.assert_any_call(console)

    def test_debug_console_shows_threads(self, mock_logger, log_dir):
        """--debug output names the worker thread each line came from."""
        with patch("ghosttype.logging_config.logging.StreamHandler") as mock_stream:
            with patch("ghosttype.logging_config.logging.FileHandler"):
                console = MagicMock()
                mock_stream.return_value = console

                setup_logging(level=logging.DEBUG)

        formatter = console.setFormatter.call_args[0][0]
        assert formatter._fmt == DEBUG_CONSOLE_FORMAT
        assert "%(threadName)s" in formatter._fmt
        assert "%(msecs)03d" in formatter._fmt

    def test_file_handler_logs_debug(self, mock_logger, log_dir):
        with patch("ghosttype.logging_config.logging.FileHandler") as mock_file:
            file_handler = MagicMock()
            mock_file.return_value = file_handler

            setup_logging()

        assert log_dir.is_dir()
        mock_file.assert_called_once_with(log_dir / "ghosttype.log", encoding="utf-8")
        file_handler.setLevel.assert_called_once_with(logging.DEBUG)
        formatter = file_handler.setFormatter.call_args[0][0]
        assert "%(funcName)s:%(lineno)d" in formatter._fmt
        mock_logger.addHandler.assert_any_call(file_handler)

    def test_file_handler_failure_keeps_console(self, mock_logger, log_dir):
        with patch(
            "ghosttype.logging_config.logging.FileHandler",
            side_effect=PermissionError("read-only home"),
        ):
            setup_logging()

        assert mock_logger.addHandler.call_count == 1
        mock_logger.warning.assert_called_once()
        assert "Could not set up file logging" in mock_logger.warning.call_args[0][0]

    def test_handlers_not_added_twice(self, mock_logger, log_dir):
        mock_logger.handlers = [MagicMock()]

        with patch("ghosttype.logging_config.logging.FileHandler") as mock_file:
            result = setup_logging()

        assert result is mock_logger
        mock_logger.addHandler.assert_not_called()
        mock_file.assert_not_called()
