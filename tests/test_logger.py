"""Tests for logger.py: setup_logging() and JsonFormatter.

Covers:
- CLI mode logging (stderr handler, optional file)
- Background mode logging (file handler only)
- Debug level override and LOG_LEVEL handling
- JSON formatter output
- Third-party logger silencing

Strategy: Mock logging.basicConfig to verify setup_logging passes correct args,
since pytest's log capture plugin interferes with actual basicConfig calls.
"""

import json
import logging
import sys
from unittest.mock import patch

from ariadne_sync.logger import JsonFormatter, setup_logging


def _close(handlers):
    for h in handlers:
        if isinstance(h, logging.FileHandler):
            h.close()


class TestSetupLogging:
    @patch("ariadne_sync.logger.logging.basicConfig")
    def test_cli_mode_logs_to_stderr(self, mock_basic):
        setup_logging(mode="cli")

        handlers = mock_basic.call_args.kwargs["handlers"]
        assert len(handlers) == 1
        assert handlers[0].stream is sys.stderr
        assert mock_basic.call_args.kwargs["force"] is True

    @patch("ariadne_sync.logger.logging.basicConfig")
    def test_background_mode_logs_to_file_only(self, mock_basic, tmp_path):
        log_file = tmp_path / "sync.log"
        setup_logging(mode="background", log_file=str(log_file))

        handlers = mock_basic.call_args.kwargs["handlers"]
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.FileHandler)
        assert handlers[0].baseFilename == str(log_file)
        _close(handlers)

    @patch("ariadne_sync.logger.logging.basicConfig")
    def test_background_mode_uses_log_file_env(
        self, mock_basic, tmp_path, monkeypatch
    ):
        log_file = tmp_path / "env.log"
        monkeypatch.setenv("LOG_FILE", str(log_file))
        setup_logging(mode="background")

        handlers = mock_basic.call_args.kwargs["handlers"]
        assert handlers[0].baseFilename == str(log_file)
        _close(handlers)

    @patch("ariadne_sync.logger.logging.basicConfig")
    def test_cli_mode_with_log_file(self, mock_basic, tmp_path):
        setup_logging(mode="cli", log_file=str(tmp_path / "cli.log"))

        handlers = mock_basic.call_args.kwargs["handlers"]
        assert handlers[0].stream is sys.stderr
        assert isinstance(handlers[1], logging.FileHandler)
        _close(handlers)

    @patch("ariadne_sync.logger.logging.basicConfig")
    def test_debug_beats_env(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(mode="cli", debug=True)
        assert mock_basic.call_args.kwargs["level"] == logging.DEBUG

    @patch("ariadne_sync.logger.logging.basicConfig")
    def test_env_log_level_honored(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        setup_logging(mode="cli")
        assert mock_basic.call_args.kwargs["level"] == logging.WARNING

    @patch("ariadne_sync.logger.logging.basicConfig")
    def test_unknown_env_level_falls_back_to_info(self, mock_basic, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "CHATTY")
        setup_logging(mode="cli")
        assert mock_basic.call_args.kwargs["level"] == logging.INFO

    @patch("ariadne_sync.logger.logging.basicConfig")
    def test_json_format(self, mock_basic):
        setup_logging(mode="cli", debug_format="json")
        handlers = mock_basic.call_args.kwargs["handlers"]
        assert isinstance(handlers[0].formatter, JsonFormatter)

    @patch("ariadne_sync.logger.logging.basicConfig")
    def test_third_party_silenced(self, _mock_basic, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        setup_logging(mode="cli")
        assert logging.getLogger("urllib3").level == logging.WARNING


class TestJsonFormatter:
    def _record(self, msg="hello %s", args=("world",), exc_info=None):
        return logging.LogRecord(
            name="ariadne_sync.sync.engine",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg=msg,
            args=args,
            exc_info=exc_info,
        )

    def test_fields(self):
        entry = json.loads(JsonFormatter().format(self._record()))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "ariadne_sync.sync.engine"
        assert entry["message"] == "hello world"
        assert "time" in entry
        assert "exception" not in entry

    def test_exception_included(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            exc_info = sys.exc_info()
        entry = json.loads(
            JsonFormatter().format(self._record(exc_info=exc_info))
        )
        assert "RuntimeError: boom" in entry["exception"]
