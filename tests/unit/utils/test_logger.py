"""Tests for logging helpers."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest
import structlog

from termlens.utils.logger import (
    LogPreview,
    configure_default_logging,
    get_logger,
    parse_log_level,
    sanitize_for_log,
    setup_logging,
)


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    configure_default_logging()


class TestParseLogLevel:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("debug", logging.DEBUG),
            ("WARN", logging.WARNING),
            ("warning", logging.WARNING),
            (" error ", logging.ERROR),
            ("", logging.INFO),
            ("chatty", logging.INFO),
            (None, logging.INFO),
        ],
    )
    def test_levels(self, name: str | None, expected: int) -> None:
        assert parse_log_level(name) == expected


class TestSanitizeForLog:
    def test_escapes_line_breaks(self) -> None:
        assert sanitize_for_log("a\nb\r\tc") == "a\\nb\\r\\tc"

    def test_plain_text_unchanged(self) -> None:
        assert sanitize_for_log("plain") == "plain"


class TestLogPreview:
    def test_under_limit(self) -> None:
        preview = LogPreview(10)
        preview.append("abc")
        preview.append("def")
        assert str(preview) == "abcdef"
        assert not preview.truncated
        assert preview.total_chars == 6

    def test_truncates_at_limit(self) -> None:
        preview = LogPreview(5)
        preview.append("abc")
        preview.append("defgh")
        preview.append("ijk")
        assert str(preview) == "abcde"
        assert preview.truncated
        assert preview.total_chars == 11

    def test_zero_limit_keeps_nothing(self) -> None:
        preview = LogPreview(0)
        preview.append("abc")
        assert str(preview) == ""
        assert preview.total_chars == 3


@pytest.mark.usefixtures("restore_logging")
class TestSetupLogging:
    def test_json_file(self, tmp_path: Path) -> None:
        log_file = tmp_path / "logs" / "termlens.log"
        setup_logging(level="debug", fmt="json", log_file=log_file)
        get_logger("termlens.test").info("stream_done", provider="mock", chunks=3)
        for handler in logging.getLogger().handlers:
            handler.flush()

        record = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert record["event"] == "stream_done"
        assert record["provider"] == "mock"
        assert record["level"] == "info"

    def test_level_filters(self, tmp_path: Path) -> None:
        log_file = tmp_path / "termlens.log"
        setup_logging(level="error", fmt="text", log_file=log_file)
        get_logger("termlens.test").info("hidden")
        assert "hidden" not in log_file.read_text()

    def test_stderr_without_file(self) -> None:
        setup_logging(level="info")
        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0], logging.StreamHandler)
        assert logging.getLogger().level == logging.INFO


@pytest.mark.usefixtures("restore_logging")
class TestDefaultLogging:
    def test_info_suppressed(self, capsys: pytest.CaptureFixture[str]) -> None:
        structlog.reset_defaults()
        configure_default_logging()
        get_logger("termlens.test").info("provider_register", name="mock")
        captured = capsys.readouterr()
        assert "provider_register" not in captured.out
        assert "provider_register" not in captured.err

    def test_warnings_go_through_stdlib(self, caplog: pytest.LogCaptureFixture) -> None:
        configure_default_logging()
        with caplog.at_level(logging.WARNING, logger="termlens.test"):
            get_logger("termlens.test").warning("config_ignored", path="x.yaml")
        assert any("config_ignored" in r.getMessage() for r in caplog.records)
        assert all(r.levelno >= logging.WARNING for r in caplog.records)

    def test_import_leaves_structlog_configured(self) -> None:
        configure_default_logging()
        assert structlog.is_configured()
