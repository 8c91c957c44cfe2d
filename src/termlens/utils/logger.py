"""Structured logging using structlog.

Logs go to a rotating file so they never interleave with the terminal
session being captured.
"""

from __future__ import annotations

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any

import structlog

MAX_LOG_BYTES = 5 * 1024 * 1024
MAX_LOG_BACKUPS = 5

_LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def parse_log_level(level: str | None) -> int:
    """Map a config level name to a logging level. Unknown names mean INFO."""
    return _LEVELS.get((level or "").strip().lower(), logging.INFO)


def setup_logging(
    *,
    level: str = "info",
    fmt: str = "json",
    log_file: str | Path | None = None,
) -> None:
    """Configure structlog for the application.

    Args:
        level: debug, info, warn or error.
        fmt: ``json`` or ``text``.
        log_file: Rotating log file path. Falls back to stderr when the
            directory cannot be created.
    """
    handler: logging.Handler
    if log_file:
        path = Path(log_file).expanduser()
        try:
            path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
            handler = logging.handlers.RotatingFileHandler(
                path, maxBytes=MAX_LOG_BYTES, backupCount=MAX_LOG_BACKUPS, encoding="utf-8",
            )
        except OSError:
            handler = logging.StreamHandler(sys.stderr)
    else:
        handler = logging.StreamHandler(sys.stderr)

    handler.setFormatter(logging.Formatter("%(message)s"))
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(parse_log_level(level))

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if fmt.strip().lower() == "text":
        processors.append(structlog.dev.ConsoleRenderer(colors=False))
    else:
        processors.append(structlog.processors.JSONRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_default_logging() -> None:
    """Quiet configuration used until ``setup_logging`` runs.

    Only warnings and errors are emitted, through stdlib logging, which
    writes to stderr when no handler is installed. Nothing reaches stdout.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=False),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str = "termlens", **kwargs: Any) -> structlog.stdlib.BoundLogger:
    """Get a structured logger instance."""
    return structlog.get_logger(name, **kwargs)


_LOG_ESCAPES = str.maketrans({"\r": "\\r", "\n": "\\n", "\t": "\\t"})


def sanitize_for_log(text: str) -> str:
    """Escape line breaks and tabs so a value stays on one log line."""
    return text.translate(_LOG_ESCAPES)


class LogPreview:
    """Accumulates at most ``limit`` characters of streamed text for logging."""

    def __init__(self, limit: int) -> None:
        self._limit = limit
        self._parts: list[str] = []
        self._size = 0
        self.truncated = False
        self.total_chars = 0

    def append(self, text: str) -> None:
        self.total_chars += len(text)
        if self.truncated or self._limit <= 0 or not text:
            return
        room = self._limit - self._size
        if len(text) > room:
            text = text[:room]
            self.truncated = True
        self._parts.append(text)
        self._size += len(text)

    def __str__(self) -> str:
        return "".join(self._parts)


if not structlog.is_configured():
    configure_default_logging()
