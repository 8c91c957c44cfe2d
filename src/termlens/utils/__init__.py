"""Shared utilities."""

from termlens.utils.logger import (
    LogPreview,
    configure_default_logging,
    get_logger,
    sanitize_for_log,
    setup_logging,
)

__all__ = [
    "LogPreview",
    "configure_default_logging",
    "get_logger",
    "sanitize_for_log",
    "setup_logging",
]
