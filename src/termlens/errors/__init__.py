"""Termlens error hierarchy."""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCategory(StrEnum):
    """Category of error for classification and handling."""

    VALIDATION = "validation"
    CONFIGURATION = "configuration"
    PROVIDER = "provider"
    CANCELLATION = "cancellation"
    INTERNAL = "internal"


class TermlensError(Exception):
    """Base error for all termlens exceptions."""

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory = ErrorCategory.INTERNAL,
        retryable: bool = False,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.category = category
        self.retryable = retryable
        self.details: dict[str, Any] = details or {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self)!r}, category={self.category!r})"


class ValidationError(TermlensError):
    """Request or provider settings are unusable.

    Always raised before any network activity.
    """

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message, category=ErrorCategory.VALIDATION, retryable=False)
        self.field = field


class ConfigurationError(TermlensError):
    """Invalid or missing configuration."""

    def __init__(self, message: str) -> None:
        super().__init__(message, category=ErrorCategory.CONFIGURATION, retryable=False)


class ProviderError(TermlensError):
    """Transport-level failure from an LLM provider (network, status, timeout)."""

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        status_code: int | None = None,
        retryable: bool = True,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, category=ErrorCategory.PROVIDER, retryable=retryable, **kwargs)
        self.provider = provider
        self.status_code = status_code


class StreamCancelledError(TermlensError):
    """A stream was cancelled by the consumer or its deadline expired."""

    def __init__(self, message: str = "Stream cancelled", *, timed_out: bool = False) -> None:
        super().__init__(message, category=ErrorCategory.CANCELLATION, retryable=timed_out)
        self.timed_out = timed_out
