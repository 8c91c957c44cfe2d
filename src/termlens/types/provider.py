"""Provider identifiers."""

from __future__ import annotations

from enum import StrEnum


class ProviderType(StrEnum):
    """Supported LLM backends."""

    OPENROUTER = "openrouter"
    OPENAI = "openai"
    COPILOT = "copilot"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"

    @classmethod
    def parse(cls, value: str | None) -> ProviderType | None:
        """Return the matching type, or None for unknown identifiers."""
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            return None
