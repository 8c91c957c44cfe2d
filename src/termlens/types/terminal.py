"""Terminal session types fed into prompt assembly."""

from __future__ import annotations

from dataclasses import dataclass

UNKNOWN_EXIT_CODE = -1


@dataclass(slots=True)
class TerminalMetadata:
    """Shell context captured alongside the output."""

    working_dir: str = ""
    last_command: str = ""
    exit_code: int = UNKNOWN_EXIT_CODE

    @property
    def has_exit_code(self) -> bool:
        return self.exit_code >= 0


@dataclass(slots=True)
class TerminalContext:
    """Sanitized output plus the two rendered prompts."""

    output: str
    line_count: int
    truncated: bool
    system_prompt: str
    user_prompt: str
