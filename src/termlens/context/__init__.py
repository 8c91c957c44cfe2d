"""Prompt context assembly from captured terminal output."""

from termlens.context.assembler import (
    DEFAULT_CONTEXT_BYTES,
    DEFAULT_CONTEXT_LINES,
    MAX_CHAT_HISTORY_MESSAGES,
    TRUNCATION_MARKER,
    build_chat_messages,
    build_explain_messages,
    build_terminal_context,
    build_user_prompt,
    limit_lines,
    sanitize_lines,
    strip_ansi,
    truncate_output,
)
from termlens.context.prompts import PromptMode, system_prompt

__all__ = [
    "DEFAULT_CONTEXT_BYTES",
    "DEFAULT_CONTEXT_LINES",
    "MAX_CHAT_HISTORY_MESSAGES",
    "PromptMode",
    "TRUNCATION_MARKER",
    "build_chat_messages",
    "build_explain_messages",
    "build_terminal_context",
    "build_user_prompt",
    "limit_lines",
    "sanitize_lines",
    "strip_ansi",
    "system_prompt",
    "truncate_output",
]
