"""Terminal context assembly.

Turns raw captured lines plus session metadata into sanitized, bounded
text and the prompt strings sent to a provider. Every function here is
pure: nothing is retained between calls.
"""

from __future__ import annotations

import re
from collections.abc import Sequence

from termlens.context.prompts import (
    NO_OUTPUT_PLACEHOLDER,
    OUTPUT_SECTION_HEADER,
    PromptMode,
    system_prompt,
    user_prompt_intro,
)
from termlens.types.messages import ChatMessage, Role
from termlens.types.terminal import TerminalContext, TerminalMetadata

DEFAULT_CONTEXT_LINES = 100
DEFAULT_CONTEXT_BYTES = 12000
MAX_CHAT_HISTORY_MESSAGES = 10
TRUNCATION_MARKER = "[truncated]\n"

# CSI: ESC [ params... final byte in 0x40-0x7E (runs to end if unterminated).
# OSC: ESC ] ... terminated by BEL or ESC \ (runs to end if unterminated).
# Anything else after ESC: exactly one byte. A lone trailing ESC is dropped.
_ESCAPE_RE = re.compile(
    rb"\x1b\[[^\x40-\x7e]*[\x40-\x7e]?"
    rb"|\x1b\](?:[^\x07\x1b]|\x1b(?!\\))*(?:\x07|\x1b\\)?"
    rb"|\x1b.?",
    re.DOTALL,
)
_CONTROL_RE = re.compile(rb"[\x00-\x08\x0b-\x1f]")


def strip_ansi(data: bytes | str) -> str:
    """Remove terminal escape sequences and control bytes.

    Carriage returns become newlines, tabs and newlines survive, and any
    byte sequence that is not valid UTF-8 is dropped.
    """
    if isinstance(data, str):
        data = data.encode("utf-8", errors="surrogatepass")
    if not data:
        return ""
    cleaned = _ESCAPE_RE.sub(b"", data).replace(b"\r", b"\n")
    cleaned = _CONTROL_RE.sub(b"", cleaned)
    return cleaned.decode("utf-8", errors="ignore")


def limit_lines(lines: Sequence[bytes], max_lines: int = DEFAULT_CONTEXT_LINES) -> list[bytes]:
    if max_lines <= 0 or len(lines) <= max_lines:
        return list(lines)
    return list(lines[-max_lines:])


def sanitize_lines(lines: Sequence[bytes]) -> str:
    return "\n".join(strip_ansi(line) for line in lines)


def truncate_output(output: str, max_bytes: int = DEFAULT_CONTEXT_BYTES) -> tuple[str, bool]:
    """Keep the tail of ``output`` within ``max_bytes`` UTF-8 bytes.

    Returns the (possibly marked) text and whether it was truncated. The
    cut point only ever moves forward, onto the next code point boundary.
    """
    encoded = output.encode("utf-8")
    if max_bytes <= 0 or len(encoded) <= max_bytes:
        return output, False

    if max_bytes <= len(TRUNCATION_MARKER):
        return TRUNCATION_MARKER[:max_bytes], True

    keep = max_bytes - len(TRUNCATION_MARKER)
    start = len(encoded) - keep
    while start < len(encoded) and (encoded[start] & 0xC0) == 0x80:
        start += 1
    return TRUNCATION_MARKER + encoded[start:].decode("utf-8"), True


def build_user_prompt(
    meta: TerminalMetadata,
    output: str,
    line_count: int,
    truncated: bool,
    mode: PromptMode = PromptMode.DIAGNOSTIC,
) -> str:
    working_dir = meta.working_dir.strip()
    last_command = meta.last_command.strip()
    if not output.strip():
        output = NO_OUTPUT_PLACEHOLDER

    parts = [user_prompt_intro(mode), "Terminal metadata (captured fields):"]
    if working_dir:
        parts.append(f"cwd: {working_dir}")
    if last_command:
        parts.append(f"last_command: {last_command}")
    if meta.has_exit_code:
        parts.append(f"last_exit_code: {meta.exit_code}")
    parts.append(f"output_lines: {line_count}")
    if truncated:
        parts.append("note: output truncated")
    parts.append("")
    parts.append(OUTPUT_SECTION_HEADER)
    return "\n".join(parts) + "\n" + output


def build_terminal_context(
    lines: Sequence[bytes],
    meta: TerminalMetadata | None = None,
    *,
    mode: PromptMode = PromptMode.DIAGNOSTIC,
    max_lines: int = DEFAULT_CONTEXT_LINES,
    max_bytes: int = DEFAULT_CONTEXT_BYTES,
) -> TerminalContext:
    """Assemble sanitized output and prompts from captured lines."""
    meta = meta or TerminalMetadata()
    limited = limit_lines(lines, max_lines)
    output, truncated = truncate_output(sanitize_lines(limited), max_bytes)
    return TerminalContext(
        output=output,
        line_count=len(limited),
        truncated=truncated,
        system_prompt=system_prompt(mode),
        user_prompt=build_user_prompt(meta, output, len(limited), truncated, mode),
    )


def build_explain_messages(
    lines: Sequence[bytes],
    meta: TerminalMetadata | None = None,
    **kwargs: int,
) -> tuple[list[ChatMessage], TerminalContext]:
    """System + user messages for a one-shot diagnosis of recent output."""
    ctx = build_terminal_context(lines, meta, mode=PromptMode.DIAGNOSTIC, **kwargs)
    messages = [
        ChatMessage(Role.SYSTEM, ctx.system_prompt),
        ChatMessage(Role.USER, ctx.user_prompt),
    ]
    return messages, ctx


def build_chat_messages(
    history: Sequence[ChatMessage],
    lines: Sequence[bytes],
    meta: TerminalMetadata | None = None,
    *,
    max_history: int = MAX_CHAT_HISTORY_MESSAGES,
    **kwargs: int,
) -> list[ChatMessage]:
    """System prompt, terminal context as a developer message, then history.

    Only the last ``max_history`` history messages are kept.
    """
    if max_history > 0 and len(history) > max_history:
        history = history[-max_history:]
    ctx = build_terminal_context(lines, meta, mode=PromptMode.CONVERSATIONAL, **kwargs)
    return [
        ChatMessage(Role.SYSTEM, ctx.system_prompt),
        ChatMessage(Role.DEVELOPER, ctx.user_prompt),
        *(ChatMessage(m.role, m.content) for m in history),
    ]
