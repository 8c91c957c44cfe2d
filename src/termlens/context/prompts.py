"""System prompt variants for terminal-aware requests."""

from __future__ import annotations

from enum import StrEnum


class PromptMode(StrEnum):
    """Which instructions accompany the terminal context."""

    DIAGNOSTIC = "diagnostic"
    CONVERSATIONAL = "conversational"


FIELD_DEFINITIONS = (
    "Field definitions: cwd is the current working directory; "
    "last_command is the most recent captured command; "
    "last_exit_code is the exit code for last_command; "
    "output_lines is the number of lines in the output block; "
    "output may be truncated when noted."
)

FORMATTING_RULES = (
    "If a metadata field is missing, do not assume or invent it.",
    FIELD_DEFINITIONS,
    "Keep answers concise and use fenced code blocks for commands.",
)

_INSTRUCTIONS: dict[PromptMode, tuple[str, ...]] = {
    PromptMode.DIAGNOSTIC: (
        "You are a terminal assistant.",
        "Use the provided terminal output and metadata to diagnose issues.",
        "If last_command is provided, focus on that command and its output first.",
    ),
    PromptMode.CONVERSATIONAL: (
        "You are a terminal assistant chatting with the user about their shell session.",
        "Use the provided terminal output and metadata as background for your answers.",
        "Refer to last_command and its output when the question is about them.",
    ),
}

_CLOSING: dict[PromptMode, tuple[str, ...]] = {
    PromptMode.DIAGNOSTIC: (
        "Provide concise, actionable suggestions and likely causes.",
        "If you need more information, ask focused questions.",
    ),
    PromptMode.CONVERSATIONAL: (
        "Answer the user's question directly.",
        "If the terminal context is not relevant to the question, ignore it.",
    ),
}

_INTROS: dict[PromptMode, str] = {
    PromptMode.DIAGNOSTIC: "Please help diagnose the terminal issue and suggest fixes.",
    PromptMode.CONVERSATIONAL: "Current terminal session context for this conversation.",
}

OUTPUT_SECTION_HEADER = "Recent output (most recent lines, oldest -> newest):"
NO_OUTPUT_PLACEHOLDER = "<no output captured>"


def system_prompt(mode: PromptMode = PromptMode.DIAGNOSTIC) -> str:
    mode = PromptMode(mode)
    return " ".join((*_INSTRUCTIONS[mode], *FORMATTING_RULES, *_CLOSING[mode]))


def user_prompt_intro(mode: PromptMode = PromptMode.DIAGNOSTIC) -> str:
    return _INTROS[PromptMode(mode)]
