"""Tests for terminal context assembly."""

from __future__ import annotations

from termlens.context.assembler import (
    DEFAULT_CONTEXT_BYTES,
    MAX_CHAT_HISTORY_MESSAGES,
    TRUNCATION_MARKER,
    build_chat_messages,
    build_explain_messages,
    build_terminal_context,
    build_user_prompt,
    limit_lines,
    strip_ansi,
    truncate_output,
)
from termlens.context.prompts import (
    NO_OUTPUT_PLACEHOLDER,
    OUTPUT_SECTION_HEADER,
    PromptMode,
    system_prompt,
)
from termlens.types.messages import ChatMessage, Role
from termlens.types.terminal import TerminalMetadata


class TestStripAnsi:
    def test_csi_and_osc_removed(self) -> None:
        assert strip_ansi(b"start\x1b[31mred\x1b[0m\x1b]0;title\x07end") == "startredend"

    def test_accepts_str(self) -> None:
        assert strip_ansi("start\x1b[31mred\x1b[0m\x1b]0;title\x07end") == "startredend"

    def test_osc_with_st_terminator(self) -> None:
        assert strip_ansi(b"a\x1b]8;;http://x\x1b\\link\x1b]8;;\x1b\\b") == "alinkb"

    def test_carriage_return_becomes_newline(self) -> None:
        assert strip_ansi(b"progress 10%\rprogress 100%") == "progress 10%\nprogress 100%"

    def test_tabs_and_newlines_kept(self) -> None:
        assert strip_ansi(b"a\tb\nc") == "a\tb\nc"

    def test_other_controls_dropped(self) -> None:
        assert strip_ansi(b"bell\x07 back\x08space\x00") == "bell backspace"

    def test_invalid_utf8_dropped(self) -> None:
        assert strip_ansi(b"ok\xff\xfe done") == "ok done"

    def test_unterminated_sequences(self) -> None:
        assert strip_ansi(b"text\x1b[31") == "text"
        assert strip_ansi(b"text\x1b]0;never ends") == "text"
        assert strip_ansi(b"text\x1b") == "text"

    def test_two_byte_escape(self) -> None:
        assert strip_ansi(b"a\x1b7b\x1b8c") == "abc"

    def test_empty(self) -> None:
        assert strip_ansi(b"") == ""


class TestLimitLines:
    def test_keeps_tail(self) -> None:
        lines = [str(i).encode() for i in range(10)]
        assert limit_lines(lines, 3) == [b"7", b"8", b"9"]

    def test_non_positive_keeps_all(self) -> None:
        lines = [b"a", b"b"]
        assert limit_lines(lines, 0) == lines


class TestTruncateOutput:
    def test_no_truncation_when_within_limit(self) -> None:
        assert truncate_output("short", 100) == ("short", False)

    def test_zero_disables_truncation(self) -> None:
        assert truncate_output("x" * 50, 0) == ("x" * 50, False)

    def test_keeps_tail_with_marker(self) -> None:
        output, truncated = truncate_output("a" * 50 + "TAIL", 30)
        assert truncated
        assert output.startswith(TRUNCATION_MARKER)
        assert output.endswith("TAIL")
        assert len(output.encode()) == 30

    def test_tiny_limit_returns_marker_prefix(self) -> None:
        assert truncate_output("x" * 100, 5) == (TRUNCATION_MARKER[:5], True)
        assert truncate_output("x" * 100, len(TRUNCATION_MARKER)) == (TRUNCATION_MARKER, True)

    def test_never_splits_multibyte_characters(self) -> None:
        text = "é" * 40  # two bytes each
        for limit in range(len(TRUNCATION_MARKER) + 1, 60):
            output, truncated = truncate_output(text, limit)
            assert truncated
            assert len(output.encode()) <= limit
            assert set(output[len(TRUNCATION_MARKER):]) <= {"é"}


class TestBuildTerminalContext:
    def test_keeps_last_hundred_lines(self) -> None:
        lines = [f"line {i}".encode() for i in range(150)]
        ctx = build_terminal_context(lines)
        assert ctx.line_count == 100
        assert not ctx.truncated
        assert ctx.output.startswith("line 50\n")
        assert ctx.output.endswith("line 149")

    def test_truncates_to_byte_limit(self) -> None:
        lines = [("x" * 200).encode() for _ in range(120)]
        ctx = build_terminal_context(lines)
        assert ctx.truncated
        assert ctx.output.startswith(TRUNCATION_MARKER)
        assert len(ctx.output.encode()) <= DEFAULT_CONTEXT_BYTES
        assert "note: output truncated" in ctx.user_prompt

    def test_sanitizes_lines(self) -> None:
        ctx = build_terminal_context([b"\x1b[1mbold\x1b[0m", b"plain"])
        assert ctx.output == "bold\nplain"

    def test_mode_selects_system_prompt(self) -> None:
        diag = build_terminal_context([b"x"], mode=PromptMode.DIAGNOSTIC)
        conv = build_terminal_context([b"x"], mode=PromptMode.CONVERSATIONAL)
        assert diag.system_prompt == system_prompt(PromptMode.DIAGNOSTIC)
        assert conv.system_prompt == system_prompt(PromptMode.CONVERSATIONAL)
        assert diag.system_prompt != conv.system_prompt


class TestBuildUserPrompt:
    def test_includes_known_metadata(self) -> None:
        meta = TerminalMetadata(working_dir="/srv/app", last_command="make test", exit_code=2)
        prompt = build_user_prompt(meta, "boom", 1, False)
        assert "cwd: /srv/app" in prompt
        assert "last_command: make test" in prompt
        assert "last_exit_code: 2" in prompt
        assert "output_lines: 1" in prompt
        assert "note: output truncated" not in prompt
        assert prompt.endswith(OUTPUT_SECTION_HEADER + "\nboom")

    def test_omits_unknown_metadata(self) -> None:
        prompt = build_user_prompt(TerminalMetadata(working_dir="  "), "out", 1, False)
        assert "cwd:" not in prompt
        assert "last_command:" not in prompt
        assert "last_exit_code:" not in prompt

    def test_zero_exit_code_is_reported(self) -> None:
        prompt = build_user_prompt(TerminalMetadata(exit_code=0), "out", 1, False)
        assert "last_exit_code: 0" in prompt

    def test_blank_output_placeholder(self) -> None:
        prompt = build_user_prompt(TerminalMetadata(), "  \n", 0, False)
        assert prompt.endswith(NO_OUTPUT_PLACEHOLDER)


class TestMessageBuilders:
    def test_explain_messages(self) -> None:
        messages, ctx = build_explain_messages([b"error: missing"], TerminalMetadata())
        assert [m.role for m in messages] == [Role.SYSTEM, Role.USER]
        assert messages[1].content == ctx.user_prompt
        assert "error: missing" in messages[1].content

    def test_chat_messages_cap_history(self) -> None:
        history = [
            ChatMessage(Role.USER if i % 2 == 0 else Role.ASSISTANT, f"turn {i}")
            for i in range(15)
        ]
        messages = build_chat_messages(history, [b"out"])
        assert messages[0].role == Role.SYSTEM
        assert messages[1].role == Role.DEVELOPER
        assert "out" in messages[1].content
        kept = messages[2:]
        assert len(kept) == MAX_CHAT_HISTORY_MESSAGES
        assert kept[0].content == "turn 5"
        assert kept[-1].content == "turn 14"

    def test_chat_messages_do_not_alias_history(self) -> None:
        history = [ChatMessage(Role.USER, "q")]
        messages = build_chat_messages(history, [])
        messages[-1].content = "changed"
        assert history[0].content == "q"

    def test_chat_uses_conversational_prompt(self) -> None:
        messages = build_chat_messages([ChatMessage(Role.USER, "q")], [])
        assert messages[0].content == system_prompt(PromptMode.CONVERSATIONAL)
