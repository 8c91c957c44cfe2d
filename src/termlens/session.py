"""Terminal session: captured output plus shell metadata.

The session is the seam between whatever produces terminal output (a PTY
reader, a pipe) and the LLM side: it owns the capture buffer, tracks the
last command, and turns "explain this" or a chat turn into a stream.
"""

from __future__ import annotations

from collections.abc import Sequence

from termlens.capture.buffer import CaptureBuffer
from termlens.config import TermlensConfig
from termlens.context.assembler import (
    DEFAULT_CONTEXT_BYTES,
    DEFAULT_CONTEXT_LINES,
    build_chat_messages,
    build_explain_messages,
)
from termlens.providers.base import LLMProvider
from termlens.streaming.pump import StreamHandle, StreamPump
from termlens.types.messages import ChatMessage, ChatRequest
from termlens.types.terminal import UNKNOWN_EXIT_CODE, TerminalMetadata
from termlens.utils.logger import get_logger

logger = get_logger(__name__)


class TerminalSession:
    """Captured terminal state and the entry points that query an LLM."""

    def __init__(
        self,
        provider: LLMProvider,
        *,
        buffer: CaptureBuffer | None = None,
        pump: StreamPump | None = None,
        context_lines: int = DEFAULT_CONTEXT_LINES,
        context_bytes: int = DEFAULT_CONTEXT_BYTES,
    ) -> None:
        self.provider = provider
        self.buffer = buffer or CaptureBuffer()
        self.metadata = TerminalMetadata()
        self._pump = pump or StreamPump()
        self._context_lines = context_lines
        self._context_bytes = context_bytes
        self._partial = bytearray()

    @classmethod
    def from_config(cls, provider: LLMProvider, config: TermlensConfig) -> TerminalSession:
        return cls(
            provider,
            buffer=CaptureBuffer(config.buffer_size),
            context_lines=config.context_lines,
            context_bytes=config.context_bytes,
        )

    # -------------------------------------------------------------------
    # Capture
    # -------------------------------------------------------------------

    def feed(self, data: bytes) -> None:
        """Append raw output, storing each completed line in the buffer.

        A trailing fragment without a newline is held until the next
        ``feed`` or ``flush``. One ``\\r`` before each newline is dropped,
        so PTY (CRLF) output is stored as plain lines.
        """
        self._partial.extend(data)
        *complete, rest = bytes(self._partial).split(b"\n")
        for line in complete:
            self.buffer.write(line.removesuffix(b"\r"))
        self._partial = bytearray(rest)

    def flush(self) -> None:
        """Store any pending partial line."""
        if self._partial:
            self.buffer.write(bytes(self._partial).removesuffix(b"\r"))
            self._partial.clear()

    def record_command(
        self,
        command: str,
        exit_code: int = UNKNOWN_EXIT_CODE,
        cwd: str | None = None,
    ) -> None:
        self.metadata.last_command = command.strip()
        self.metadata.exit_code = exit_code
        if cwd is not None:
            self.metadata.working_dir = cwd
        logger.debug(
            "command_recorded",
            command=self.metadata.last_command,
            exit_code=exit_code,
            buffered_lines=self.buffer.size(),
        )

    # -------------------------------------------------------------------
    # LLM entry points
    # -------------------------------------------------------------------

    def explain(self, *, timeout: float | None = None) -> StreamHandle:
        """Stream a diagnosis of the recent output.

        Raises:
            ValidationError: The provider rejected the request.
        """
        messages, ctx = build_explain_messages(
            self.buffer.get_last_n(self._context_lines),
            self.metadata,
            max_lines=self._context_lines,
            max_bytes=self._context_bytes,
        )
        logger.info(
            "explain_start",
            provider=self.provider.name,
            output_lines=ctx.line_count,
            truncated=ctx.truncated,
            has_exit_code=self.metadata.has_exit_code,
        )
        return self._pump.start(self.provider, ChatRequest(messages=messages), timeout=timeout)

    def chat(
        self,
        history: Sequence[ChatMessage],
        *,
        timeout: float | None = None,
    ) -> StreamHandle:
        """Stream the next assistant turn of a conversation about the terminal."""
        messages = build_chat_messages(
            history,
            self.buffer.get_last_n(self._context_lines),
            self.metadata,
            max_lines=self._context_lines,
            max_bytes=self._context_bytes,
        )
        logger.info(
            "chat_start",
            provider=self.provider.name,
            history_messages=len(history),
            sent_messages=len(messages),
        )
        return self._pump.start(self.provider, ChatRequest(messages=messages), timeout=timeout)
