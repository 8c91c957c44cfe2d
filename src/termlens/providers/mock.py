"""Mock LLM provider for testing."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from termlens.providers.base import resolve_request
from termlens.streaming.base import BaseStream
from termlens.types.messages import ChatRequest, ChatResponse, ResolvedRequest


class ScriptedStream(BaseStream):
    """Replays a fixed list of deltas, then finishes (or fails)."""

    def __init__(
        self,
        chunks: list[str],
        *,
        error: BaseException | None = None,
        delay: float = 0.0,
        hang: bool = False,
    ) -> None:
        super().__init__(provider="mock")
        self._chunks = list(chunks)
        self._index = 0
        self._error = error
        self._delay = delay
        self._hang = hang
        self.close_count = 0

    async def advance(self) -> bool:
        if self.finished or self._closed:
            return False
        if self._index < len(self._chunks):
            if self._delay:
                await asyncio.sleep(self._delay)
            text = self._chunks[self._index]
            self._index += 1
            return self._emit(text)
        if self._hang:
            await asyncio.Event().wait()
        return self._finish(self._error)

    async def close(self) -> None:
        self.close_count += 1
        await super().close()


@dataclass
class MockProvider:
    """Mock LLM provider for testing.

    ``hang=True`` blocks after the scripted chunks until cancelled, which
    is how deadline and cancellation behaviour is exercised.
    """

    chunks: list[str] = field(default_factory=lambda: ["Mock ", "response"])
    error: BaseException | None = None
    open_error: BaseException | None = None
    delay: float = 0.0
    hang: bool = False
    model: str = "mock-model"
    temperature: float = 0.7
    max_tokens: int = 2000
    timeout: float = 30.0
    call_history: list[ResolvedRequest] = field(default_factory=list)
    streams: list[ScriptedStream] = field(default_factory=list)
    closed: bool = False

    @property
    def name(self) -> str:
        return "mock"

    @property
    def call_count(self) -> int:
        return len(self.call_history)

    def prepare(self, request: ChatRequest) -> ResolvedRequest:
        return resolve_request(
            request,
            default_model=self.model,
            default_temperature=self.temperature,
            default_max_tokens=self.max_tokens,
        )

    async def open_stream(self, resolved: ResolvedRequest) -> ScriptedStream:
        self.call_history.append(resolved)
        if self.open_error is not None:
            raise self.open_error
        stream = ScriptedStream(self.chunks, error=self.error, delay=self.delay, hang=self.hang)
        self.streams.append(stream)
        return stream

    async def complete(self, request: ChatRequest) -> ChatResponse:
        resolved = self.prepare(request)
        self.call_history.append(resolved)
        if self.open_error is not None:
            raise self.open_error
        return ChatResponse(content="".join(self.chunks), model=resolved.model)

    async def close(self) -> None:
        self.closed = True
