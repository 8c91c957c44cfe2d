"""Tests for StreamHandler."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

import pytest

from termlens.errors import ProviderError
from termlens.providers.mock import MockProvider
from termlens.streaming.handler import StreamHandler, format_event_for_terminal
from termlens.streaming.pump import StreamPump
from termlens.types.messages import ChatMessage, ChatRequest, Role, StreamEvent


async def _events(*events: StreamEvent) -> AsyncIterator[StreamEvent]:
    for event in events:
        yield event


class TestStreamHandlerCollect:
    @pytest.mark.asyncio
    async def test_collects_content(self) -> None:
        seen: list[str] = []
        result = await StreamHandler().collect(
            _events(StreamEvent.delta("a"), StreamEvent.delta("b"), StreamEvent.done()),
            on_delta=seen.append,
        )
        assert result.content == "ab"
        assert result.ok
        assert seen == ["a", "b"]

    @pytest.mark.asyncio
    async def test_error_result(self) -> None:
        error = ProviderError("boom")
        result = await StreamHandler().collect(
            _events(StreamEvent.delta("partial"), StreamEvent.failed(error)),
        )
        assert result.content == "partial"
        assert result.error is error
        assert not result.cancelled
        assert not result.ok

    @pytest.mark.asyncio
    async def test_missing_terminal_means_cancelled(self) -> None:
        result = await StreamHandler().collect(_events(StreamEvent.delta("x")))
        assert result.cancelled
        assert not result.ok

    @pytest.mark.asyncio
    async def test_collects_pumped_stream(self) -> None:
        handle = StreamPump().start(
            MockProvider(chunks=["one ", "two"]),
            ChatRequest(messages=[ChatMessage(Role.USER, "q")]),
        )
        result = await StreamHandler().collect(handle)
        assert result.content == "one two"
        assert result.ok


class TestStreamHandlerListeners:
    @pytest.mark.asyncio
    async def test_listener_events(self) -> None:
        handler = StreamHandler()
        received: list[tuple[str, dict[str, Any]]] = []
        handler.on(lambda event, data: received.append((event, data)))

        await handler.collect(_events(StreamEvent.delta("a"), StreamEvent.done()))

        names = [name for name, _ in received]
        assert names == ["stream.start", "stream.text", "stream.complete"]
        assert received[1][1] == {"content": "a"}

    @pytest.mark.asyncio
    async def test_unsubscribe(self) -> None:
        handler = StreamHandler()
        received: list[str] = []
        unsubscribe = handler.on(lambda event, data: received.append(event))
        unsubscribe()
        unsubscribe()
        await handler.collect(_events(StreamEvent.done()))
        assert received == []

    @pytest.mark.asyncio
    async def test_failing_listener_does_not_break_collection(self) -> None:
        handler = StreamHandler()

        def broken(event: str, data: dict[str, Any]) -> None:
            raise ValueError("listener bug")

        handler.on(broken)
        result = await handler.collect(_events(StreamEvent.delta("x"), StreamEvent.done()))
        assert result.content == "x"


class TestFormatEventForTerminal:
    def test_delta(self) -> None:
        assert format_event_for_terminal(StreamEvent.delta("hi")) == "hi"

    def test_done(self) -> None:
        assert format_event_for_terminal(StreamEvent.done()) == "\n"

    def test_error(self) -> None:
        assert format_event_for_terminal(StreamEvent.failed(ProviderError("bad"))) == "\nError: bad\n"
