"""Tests for SSE delta streams and the dialect parsers."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator

import httpx
import pytest

from termlens.errors import ProviderError
from termlens.streaming.base import ChatStream
from termlens.streaming.sse import (
    open_sse_stream,
    parse_anthropic_event,
    parse_openai_chunk,
)
from termlens.types.messages import StreamEventType

URL = "https://llm.test/v1/chat/completions"


def _chunk(text: str) -> str:
    return json.dumps({"choices": [{"delta": {"content": text}}]})


def _body(*lines: str) -> bytes:
    return "\n".join(lines).encode() + b"\n"


async def _drain(stream: ChatStream) -> list[str]:
    out: list[str] = []
    while await stream.advance():
        out.append(stream.current())
    return out


class _FailingStream(httpx.AsyncByteStream):
    async def __aiter__(self) -> AsyncIterator[bytes]:
        yield f"data: {_chunk('partial')}\n\n".encode()
        raise httpx.ReadError("connection reset")


class TestParseOpenAIChunk:
    def test_delta(self) -> None:
        event = parse_openai_chunk(json.loads(_chunk("hi")))
        assert event is not None
        assert event.type == StreamEventType.DELTA
        assert event.text == "hi"

    @pytest.mark.parametrize("payload", [
        {},
        {"choices": []},
        {"choices": [{"delta": {}}]},
        {"choices": [{"delta": {"content": ""}}]},
        {"choices": [{"delta": {"role": "assistant"}}]},
    ])
    def test_no_text_is_ignored(self, payload: dict) -> None:
        assert parse_openai_chunk(payload) is None

    def test_in_band_error(self) -> None:
        event = parse_openai_chunk({"error": {"message": "quota exceeded"}})
        assert event is not None
        assert event.type == StreamEventType.ERROR
        assert "quota exceeded" in str(event.error)


class TestParseAnthropicEvent:
    def test_text_delta(self) -> None:
        event = parse_anthropic_event({
            "type": "content_block_delta",
            "delta": {"type": "text_delta", "text": "Hello"},
        })
        assert event is not None and event.text == "Hello"

    def test_message_stop(self) -> None:
        event = parse_anthropic_event({"type": "message_stop"})
        assert event is not None and event.type == StreamEventType.DONE

    def test_error_event(self) -> None:
        event = parse_anthropic_event({
            "type": "error",
            "error": {"type": "overloaded_error", "message": "Overloaded"},
        })
        assert event is not None
        assert event.type == StreamEventType.ERROR
        assert isinstance(event.error, ProviderError)
        assert event.error.retryable

    @pytest.mark.parametrize("payload", [
        {"type": "message_start", "message": {}},
        {"type": "content_block_start", "content_block": {"type": "text", "text": ""}},
        {"type": "content_block_delta", "delta": {"type": "input_json_delta"}},
        {"type": "ping"},
    ])
    def test_other_events_ignored(self, payload: dict) -> None:
        assert parse_anthropic_event(payload) is None


class TestSSEStream:
    @pytest.mark.asyncio
    async def test_deltas_then_done(self, mock_client) -> None:
        body = _body(
            ": keep-alive",
            f"data: {_chunk('Hel')}",
            "",
            f"data:{_chunk('lo')}",
            "event: ignored",
            "data: [DONE]",
            f"data: {_chunk('never')}",
        )
        client = mock_client(lambda request: httpx.Response(200, content=body))
        stream = await open_sse_stream(client, URL, {}, parse_openai_chunk, provider="openai")

        assert await _drain(stream) == ["Hel", "lo"]
        assert stream.err() is None
        assert not await stream.advance()
        await stream.close()

    @pytest.mark.asyncio
    async def test_malformed_json_skipped(self, mock_client) -> None:
        body = _body("data: {not json", "data: [1, 2]", f"data: {_chunk('ok')}", "data: [DONE]")
        client = mock_client(lambda request: httpx.Response(200, content=body))
        stream = await open_sse_stream(client, URL, {}, parse_openai_chunk, provider="openai")
        assert await _drain(stream) == ["ok"]
        assert stream.err() is None

    @pytest.mark.asyncio
    async def test_eof_without_done_is_success(self, mock_client) -> None:
        client = mock_client(lambda request: httpx.Response(200, content=_body(f"data: {_chunk('a')}")))
        stream = await open_sse_stream(client, URL, {}, parse_openai_chunk, provider="openai")
        assert await _drain(stream) == ["a"]
        assert stream.err() is None

    @pytest.mark.asyncio
    async def test_anthropic_error_event_terminates(self, mock_client) -> None:
        body = _body(
            'data: {"type":"content_block_delta","delta":{"type":"text_delta","text":"x"}}',
            'data: {"type":"error","error":{"type":"api_error","message":"boom"}}',
            'data: {"type":"content_block_delta","delta":{"type":"text_delta","text":"y"}}',
        )
        client = mock_client(lambda request: httpx.Response(200, content=body))
        stream = await open_sse_stream(client, URL, {}, parse_anthropic_event, provider="anthropic")
        assert await _drain(stream) == ["x"]
        assert isinstance(stream.err(), ProviderError)
        assert "boom" in str(stream.err())

    @pytest.mark.asyncio
    async def test_read_error_is_terminal_provider_error(self, mock_client) -> None:
        client = mock_client(lambda request: httpx.Response(200, stream=_FailingStream()))
        stream = await open_sse_stream(client, URL, {}, parse_openai_chunk, provider="openai")
        assert await _drain(stream) == ["partial"]
        assert isinstance(stream.err(), ProviderError)
        assert "connection reset" in str(stream.err())
        await stream.close()

    @pytest.mark.asyncio
    async def test_close_is_idempotent_and_stops_stream(self, mock_client) -> None:
        body = _body(*(f"data: {_chunk(str(i))}" for i in range(10)))
        client = mock_client(lambda request: httpx.Response(200, content=body))
        stream = await open_sse_stream(client, URL, {}, parse_openai_chunk, provider="openai")
        assert await stream.advance()
        await stream.close()
        await stream.close()
        assert not await stream.advance()

    @pytest.mark.asyncio
    async def test_async_iteration(self, mock_client) -> None:
        body = _body(f"data: {_chunk('a')}", f"data: {_chunk('b')}", "data: [DONE]")
        client = mock_client(lambda request: httpx.Response(200, content=body))
        stream = await open_sse_stream(client, URL, {}, parse_openai_chunk, provider="openai")
        assert [text async for text in stream] == ["a", "b"]


class TestOpenSSEStream:
    @pytest.mark.asyncio
    async def test_sends_body_and_headers(self, mock_client) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, content=b"data: [DONE]\n")

        client = mock_client(handler)
        stream = await open_sse_stream(
            client, URL, {"model": "m", "stream": True}, parse_openai_chunk,
            provider="openai", headers={"Authorization": "Bearer k"},
        )
        await _drain(stream)
        assert seen[0].method == "POST"
        assert seen[0].headers["Authorization"] == "Bearer k"
        assert json.loads(seen[0].content) == {"model": "m", "stream": True}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,retryable", [(401, False), (429, True), (503, True)])
    async def test_error_status_raises(self, mock_client, status: int, retryable: bool) -> None:
        client = mock_client(lambda request: httpx.Response(status, text="nope"))
        with pytest.raises(ProviderError) as exc_info:
            await open_sse_stream(client, URL, {}, parse_openai_chunk, provider="openai")
        assert exc_info.value.status_code == status
        assert exc_info.value.retryable is retryable
        assert "nope" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_connect_error_raises(self, mock_client) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = mock_client(handler)
        with pytest.raises(ProviderError, match="refused"):
            await open_sse_stream(client, URL, {}, parse_openai_chunk, provider="openai")

    @pytest.mark.asyncio
    async def test_timeout_raises(self, mock_client) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        client = mock_client(handler)
        with pytest.raises(ProviderError, match="timeout"):
            await open_sse_stream(client, URL, {}, parse_openai_chunk, provider="openai")
