"""Server-sent-event delta streams.

Each ``data: <json>`` line is handed to a dialect parser that maps the
provider's event vocabulary onto a text delta, a terminal marker, or
nothing. Malformed events are skipped; transport failures end the stream.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx

from termlens.errors import ProviderError
from termlens.streaming.base import BaseStream
from termlens.types.messages import StreamEvent, StreamEventType

DONE_MARKER = "[DONE]"
RETRYABLE_STATUS = frozenset({408, 429, 500, 502, 503, 504, 529})

EventParser = Callable[[dict[str, Any]], StreamEvent | None]


def describe_request_error(e: httpx.HTTPError) -> str:
    """Build a descriptive message for httpx errors.

    httpx.ReadTimeout and similar errors often have empty str(e), so fall
    back to the exception type name and include the chained cause.
    """
    msg = str(e) or type(e).__name__
    if e.__cause__ and str(e.__cause__):
        msg = f"{msg} (caused by {type(e.__cause__).__name__}: {e.__cause__})"
    return msg


# =============================================================================
# Dialect parsers
# =============================================================================


def parse_openai_chunk(payload: dict[str, Any]) -> StreamEvent | None:
    """OpenAI chat-completion chunk (also OpenRouter and Copilot)."""
    if error := payload.get("error"):
        message = error.get("message", "") if isinstance(error, dict) else str(error)
        return StreamEvent.failed(ProviderError(f"stream error: {message}", retryable=False))
    choices = payload.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return None
    delta = choices[0].get("delta") or {}
    content = delta.get("content") if isinstance(delta, dict) else None
    if isinstance(content, str) and content:
        return StreamEvent.delta(content)
    return None


def parse_anthropic_event(payload: dict[str, Any]) -> StreamEvent | None:
    """Anthropic messages-API event."""
    match payload.get("type"):
        case "content_block_delta":
            delta = payload.get("delta") or {}
            if delta.get("type") == "text_delta" and delta.get("text"):
                return StreamEvent.delta(delta["text"])
        case "message_stop":
            return StreamEvent.done()
        case "error":
            error = payload.get("error") or {}
            return StreamEvent.failed(ProviderError(
                f"stream error: {error.get('type', 'unknown')}: {error.get('message', '')}",
                provider="anthropic",
                retryable=error.get("type") == "overloaded_error",
            ))
    return None


# =============================================================================
# Stream
# =============================================================================


class SSEStream(BaseStream):
    """Pulls ``data:`` lines from a streaming httpx response."""

    def __init__(
        self,
        response: httpx.Response,
        parser: EventParser,
        *,
        provider: str = "",
    ) -> None:
        super().__init__(provider=provider)
        self._response = response
        self._parser = parser
        self._lines = response.aiter_lines()

    async def advance(self) -> bool:
        if self.finished or self._closed:
            return False
        try:
            async for raw in self._lines:
                line = raw.strip()
                if not line.startswith("data:"):
                    continue
                data = line[5:].strip()
                if data == DONE_MARKER:
                    return self._finish()
                try:
                    payload = json.loads(data)
                except json.JSONDecodeError:
                    continue
                if not isinstance(payload, dict):
                    continue
                event = self._parser(payload)
                if event is None:
                    continue
                if event.type == StreamEventType.DONE:
                    return self._finish()
                if event.type == StreamEventType.ERROR:
                    return self._finish(event.error)
                if event.text:
                    return self._emit(event.text)
        except httpx.HTTPError as e:
            return self._finish(ProviderError(
                f"{self.provider or 'provider'} stream error: {describe_request_error(e)}",
                provider=self.provider,
                retryable=True,
            ))
        return self._finish()

    async def close(self) -> None:
        if self._closed:
            return
        await super().close()
        await self._response.aclose()


async def open_sse_stream(
    client: httpx.AsyncClient,
    url: str,
    body: dict[str, Any],
    parser: EventParser,
    *,
    provider: str,
    headers: dict[str, str] | None = None,
) -> SSEStream:
    """Send a streaming POST and wrap the response.

    Connection failures and non-2xx statuses raise ProviderError; the
    response is closed before raising.
    """
    request = client.build_request("POST", url, json=body, headers=headers)
    try:
        response = await client.send(request, stream=True)
    except httpx.TimeoutException as e:
        raise ProviderError(f"{provider} API timeout", provider=provider, retryable=True) from e
    except httpx.HTTPError as e:
        raise ProviderError(
            f"{provider} request error: {describe_request_error(e)}",
            provider=provider,
            retryable=True,
        ) from e

    if response.status_code >= 400:
        try:
            await response.aread()
            error_body = response.text[:500]
        except httpx.HTTPError:
            error_body = ""
        finally:
            await response.aclose()
        status = response.status_code
        raise ProviderError(
            f"{provider} API error {status}: {error_body}",
            provider=provider,
            status_code=status,
            retryable=status in RETRYABLE_STATUS,
        )

    return SSEStream(response, parser, provider=provider)
