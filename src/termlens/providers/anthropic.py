"""Anthropic messages-API provider using httpx."""

from __future__ import annotations

from typing import Any

import httpx

from termlens.config import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE
from termlens.errors import ProviderError, ValidationError
from termlens.providers.base import ProviderConfig, resolve_request
from termlens.streaming.sse import (
    RETRYABLE_STATUS,
    SSEStream,
    describe_request_error,
    open_sse_stream,
    parse_anthropic_event,
)
from termlens.types.messages import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ResolvedRequest,
    Role,
)

DEFAULT_API_URL = "https://api.anthropic.com/v1"
DEFAULT_MODEL = "claude-3-5-sonnet-20241022"
DEFAULT_TIMEOUT = 60.0
FALLBACK_MAX_TOKENS = 4096
API_VERSION = "2023-06-01"
MESSAGES_PATH = "/messages"


def split_system(messages: list[ChatMessage]) -> tuple[str, list[dict[str, str]]]:
    """Separate instruction messages from conversation turns.

    System and developer messages are joined (blank-line separated) into
    the top-level ``system`` field; everything else becomes a user or
    assistant turn.
    """
    system_parts: list[str] = []
    turns: list[dict[str, str]] = []
    for msg in messages:
        if msg.role.is_instruction:
            if msg.content.strip():
                system_parts.append(msg.content)
            continue
        role = Role.ASSISTANT if msg.role == Role.ASSISTANT else Role.USER
        turns.append({"role": str(role), "content": msg.content})
    return "\n\n".join(system_parts), turns


class AnthropicProvider:
    """Anthropic API provider using httpx."""

    def __init__(
        self,
        api_key: str,
        *,
        api_url: str = DEFAULT_API_URL,
        model: str = DEFAULT_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key.strip():
            raise ValidationError("anthropic api_key is required", field="api_key")
        self._api_key = api_key.strip()
        self._api_url = (api_url.strip() or DEFAULT_API_URL).rstrip("/")
        self._model = model.strip()
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._headers = {
            "x-api-key": self._api_key,
            "anthropic-version": API_VERSION,
            "content-type": "application/json",
        }
        self._owns_client = http_client is None
        self._client = http_client or self._create_client()

    @classmethod
    def from_config(cls, config: ProviderConfig) -> AnthropicProvider:
        s = config.settings
        return cls(
            s.api_key.strip() or (config.credential or ""),
            api_url=s.api_url.strip() or DEFAULT_API_URL,
            model=s.model.strip() or DEFAULT_MODEL,
            temperature=s.temperature,
            max_tokens=s.max_tokens,
            timeout=s.timeout_seconds if s.timeout_seconds > 0 else DEFAULT_TIMEOUT,
        )

    def _create_client(self) -> httpx.AsyncClient:
        """Create a fresh httpx client."""
        return httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))

    def _ensure_client(self) -> httpx.AsyncClient:
        """Return the client, recreating it if closed."""
        if self._client.is_closed and self._owns_client:
            self._client = self._create_client()
        return self._client

    @property
    def name(self) -> str:
        return "anthropic"

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def endpoint(self) -> str:
        return self._api_url + MESSAGES_PATH

    def prepare(self, request: ChatRequest) -> ResolvedRequest:
        resolved = resolve_request(
            request,
            default_model=self._model,
            default_temperature=self._temperature,
            default_max_tokens=self._max_tokens,
        )
        if all(msg.role.is_instruction for msg in resolved.messages):
            raise ValidationError(
                "at least one user or assistant message is required", field="messages",
            )
        if resolved.max_tokens <= 0:
            resolved.max_tokens = FALLBACK_MAX_TOKENS
        return resolved

    async def open_stream(self, resolved: ResolvedRequest) -> SSEStream:
        return await open_sse_stream(
            self._ensure_client(),
            self.endpoint,
            self._build_body(resolved, stream=True),
            parse_anthropic_event,
            provider=self.name,
            headers=self._headers,
        )

    async def complete(self, request: ChatRequest) -> ChatResponse:
        resolved = self.prepare(request)
        try:
            response = await self._ensure_client().post(
                self.endpoint,
                json=self._build_body(resolved, stream=False),
                headers=self._headers,
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise ProviderError(
                f"anthropic API error {status}: {e.response.text[:500]}",
                provider="anthropic", status_code=status, retryable=status in RETRYABLE_STATUS,
            ) from e
        except httpx.TimeoutException as e:
            raise ProviderError("anthropic API timeout", provider="anthropic") from e
        except httpx.HTTPError as e:
            raise ProviderError(
                f"anthropic request error: {describe_request_error(e)}", provider="anthropic",
            ) from e
        except ValueError as e:
            raise ProviderError("anthropic returned invalid JSON", provider="anthropic") from e

        text = "".join(
            block.get("text", "")
            for block in data.get("content") or []
            if isinstance(block, dict) and block.get("type") == "text"
        )
        return ChatResponse(content=text, model=data.get("model") or resolved.model)

    async def close(self) -> None:
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    def _build_body(self, resolved: ResolvedRequest, *, stream: bool) -> dict[str, Any]:
        system, turns = split_system(resolved.messages)
        body: dict[str, Any] = {
            "model": resolved.model,
            "messages": turns,
            "max_tokens": resolved.max_tokens,
        }
        if resolved.temperature:
            body["temperature"] = resolved.temperature
        if system:
            body["system"] = system
        if stream:
            body["stream"] = True
        return body
