"""OpenAI chat-completions provider using httpx.

Also the base for the OpenAI-compatible backends (OpenRouter, Copilot),
which differ only in defaults, auth and extra headers.
"""

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
    parse_openai_chunk,
)
from termlens.types.messages import ChatMessage, ChatRequest, ChatResponse, ResolvedRequest

DEFAULT_API_URL = "https://api.openai.com/v1"
DEFAULT_MODEL = "gpt-4o"
DEFAULT_TIMEOUT = 30.0
COMPLETIONS_PATH = "/chat/completions"


class OpenAIProvider:
    """OpenAI API provider using httpx."""

    provider_name = "openai"
    # A zero temperature is omitted from the request body
    always_send_temperature = False

    def __init__(
        self,
        api_key: str,
        *,
        api_url: str = DEFAULT_API_URL,
        model: str = DEFAULT_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT,
        headers: dict[str, str] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not api_key.strip():
            raise ValidationError(f"{self.provider_name} api_key is required", field="api_key")
        if not api_url.strip():
            raise ValidationError(f"{self.provider_name} api_url is required", field="api_url")
        self._api_key = api_key.strip()
        self._api_url = api_url.strip().rstrip("/")
        self._model = model.strip()
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
            **(headers or {}),
        }
        self._owns_client = http_client is None
        self._client = http_client or self._create_client()

    @classmethod
    def from_config(cls, config: ProviderConfig) -> OpenAIProvider:
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
        return self.provider_name

    @property
    def timeout(self) -> float:
        return self._timeout

    @property
    def endpoint(self) -> str:
        return self._api_url + COMPLETIONS_PATH

    def prepare(self, request: ChatRequest) -> ResolvedRequest:
        return resolve_request(
            request,
            default_model=self._model,
            default_temperature=self._temperature,
            default_max_tokens=self._max_tokens,
        )

    async def open_stream(self, resolved: ResolvedRequest) -> SSEStream:
        body = self._build_body(resolved, stream=True)
        return await open_sse_stream(
            self._ensure_client(),
            self.endpoint,
            body,
            parse_openai_chunk,
            provider=self.name,
            headers=self._headers,
        )

    async def complete(self, request: ChatRequest) -> ChatResponse:
        resolved = self.prepare(request)
        body = self._build_body(resolved, stream=False)
        try:
            response = await self._ensure_client().post(
                self.endpoint, json=body, headers=self._headers,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            raise ProviderError(
                f"{self.name} API error {status}: {e.response.text[:500]}",
                provider=self.name, status_code=status, retryable=status in RETRYABLE_STATUS,
            ) from e
        except httpx.TimeoutException as e:
            raise ProviderError(f"{self.name} API timeout", provider=self.name) from e
        except httpx.HTTPError as e:
            raise ProviderError(
                f"{self.name} request error: {describe_request_error(e)}", provider=self.name,
            ) from e
        try:
            data = response.json()
        except ValueError as e:
            raise ProviderError(f"{self.name} returned invalid JSON", provider=self.name) from e
        return self._parse_response(data, resolved.model)

    async def close(self) -> None:
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    def _build_body(self, resolved: ResolvedRequest, *, stream: bool) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": resolved.model,
            "messages": self._format_messages(resolved.messages),
            "stream": stream,
        }
        if self.always_send_temperature or resolved.temperature > 0:
            body["temperature"] = resolved.temperature
        if resolved.max_tokens > 0:
            body["max_tokens"] = resolved.max_tokens
        return body

    def _format_messages(self, messages: list[ChatMessage]) -> list[dict[str, Any]]:
        return [{"role": str(msg.role), "content": msg.content} for msg in messages]

    def _parse_response(self, data: dict[str, Any], model: str) -> ChatResponse:
        choices = data.get("choices") or []
        content = ""
        if choices and isinstance(choices[0], dict):
            content = (choices[0].get("message") or {}).get("content") or ""
        return ChatResponse(content=content, model=data.get("model") or model)
