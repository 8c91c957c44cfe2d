"""Google Gemini provider using the google-genai SDK.

The SDK exposes streaming as an async iterator of responses, bridged onto
the pull-based stream contract by IteratorStream. Responses may carry the
full text so far, so they pass through a SnapshotDiffer.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any

from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from termlens.config import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE
from termlens.errors import ProviderError, ValidationError
from termlens.providers.base import ProviderConfig, resolve_request
from termlens.streaming.iterator import IteratorStream
from termlens.streaming.snapshot import SnapshotDiffer
from termlens.streaming.sse import RETRYABLE_STATUS
from termlens.types.messages import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ResolvedRequest,
    Role,
)
from termlens.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_TIMEOUT = 60.0


def extract_visible_text(response: Any) -> str:
    """Join the text parts of the first candidate, skipping thought parts."""
    candidates = getattr(response, "candidates", None) or []
    if not candidates or candidates[0] is None:
        return ""
    content = candidates[0].content
    if content is None or not content.parts:
        return ""
    return "".join(
        part.text for part in content.parts
        if part is not None and not part.thought and part.text
    )


def build_contents(
    messages: list[ChatMessage],
) -> tuple[str, list[genai_types.Content]]:
    """Split messages into a system instruction and conversation contents.

    System messages come first in the instruction, then developer messages.
    """
    system_parts: list[str] = []
    developer_parts: list[str] = []
    contents: list[genai_types.Content] = []
    for msg in messages:
        match msg.role:
            case Role.SYSTEM:
                if msg.content.strip():
                    system_parts.append(msg.content.strip())
            case Role.DEVELOPER:
                if msg.content.strip():
                    developer_parts.append(msg.content.strip())
            case Role.ASSISTANT:
                contents.append(genai_types.Content(
                    role="model", parts=[genai_types.Part(text=msg.content)],
                ))
            case _:
                contents.append(genai_types.Content(
                    role="user", parts=[genai_types.Part(text=msg.content)],
                ))
    return "\n\n".join(system_parts + developer_parts), contents


def map_genai_error(error: Exception) -> BaseException:
    """Convert SDK exceptions into ProviderError."""
    if isinstance(error, genai_errors.APIError):
        status = error.code if isinstance(error.code, int) else None
        return ProviderError(
            f"google API error {status}: {error.message or error}",
            provider="google",
            status_code=status,
            retryable=status in RETRYABLE_STATUS,
        )
    return ProviderError(f"google stream error: {error}", provider="google")


class GoogleProvider:
    """Gemini via the native SDK."""

    def __init__(
        self,
        api_key: str,
        *,
        model: str = DEFAULT_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT,
        client: genai.Client | None = None,
    ) -> None:
        if not api_key.strip() and client is None:
            raise ValidationError("google api_key is required", field="api_key")
        self._model = model.strip()
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._timeout = timeout
        self._client = client or genai.Client(api_key=api_key.strip())
        logger.debug("google_provider_ready", model=self._model, timeout_seconds=timeout)

    @classmethod
    def from_config(cls, config: ProviderConfig) -> GoogleProvider:
        s = config.settings
        return cls(
            s.api_key,
            model=s.model.strip() or DEFAULT_MODEL,
            temperature=s.temperature,
            max_tokens=s.max_tokens,
            timeout=s.timeout_seconds if s.timeout_seconds > 0 else DEFAULT_TIMEOUT,
        )

    @property
    def name(self) -> str:
        return "google"

    @property
    def timeout(self) -> float:
        return self._timeout

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
        return resolved

    async def open_stream(self, resolved: ResolvedRequest) -> IteratorStream:
        system, contents = build_contents(resolved.messages)
        config = self._build_config(resolved, system)

        async def open_iterator() -> AsyncIterator[genai_types.GenerateContentResponse]:
            return await self._client.aio.models.generate_content_stream(
                model=resolved.model, contents=contents, config=config,
            )

        stream = IteratorStream(
            open_iterator,
            extract_visible_text,
            differ=SnapshotDiffer(),
            error_mapper=map_genai_error,
            provider=self.name,
        )
        stream.start()
        return stream

    async def complete(self, request: ChatRequest) -> ChatResponse:
        resolved = self.prepare(request)
        system, contents = build_contents(resolved.messages)
        try:
            response = await self._client.aio.models.generate_content(
                model=resolved.model,
                contents=contents,
                config=self._build_config(resolved, system),
            )
        except genai_errors.APIError as e:
            raise map_genai_error(e) from e
        return ChatResponse(content=extract_visible_text(response), model=resolved.model)

    async def close(self) -> None:
        await self._client.aio.aclose()

    def _build_config(
        self, resolved: ResolvedRequest, system: str,
    ) -> genai_types.GenerateContentConfig:
        # Thinking disabled so planning text never reaches the terminal
        kwargs: dict[str, Any] = {
            "temperature": resolved.temperature,
            "thinking_config": genai_types.ThinkingConfig(
                include_thoughts=False, thinking_budget=0,
            ),
        }
        if system:
            kwargs["system_instruction"] = system
        if resolved.max_tokens > 0:
            kwargs["max_output_tokens"] = resolved.max_tokens
        return genai_types.GenerateContentConfig(**kwargs)
