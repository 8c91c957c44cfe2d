"""LLM provider protocol and shared request resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from termlens.config import ProviderSettings
from termlens.errors import ValidationError
from termlens.streaming.base import ChatStream
from termlens.types.messages import ChatRequest, ChatResponse, ResolvedRequest
from termlens.types.provider import ProviderType

__all__ = [
    "ChatStream",
    "LLMProvider",
    "ProviderConfig",
    "ProviderInfo",
    "resolve_request",
]


@runtime_checkable
class LLMProvider(Protocol):
    """Protocol for LLM providers.

    ``prepare`` is synchronous and performs all request validation, so a
    bad request fails before any network activity.
    """

    @property
    def name(self) -> str: ...

    @property
    def timeout(self) -> float: ...

    def prepare(self, request: ChatRequest) -> ResolvedRequest: ...

    async def open_stream(self, resolved: ResolvedRequest) -> ChatStream: ...

    async def complete(self, request: ChatRequest) -> ChatResponse: ...

    async def close(self) -> None: ...


@dataclass(slots=True, frozen=True)
class ProviderInfo:
    """Registry metadata for a provider."""

    type: ProviderType
    name: str
    description: str = ""
    auth_method: str = "api_key"
    requires_key: bool = True


@dataclass(slots=True)
class ProviderConfig:
    """Everything a provider factory needs.

    ``credential`` is an opaque token obtained elsewhere (an OAuth access
    token, for example). Providers that accept API keys fall back to it
    when ``settings.api_key`` is blank.
    """

    type: ProviderType
    settings: ProviderSettings = field(default_factory=ProviderSettings)
    credential: str | None = None


def resolve_request(
    request: ChatRequest,
    *,
    default_model: str,
    default_temperature: float,
    default_max_tokens: int,
) -> ResolvedRequest:
    """Apply per-call overrides on top of provider defaults.

    Raises:
        ValidationError: No model could be resolved, or there are no
            messages.
    """
    model = (request.model or "").strip() or default_model.strip()
    if not model:
        raise ValidationError("model is required", field="model")
    if not request.messages:
        raise ValidationError("messages are required", field="messages")

    return ResolvedRequest(
        model=model,
        messages=list(request.messages),
        temperature=(
            request.temperature if request.temperature is not None else default_temperature
        ),
        max_tokens=request.max_tokens if request.max_tokens is not None else default_max_tokens,
    )
