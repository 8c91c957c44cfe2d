"""LLM provider adapters."""

from termlens.providers.base import (
    ChatStream,
    LLMProvider,
    ProviderConfig,
    ProviderInfo,
    resolve_request,
)
from termlens.providers.mock import MockProvider
from termlens.providers.registry import (
    ProviderRegistry,
    build_default_registry,
    parse_provider_type,
    supported_providers,
)

__all__ = [
    "ChatStream",
    "LLMProvider",
    "MockProvider",
    "ProviderConfig",
    "ProviderInfo",
    "ProviderRegistry",
    "build_default_registry",
    "parse_provider_type",
    "resolve_request",
    "supported_providers",
]
