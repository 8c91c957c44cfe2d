"""Provider registry.

The registry is an explicit object: nothing registers itself on import.
``build_default_registry()`` wires up the built-in providers, and callers
pass the resulting registry to whatever needs to construct providers.
"""

from __future__ import annotations

import threading
from collections.abc import Callable

from termlens.config import TermlensConfig
from termlens.errors import ConfigurationError
from termlens.providers.anthropic import AnthropicProvider
from termlens.providers.base import LLMProvider, ProviderConfig, ProviderInfo
from termlens.providers.copilot import CopilotProvider
from termlens.providers.google import GoogleProvider
from termlens.providers.openai import OpenAIProvider
from termlens.providers.openrouter import OpenRouterProvider
from termlens.types.provider import ProviderType
from termlens.utils.logger import get_logger

logger = get_logger(__name__)

ProviderFactory = Callable[[ProviderConfig], LLMProvider]


def parse_provider_type(value: str | None) -> ProviderType | None:
    """Parse a provider identifier, returning None when it is unknown."""
    return ProviderType.parse(value)


def supported_providers() -> list[ProviderType]:
    return list(ProviderType)


class ProviderRegistry:
    """Maps provider types to factories and metadata.

    Safe for concurrent reads. ``freeze()`` makes it read-only once
    start-up wiring is complete.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._factories: dict[ProviderType, ProviderFactory] = {}
        self._info: dict[ProviderType, ProviderInfo] = {}
        self._frozen = False

    @property
    def frozen(self) -> bool:
        return self._frozen

    def register(self, info: ProviderInfo, factory: ProviderFactory) -> None:
        with self._lock:
            if self._frozen:
                raise ConfigurationError(f"cannot register {info.type}: registry is frozen")
            self._factories[info.type] = factory
            self._info[info.type] = info
        logger.debug(
            "provider_register",
            type=str(info.type),
            name=info.name,
            auth_method=info.auth_method,
            requires_key=info.requires_key,
        )

    def freeze(self) -> ProviderRegistry:
        with self._lock:
            self._frozen = True
        return self

    def create(self, config: ProviderConfig) -> LLMProvider:
        """Instantiate the provider for ``config.type``.

        Raises:
            ConfigurationError: The type is not registered.
            ValidationError: The factory rejected the settings.
        """
        with self._lock:
            factory = self._factories.get(config.type)
        if factory is None:
            logger.debug("provider_get_unknown", type=str(config.type))
            raise ConfigurationError(f"unknown provider type: {config.type}")
        logger.debug("provider_get", type=str(config.type))
        return factory(config)

    def create_from_config(
        self,
        config: TermlensConfig,
        *,
        credential: str | None = None,
    ) -> LLMProvider:
        """Create the configured provider, falling back to OpenRouter."""
        provider_type = parse_provider_type(config.llm_provider)
        if provider_type is None:
            logger.warning("provider_unknown_fallback", requested=config.llm_provider)
            provider_type = ProviderType.OPENROUTER
        return self.create(ProviderConfig(
            type=provider_type,
            settings=config.provider_settings(provider_type),
            credential=credential,
        ))

    def list_providers(self) -> list[ProviderInfo]:
        with self._lock:
            return list(self._info.values())

    def info(self, provider_type: ProviderType) -> ProviderInfo | None:
        with self._lock:
            return self._info.get(provider_type)

    def is_registered(self, provider_type: ProviderType) -> bool:
        with self._lock:
            return provider_type in self._factories


BUILTIN_PROVIDERS: list[tuple[ProviderInfo, ProviderFactory]] = [
    (
        ProviderInfo(
            type=ProviderType.OPENROUTER,
            name="OpenRouter",
            description="Access 400+ LLM models through OpenRouter API",
        ),
        OpenRouterProvider.from_config,
    ),
    (
        ProviderInfo(
            type=ProviderType.OPENAI,
            name="OpenAI",
            description="Direct OpenAI API access",
        ),
        OpenAIProvider.from_config,
    ),
    (
        ProviderInfo(
            type=ProviderType.COPILOT,
            name="GitHub Copilot",
            description="Use your GitHub Copilot subscription",
            auth_method="oauth_device",
            requires_key=False,
        ),
        CopilotProvider.from_config,
    ),
    (
        ProviderInfo(
            type=ProviderType.ANTHROPIC,
            name="Anthropic",
            description="Direct Anthropic Claude API access",
        ),
        AnthropicProvider.from_config,
    ),
    (
        ProviderInfo(
            type=ProviderType.GOOGLE,
            name="Google AI",
            description="Direct Google AI (Gemini) API access",
        ),
        GoogleProvider.from_config,
    ),
]


def build_default_registry(*, freeze: bool = True) -> ProviderRegistry:
    """Registry with every built-in provider registered."""
    registry = ProviderRegistry()
    for info, factory in BUILTIN_PROVIDERS:
        registry.register(info, factory)
    return registry.freeze() if freeze else registry
