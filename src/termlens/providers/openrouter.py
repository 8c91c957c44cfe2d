"""OpenRouter provider (OpenAI-compatible API)."""

from __future__ import annotations

import httpx

from termlens.config import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE
from termlens.errors import ValidationError
from termlens.providers.base import ProviderConfig
from termlens.providers.openai import DEFAULT_TIMEOUT, OpenAIProvider
from termlens.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_API_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "google/gemini-2.5-flash"


class OpenRouterProvider(OpenAIProvider):
    """OpenRouter gateway. Unlike OpenAI, the model must be configured."""

    provider_name = "openrouter"
    always_send_temperature = True

    def __init__(
        self,
        api_key: str,
        *,
        api_url: str = DEFAULT_API_URL,
        model: str = DEFAULT_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT,
        http_referer: str = "",
        x_title: str = "",
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        if not model.strip():
            raise ValidationError("openrouter model is required", field="model")
        headers: dict[str, str] = {}
        if http_referer.strip():
            headers["HTTP-Referer"] = http_referer.strip()
        if x_title.strip():
            headers["X-Title"] = x_title.strip()
        super().__init__(
            api_key,
            api_url=api_url,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            headers=headers,
            http_client=http_client,
        )
        logger.debug(
            "openrouter_provider_ready",
            api_url=self._api_url,
            model=self._model,
            timeout_seconds=self._timeout,
        )

    @classmethod
    def from_config(cls, config: ProviderConfig) -> OpenRouterProvider:
        s = config.settings
        return cls(
            s.api_key,
            api_url=s.api_url,
            model=s.model,
            temperature=s.temperature,
            max_tokens=s.max_tokens,
            timeout=s.timeout_seconds if s.timeout_seconds > 0 else DEFAULT_TIMEOUT,
            http_referer=s.http_referer,
            x_title=s.x_title,
        )
