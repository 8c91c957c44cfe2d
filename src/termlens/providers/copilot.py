"""GitHub Copilot provider (OpenAI-compatible API).

Authenticates with a Copilot API token supplied by the caller; obtaining
and refreshing that token happens outside termlens.
"""

from __future__ import annotations

import httpx

from termlens.config import DEFAULT_MAX_TOKENS, DEFAULT_TEMPERATURE
from termlens.errors import ValidationError
from termlens.providers.base import ProviderConfig
from termlens.providers.openai import DEFAULT_TIMEOUT, OpenAIProvider

DEFAULT_API_URL = "https://api.githubcopilot.com"
DEFAULT_MODEL = "gpt-4o"
EDITOR_VERSION = "termlens/1.0"
INTEGRATION_ID = "vscode-chat"


class CopilotProvider(OpenAIProvider):
    """Copilot chat completions."""

    provider_name = "copilot"

    def __init__(
        self,
        token: str,
        *,
        api_url: str = DEFAULT_API_URL,
        model: str = DEFAULT_MODEL,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        timeout: float = DEFAULT_TIMEOUT,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(
            token,
            api_url=api_url,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
            headers={
                "Editor-Version": EDITOR_VERSION,
                "Copilot-Integration-Id": INTEGRATION_ID,
            },
            http_client=http_client,
        )

    @classmethod
    def from_config(cls, config: ProviderConfig) -> CopilotProvider:
        token = (config.credential or "").strip() or config.settings.api_key.strip()
        if not token:
            raise ValidationError(
                "copilot credentials not found, authenticate first", field="credential",
            )
        s = config.settings
        return cls(
            token,
            api_url=s.api_url.strip() or DEFAULT_API_URL,
            model=s.model.strip() or DEFAULT_MODEL,
            temperature=s.temperature,
            max_tokens=s.max_tokens,
            timeout=s.timeout_seconds if s.timeout_seconds > 0 else DEFAULT_TIMEOUT,
        )
