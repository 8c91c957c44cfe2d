"""Configuration loading and validation.

Settings are read, never written: the config file is owned by the user
(or a setup tool), and termlens only merges it with defaults and
environment variables.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import yaml
from dotenv import load_dotenv

from termlens.errors import ConfigurationError
from termlens.types.provider import ProviderType

USER_DIR_NAME = ".termlens"
CONFIG_FILE_NAMES = ("config.json", "config.yaml", "config.yml")

DEFAULT_PROVIDER = ProviderType.OPENROUTER
DEFAULT_BUFFER_SIZE = 2000
DEFAULT_CONTEXT_LINES = 100
DEFAULT_CONTEXT_BYTES = 12000
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2000

PROVIDER_ENV_VARS: dict[ProviderType, str] = {
    ProviderType.OPENROUTER: "OPENROUTER_API_KEY",
    ProviderType.OPENAI: "OPENAI_API_KEY",
    ProviderType.ANTHROPIC: "ANTHROPIC_API_KEY",
    ProviderType.GOOGLE: "GOOGLE_API_KEY",
    ProviderType.COPILOT: "GITHUB_COPILOT_TOKEN",
}

LOG_LEVELS = ("debug", "info", "warn", "warning", "error")
LOG_FORMATS = ("json", "text")


@dataclass(slots=True)
class ProviderSettings:
    """Per-provider request settings.

    Blank strings and a zero timeout mean "use the provider default".
    """

    api_key: str = ""
    api_url: str = ""
    model: str = ""
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    timeout_seconds: float = 0.0
    http_referer: str = ""
    x_title: str = ""


def _default_providers() -> dict[str, ProviderSettings]:
    return {
        ProviderType.OPENROUTER: ProviderSettings(
            api_url="https://openrouter.ai/api/v1",
            model="google/gemini-2.5-flash",
            timeout_seconds=30.0,
        ),
        ProviderType.OPENAI: ProviderSettings(),
        ProviderType.COPILOT: ProviderSettings(),
        ProviderType.ANTHROPIC: ProviderSettings(),
        ProviderType.GOOGLE: ProviderSettings(),
    }


def default_log_file() -> str:
    return str(get_user_config_dir() / "logs" / "termlens.log")


@dataclass(slots=True)
class TermlensConfig:
    """Merged configuration.

    Priority: overrides > env vars > config file > defaults
    """

    llm_provider: str = DEFAULT_PROVIDER
    providers: dict[str, ProviderSettings] = field(default_factory=_default_providers)
    buffer_size: int = DEFAULT_BUFFER_SIZE
    context_lines: int = DEFAULT_CONTEXT_LINES
    context_bytes: int = DEFAULT_CONTEXT_BYTES
    log_file: str = field(default_factory=default_log_file)
    log_format: str = "json"
    log_level: str = "info"

    def provider_settings(self, provider: str | None = None) -> ProviderSettings:
        key = (provider or self.llm_provider).strip().lower()
        return self.providers.setdefault(key, ProviderSettings())

    def validate(self) -> None:
        """Raise ConfigurationError for the first invalid value found."""
        provider = ProviderType.parse(self.llm_provider)
        if provider is None:
            raise ConfigurationError(f"unsupported LLM provider: {self.llm_provider}")

        settings = self.provider_settings(provider)
        if settings.api_url.strip():
            parsed = urlparse(settings.api_url.strip())
            if not parsed.scheme or not parsed.netloc:
                raise ConfigurationError(
                    f"{provider} api_url must be a valid URL, got: {settings.api_url}"
                )
        if not 0 <= settings.temperature <= 2:
            raise ConfigurationError(
                f"temperature must be between 0 and 2, got: {settings.temperature}"
            )
        if settings.max_tokens <= 0:
            raise ConfigurationError(f"max_tokens must be positive, got: {settings.max_tokens}")
        if settings.timeout_seconds < 0:
            raise ConfigurationError(
                f"timeout_seconds must not be negative, got: {settings.timeout_seconds}"
            )

        if self.buffer_size <= 0:
            raise ConfigurationError(f"buffer_size must be positive, got: {self.buffer_size}")
        if self.context_lines <= 0:
            raise ConfigurationError(f"context_lines must be positive, got: {self.context_lines}")
        if self.context_bytes <= 0:
            raise ConfigurationError(f"context_bytes must be positive, got: {self.context_bytes}")

        if self.log_level.strip() and self.log_level.strip().lower() not in LOG_LEVELS:
            raise ConfigurationError(
                f"log_level must be one of debug, info, warn, error, got: {self.log_level}"
            )
        if self.log_format.strip() and self.log_format.strip().lower() not in LOG_FORMATS:
            raise ConfigurationError(f"log_format must be json or text, got: {self.log_format}")


def get_user_config_dir() -> Path:
    """Get the user-level config directory (~/.termlens/)."""
    return Path.home() / USER_DIR_NAME


def find_config_file(directory: Path | None = None) -> Path | None:
    directory = directory or get_user_config_dir()
    for name in CONFIG_FILE_NAMES:
        candidate = directory / name
        if candidate.exists():
            return candidate
    return None


def load_config_file(path: Path) -> dict[str, Any]:
    """Load a JSON or YAML config file, returning an empty dict if missing.

    A file that exists but cannot be parsed is a ConfigurationError rather
    than silently ignored.
    """
    if not path.exists():
        return {}
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"failed to read config {path}: {e}") from e
    try:
        if path.suffix in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"failed to parse config {path}: {e}") from e
    return data if isinstance(data, dict) else {}


def load_config(
    path: str | Path | None = None,
    *,
    overrides: dict[str, Any] | None = None,
) -> TermlensConfig:
    """Load configuration from all sources with proper priority.

    Priority: overrides > env vars > config file > defaults
    """
    load_dotenv()
    config = TermlensConfig()

    config_path = Path(path).expanduser() if path else find_config_file()
    if config_path is not None:
        _apply_dict(config, load_config_file(config_path))

    # Env vars only fill in keys the file left blank
    for provider, env_var in PROVIDER_ENV_VARS.items():
        settings = config.provider_settings(provider)
        if not settings.api_key and (api_key := os.environ.get(env_var)):
            settings.api_key = api_key

    if provider := os.environ.get("TERMLENS_PROVIDER"):
        config.llm_provider = provider
    if level := os.environ.get("TERMLENS_LOG_LEVEL"):
        config.log_level = level

    _apply_dict(config, overrides or {})
    return config


_TOP_LEVEL_FIELDS: dict[str, tuple[str, type]] = {
    "llm_provider": ("llm_provider", str),
    "provider": ("llm_provider", str),
    "buffer_size": ("buffer_size", int),
    "context_lines": ("context_lines", int),
    "context_bytes": ("context_bytes", int),
    "log_file": ("log_file", str),
    "log_format": ("log_format", str),
    "log_level": ("log_level", str),
}

_PROVIDER_FIELDS: dict[str, tuple[str, type]] = {
    "api_key": ("api_key", str),
    "api_url": ("api_url", str),
    "model": ("model", str),
    "temperature": ("temperature", float),
    "max_tokens": ("max_tokens", int),
    "timeout_seconds": ("timeout_seconds", float),
    "api_timeout_seconds": ("timeout_seconds", float),
    "http_referer": ("http_referer", str),
    "x_title": ("x_title", str),
}

_KIND_NAMES = {str: "a string", int: "an integer", float: "a number"}


def _coerce(key: str, value: Any, kind: type) -> Any:
    """Convert a file or override value to the field's type.

    Numeric strings such as ``"0.5"`` are accepted; anything that does not
    convert cleanly is a ConfigurationError.
    """
    error = ConfigurationError(f"{key} must be {_KIND_NAMES[kind]}, got: {value!r}")
    if kind is str:
        if isinstance(value, (dict, list)):
            raise error
        return str(value)
    if isinstance(value, (bool, dict, list)):
        raise error
    if kind is int and isinstance(value, float) and not value.is_integer():
        raise error
    try:
        return kind(value)
    except (TypeError, ValueError) as e:
        raise error from e


def _apply_dict(config: TermlensConfig, data: dict[str, Any]) -> None:
    """Apply dictionary values to config, only for known fields."""
    for key, (attr, kind) in _TOP_LEVEL_FIELDS.items():
        if key in data and data[key] is not None:
            setattr(config, attr, _coerce(key, data[key], kind))

    providers = data.get("providers") or {}
    if not isinstance(providers, dict):
        raise ConfigurationError("providers must be a mapping of provider name to settings")
    for name, values in providers.items():
        if not isinstance(values, dict):
            continue
        settings = config.provider_settings(str(name))
        for key, (attr, kind) in _PROVIDER_FIELDS.items():
            if key in values and values[key] is not None:
                setattr(settings, attr, _coerce(f"{name}.{key}", values[key], kind))
