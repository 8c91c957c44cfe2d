"""Shared data types."""

from termlens.types.messages import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ResolvedRequest,
    Role,
    StreamEvent,
    StreamEventType,
)
from termlens.types.provider import ProviderType
from termlens.types.terminal import (
    UNKNOWN_EXIT_CODE,
    TerminalContext,
    TerminalMetadata,
)

__all__ = [
    "ChatMessage",
    "ChatRequest",
    "ChatResponse",
    "ProviderType",
    "ResolvedRequest",
    "Role",
    "StreamEvent",
    "StreamEventType",
    "TerminalContext",
    "TerminalMetadata",
    "UNKNOWN_EXIT_CODE",
]
