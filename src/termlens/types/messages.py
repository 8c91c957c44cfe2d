"""Core message types for LLM communication."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum


class Role(StrEnum):
    """Message role in a conversation."""

    SYSTEM = "system"
    DEVELOPER = "developer"
    USER = "user"
    ASSISTANT = "assistant"

    @classmethod
    def parse(cls, value: str | Role | None) -> Role:
        """Map any role string onto a Role. Unknown or blank roles become USER."""
        if isinstance(value, Role):
            return value
        normalized = (value or "").strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            return cls.USER

    @property
    def is_instruction(self) -> bool:
        """System and developer messages carry instructions, not turns."""
        return self in (Role.SYSTEM, Role.DEVELOPER)


class StreamEventType(StrEnum):
    """Type of event delivered by a stream."""

    DELTA = "delta"
    DONE = "done"
    ERROR = "error"


@dataclass(slots=True)
class ChatMessage:
    """A single conversation message."""

    role: Role
    content: str

    def __post_init__(self) -> None:
        self.role = Role.parse(self.role)


@dataclass
class ChatRequest:
    """Input to a chat completion.

    ``None`` for model, temperature or max_tokens means "use the provider
    default".
    """

    messages: list[ChatMessage] = field(default_factory=list)
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None


@dataclass(slots=True)
class ResolvedRequest:
    """A request with every parameter resolved against provider defaults."""

    model: str
    messages: list[ChatMessage]
    temperature: float
    max_tokens: int


@dataclass(slots=True)
class ChatResponse:
    """Normalized non-streaming response."""

    content: str
    model: str = ""


@dataclass(frozen=True, slots=True)
class StreamEvent:
    """One event of a stream: a text delta or a terminal marker."""

    type: StreamEventType
    text: str = ""
    error: BaseException | None = None

    @classmethod
    def delta(cls, text: str) -> StreamEvent:
        return cls(StreamEventType.DELTA, text=text)

    @classmethod
    def done(cls) -> StreamEvent:
        return cls(StreamEventType.DONE)

    @classmethod
    def failed(cls, error: BaseException) -> StreamEvent:
        return cls(StreamEventType.ERROR, error=error)

    @property
    def is_terminal(self) -> bool:
        return self.type != StreamEventType.DELTA
