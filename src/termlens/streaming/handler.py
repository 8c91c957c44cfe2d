"""Stream collection.

Consumes a StreamHandle, accumulating deltas into a StreamResult while
optionally forwarding each one to a callback (typically a renderer).
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from typing import Any

from termlens.types.messages import StreamEvent, StreamEventType
from termlens.utils.logger import get_logger

logger = get_logger(__name__)


# =============================================================================
# Types
# =============================================================================


@dataclass
class StreamResult:
    """Outcome of a fully consumed stream."""

    content: str = ""
    error: BaseException | None = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None and not self.cancelled


StreamEventListener = Callable[[str, dict[str, Any]], None]
DeltaCallback = Callable[[str], None]


# =============================================================================
# Stream Handler
# =============================================================================


class StreamHandler:
    """Collects streamed deltas and notifies listeners.

    Listener events: ``stream.start``, ``stream.text``, ``stream.error``
    and ``stream.complete``.
    """

    def __init__(self) -> None:
        self._listeners: list[StreamEventListener] = []

    async def collect(
        self,
        events: AsyncIterator[StreamEvent],
        on_delta: DeltaCallback | None = None,
    ) -> StreamResult:
        """Drain a stream into a StreamResult.

        A stream that ends without a terminal event was cancelled.
        """
        parts: list[str] = []
        result = StreamResult(cancelled=True)
        self._emit("stream.start", {})

        async for event in events:
            match event.type:
                case StreamEventType.DELTA:
                    parts.append(event.text)
                    self._emit("stream.text", {"content": event.text})
                    if on_delta:
                        on_delta(event.text)
                case StreamEventType.ERROR:
                    result.error = event.error
                    result.cancelled = False
                    self._emit("stream.error", {"error": event.error})
                case StreamEventType.DONE:
                    result.cancelled = False

        result.content = "".join(parts)
        self._emit("stream.complete", {"result": result})
        return result

    def on(self, listener: StreamEventListener) -> Callable[[], None]:
        """Subscribe to stream events. Returns unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: str, data: dict[str, Any]) -> None:
        for listener in self._listeners:
            try:
                listener(event, data)
            except Exception as e:
                logger.debug("stream_listener_failed", event=event, error=str(e))


def format_event_for_terminal(event: StreamEvent) -> str:
    """Format a stream event for terminal output."""
    match event.type:
        case StreamEventType.DELTA:
            return event.text
        case StreamEventType.ERROR:
            return f"\nError: {event.error}\n"
        case StreamEventType.DONE:
            return "\n"
        case _:
            return ""
