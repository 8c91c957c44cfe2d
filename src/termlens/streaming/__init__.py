"""Provider-agnostic streaming: adapters, pump and collection."""

from termlens.streaming.base import BaseStream, ChatStream
from termlens.streaming.handler import (
    DeltaCallback,
    StreamEventListener,
    StreamHandler,
    StreamResult,
    format_event_for_terminal,
)
from termlens.streaming.iterator import IteratorStream
from termlens.streaming.pump import StreamHandle, StreamPump
from termlens.streaming.snapshot import SnapshotDiffer, SnapshotStream
from termlens.streaming.sse import (
    SSEStream,
    open_sse_stream,
    parse_anthropic_event,
    parse_openai_chunk,
)

__all__ = [
    "BaseStream",
    "ChatStream",
    "DeltaCallback",
    "IteratorStream",
    "SSEStream",
    "SnapshotDiffer",
    "SnapshotStream",
    "StreamEventListener",
    "StreamHandle",
    "StreamHandler",
    "StreamPump",
    "StreamResult",
    "format_event_for_terminal",
    "open_sse_stream",
    "parse_anthropic_event",
    "parse_openai_chunk",
]
