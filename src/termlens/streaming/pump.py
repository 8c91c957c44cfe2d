"""Stream pump: drives a provider stream on a producer task.

The consumer gets a StreamHandle, an async iterator of StreamEvents fed
through a bounded queue. Every stream ends with exactly one DONE or ERROR
event unless the consumer cancels it first, in which case iteration simply
stops.
"""

from __future__ import annotations

import asyncio
import time
from typing import TYPE_CHECKING, Any

from termlens.errors import ProviderError, StreamCancelledError, TermlensError
from termlens.streaming.base import ChatStream
from termlens.types.messages import ChatRequest, ResolvedRequest, StreamEvent
from termlens.utils.logger import LogPreview, get_logger, sanitize_for_log

if TYPE_CHECKING:
    from termlens.providers.base import LLMProvider

logger = get_logger(__name__)

DEFAULT_QUEUE_SIZE = 8
CANCEL_WAIT_TIMEOUT = 2.0
LOG_PREVIEW_CHARS = 200


class StreamHandle:
    """Consumer side of a pumped stream.

    Iterate with ``async for``. Cancelling the consuming task, or calling
    ``cancel()``, stops the producer; no delta is delivered afterwards.
    """

    def __init__(self, queue: asyncio.Queue[StreamEvent | None], *, provider: str = "") -> None:
        self.provider = provider
        self._queue = queue
        self._producer: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _attach(self, producer: asyncio.Task[None]) -> None:
        self._producer = producer

    def __aiter__(self) -> StreamHandle:
        return self

    async def __anext__(self) -> StreamEvent:
        if self._closed:
            raise StopAsyncIteration
        try:
            event = await self._queue.get()
        except asyncio.CancelledError:
            self.cancel()
            raise
        if event is None or self._closed:
            self._closed = True
            raise StopAsyncIteration
        if event.is_terminal:
            self._closed = True
        return event

    def cancel(self) -> None:
        """Stop the producer and close the handle. Idempotent."""
        if self._closed and (self._producer is None or self._producer.done()):
            return
        self._closed = True
        if self._producer is not None and not self._producer.done():
            self._producer.cancel()
        while not self._queue.empty():
            self._queue.get_nowait()
        # Wake a consumer blocked in __anext__
        self._queue.put_nowait(None)

    async def aclose(self) -> None:
        """Cancel and wait (bounded) for the producer to release the stream."""
        self.cancel()
        producer = self._producer
        if producer is not None and not producer.done():
            await asyncio.wait({producer}, timeout=CANCEL_WAIT_TIMEOUT)


class StreamPump:
    """Starts provider streams on background producer tasks."""

    def __init__(self, *, queue_size: int = DEFAULT_QUEUE_SIZE) -> None:
        self._queue_size = max(1, queue_size)

    def start(
        self,
        provider: LLMProvider,
        request: ChatRequest,
        *,
        deadline: float | None = None,
        timeout: float | None = None,
    ) -> StreamHandle:
        """Validate the request and start streaming it.

        Args:
            provider: Backend to stream from.
            request: Messages plus optional per-call overrides.
            deadline: Absolute event-loop time (``loop.time()``) bounding
                the whole request. Takes precedence over ``timeout``.
            timeout: Seconds for the whole request. Defaults to the
                provider's own timeout.

        Raises:
            ValidationError: Missing model or empty messages. Raised here,
                before any network activity.
        """
        resolved = provider.prepare(request)
        queue: asyncio.Queue[StreamEvent | None] = asyncio.Queue(maxsize=self._queue_size)
        handle = StreamHandle(queue, provider=provider.name)
        producer = asyncio.create_task(
            self._produce(provider, resolved, queue, deadline=deadline, timeout=timeout),
            name=f"termlens-stream-{provider.name}",
        )
        handle._attach(producer)
        return handle

    async def _produce(
        self,
        provider: LLMProvider,
        resolved: ResolvedRequest,
        queue: asyncio.Queue[StreamEvent | None],
        *,
        deadline: float | None,
        timeout: float | None,
    ) -> None:
        log = logger.bind(provider=provider.name, model=resolved.model)
        log.info("stream_start", messages=len(resolved.messages))
        started = time.monotonic()
        preview = LogPreview(LOG_PREVIEW_CHARS)
        stream: ChatStream | None = None
        scope = self._scope(provider, deadline, timeout)

        try:
            async with scope:
                stream = await provider.open_stream(resolved)
                while await stream.advance():
                    text = stream.current()
                    if not text:
                        continue
                    preview.append(text)
                    await queue.put(StreamEvent.delta(text))
                error = stream.err()
            terminal = StreamEvent.failed(error) if error else StreamEvent.done()
        except asyncio.CancelledError:
            log.info("stream_cancelled", chars=preview.total_chars)
            raise
        except TimeoutError as e:
            if scope.expired():
                terminal = StreamEvent.failed(
                    StreamCancelledError("stream deadline exceeded", timed_out=True)
                )
            else:
                terminal = StreamEvent.failed(ProviderError(
                    f"{provider.name} stream timed out: {e or type(e).__name__}",
                    provider=provider.name,
                ))
        except TermlensError as e:
            terminal = StreamEvent.failed(e)
        except Exception as e:
            terminal = StreamEvent.failed(
                ProviderError(f"{provider.name} stream failed: {e}", provider=provider.name)
            )
        finally:
            if stream is not None:
                await self._close_stream(stream, log)

        duration_ms = int((time.monotonic() - started) * 1000)
        if terminal.error is not None:
            log.warning(
                "stream_error",
                error=str(terminal.error),
                error_type=type(terminal.error).__name__,
                duration_ms=duration_ms,
                chars=preview.total_chars,
            )
        else:
            log.info(
                "stream_done",
                duration_ms=duration_ms,
                chars=preview.total_chars,
                preview=sanitize_for_log(str(preview)),
                preview_truncated=preview.truncated,
            )
        await queue.put(terminal)

    @staticmethod
    async def _close_stream(stream: ChatStream, log: Any) -> None:
        try:
            await stream.close()
        except Exception as e:
            log.debug("stream_close_failed", error=str(e), error_type=type(e).__name__)

    @staticmethod
    def _scope(
        provider: LLMProvider,
        deadline: float | None,
        timeout: float | None,
    ) -> asyncio.Timeout:
        if deadline is not None:
            return asyncio.timeout_at(deadline)
        seconds = timeout if timeout is not None else provider.timeout
        return asyncio.timeout(seconds if seconds and seconds > 0 else None)
