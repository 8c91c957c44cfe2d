"""Bridge from SDK-native async iterators to the pull-based stream contract.

A worker task drives the SDK iterator and pushes events into a bounded
queue; ``advance()`` reads from the queue. Closing the stream cancels the
worker, so an abandoned response never keeps a connection open.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from termlens.streaming.base import BaseStream
from termlens.streaming.snapshot import SnapshotDiffer
from termlens.types.messages import StreamEvent, StreamEventType
from termlens.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_QUEUE_SIZE = 32
CLOSE_TIMEOUT = 2.0

IteratorOpener = Callable[[], Awaitable[AsyncIterator[Any]]]
TextExtractor = Callable[[Any], str]
ErrorMapper = Callable[[Exception], BaseException]


class IteratorStream(BaseStream):
    """Pull-based view over an SDK response iterator.

    Args:
        open_fn: Coroutine factory returning the SDK's async iterator.
            Called from the worker task, so connection errors surface as
            the stream's terminal error.
        extract: Pulls the visible text out of one SDK item.
        differ: Set when the SDK yields cumulative snapshots instead of
            increments.
        error_mapper: Converts SDK exceptions into termlens errors.
    """

    def __init__(
        self,
        open_fn: IteratorOpener,
        extract: TextExtractor,
        *,
        differ: SnapshotDiffer | None = None,
        error_mapper: ErrorMapper | None = None,
        provider: str = "",
        queue_size: int = DEFAULT_QUEUE_SIZE,
    ) -> None:
        super().__init__(provider=provider)
        self._open_fn = open_fn
        self._extract = extract
        self._differ = differ
        self._error_mapper = error_mapper
        self._queue: asyncio.Queue[StreamEvent] = asyncio.Queue(maxsize=max(1, queue_size))
        self._worker: asyncio.Task[None] | None = None

    def start(self) -> None:
        """Launch the worker. Safe to call more than once."""
        if self._worker is None and not self._closed:
            self._worker = asyncio.create_task(
                self._run(), name=f"termlens-iterator-{self.provider or 'sdk'}",
            )

    async def _run(self) -> None:
        iterator: AsyncIterator[Any] | None = None
        try:
            iterator = await self._open_fn()
            async for item in iterator:
                text = self._extract(item)
                if self._differ is not None:
                    text = self._differ.feed(text)
                if text:
                    await self._queue.put(StreamEvent.delta(text))
            await self._queue.put(StreamEvent.done())
        except asyncio.CancelledError:
            raise
        except Exception as e:
            error = self._error_mapper(e) if self._error_mapper else e
            await self._queue.put(StreamEvent.failed(error))
        finally:
            if iterator is not None:
                await self._close_iterator(iterator)

    async def _close_iterator(self, iterator: AsyncIterator[Any]) -> None:
        aclose = getattr(iterator, "aclose", None)
        if aclose is None:
            return
        try:
            await aclose()
        except Exception as e:
            logger.debug("iterator_close_failed", provider=self.provider, error=str(e))

    async def advance(self) -> bool:
        if self.finished or self._closed:
            return False
        self.start()
        event = await self._queue.get()
        match event.type:
            case StreamEventType.DELTA:
                return self._emit(event.text)
            case StreamEventType.ERROR:
                return self._finish(event.error)
            case _:
                return self._finish()

    async def close(self) -> None:
        if self._closed:
            return
        await super().close()
        worker = self._worker
        if worker is not None and not worker.done():
            worker.cancel()
            self._drain()
            done, _ = await asyncio.wait({worker}, timeout=CLOSE_TIMEOUT)
            if not done:
                logger.warning("iterator_worker_stuck", provider=self.provider)
        self._drain()

    def _drain(self) -> None:
        while not self._queue.empty():
            self._queue.get_nowait()
