"""Cumulative-snapshot diffing.

Some backends resend the whole response so far with every event instead
of an increment. SnapshotDiffer turns that back into deltas.
"""

from __future__ import annotations

from termlens.streaming.base import BaseStream, ChatStream


class SnapshotDiffer:
    """Turns successive full-text snapshots into increments.

    A snapshot that extends the previous one yields only the new suffix.
    A snapshot that does not (the backend rewrote earlier text) is emitted
    whole and becomes the new baseline.
    """

    def __init__(self) -> None:
        self._last = ""

    @property
    def text(self) -> str:
        return self._last

    def feed(self, snapshot: str) -> str:
        if not snapshot:
            return ""
        previous, self._last = self._last, snapshot
        if snapshot.startswith(previous):
            return snapshot[len(previous):]
        return snapshot

    def reset(self) -> None:
        self._last = ""


class SnapshotStream(BaseStream):
    """Wraps a stream whose ``current()`` values are cumulative snapshots."""

    def __init__(self, inner: ChatStream, *, provider: str = "") -> None:
        super().__init__(provider=provider)
        self._inner = inner
        self._differ = SnapshotDiffer()

    async def advance(self) -> bool:
        if self.finished or self._closed:
            return False
        while await self._inner.advance():
            delta = self._differ.feed(self._inner.current())
            if delta:
                return self._emit(delta)
        return self._finish(self._inner.err())

    async def close(self) -> None:
        if self._closed:
            return
        await super().close()
        await self._inner.close()
