"""Uniform pull-based stream contract shared by every wire protocol."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ChatStream(Protocol):
    """Incremental text produced by one provider response.

    ``advance()`` returns False once the stream is done or failed; after
    that ``err()`` tells the two apart. ``close()`` is idempotent and
    must return promptly even with unread data.
    """

    async def advance(self) -> bool: ...

    def current(self) -> str: ...

    def err(self) -> BaseException | None: ...

    async def close(self) -> None: ...


class BaseStream:
    """Terminal-state bookkeeping shared by the concrete adapters."""

    def __init__(self, *, provider: str = "") -> None:
        self.provider = provider
        self._current = ""
        self._err: BaseException | None = None
        self._done = False
        self._closed = False

    @property
    def finished(self) -> bool:
        return self._done or self._err is not None

    def current(self) -> str:
        return self._current

    def err(self) -> BaseException | None:
        return self._err

    def _emit(self, text: str) -> bool:
        self._current = text
        return True

    def _finish(self, error: BaseException | None = None) -> bool:
        if error is not None and self._err is None:
            self._err = error
        self._done = True
        return False

    def __aiter__(self) -> BaseStream:
        return self

    async def __anext__(self) -> str:
        if await self.advance():
            return self._current
        raise StopAsyncIteration

    async def advance(self) -> bool:
        raise NotImplementedError

    async def close(self) -> None:
        self._closed = True
        self._done = True
