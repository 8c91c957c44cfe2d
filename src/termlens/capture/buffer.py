"""Fixed-capacity ring buffer of captured terminal output lines.

Writers (the PTY reader thread) and readers (prompt assembly, UI) share
one buffer for the life of the process, so access goes through a
reader/writer lock: writers are exclusive, readers run concurrently.
"""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager

DEFAULT_CAPACITY = 2000


class ReadWriteLock:
    """Writer-preferring reader/writer lock built on a Condition."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._waiting_writers += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class CaptureBuffer:
    """Thread-safe ring buffer holding the most recent output lines.

    After W writes the buffer holds exactly ``min(W, capacity)`` lines in
    write order. The oldest line is overwritten silently once full.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity <= 0:
            capacity = DEFAULT_CAPACITY
        self._capacity = capacity
        self._data: list[bytes | None] = [None] * capacity
        self._size = 0
        self._head = 0
        self._lock = ReadWriteLock()

    def write(self, line: bytes | bytearray | memoryview) -> None:
        """Store a copy of ``line`` at the head, evicting the oldest when full."""
        copy = bytes(line)
        with self._lock.write():
            self._data[self._head] = copy
            self._head = (self._head + 1) % self._capacity
            if self._size < self._capacity:
                self._size += 1

    def get_last_n(self, n: int) -> list[bytes]:
        """Return up to ``n`` most recent lines, oldest first."""
        if n <= 0:
            return []
        with self._lock.read():
            n = min(n, self._size)
            start = (self._head - n) % self._capacity
            # bytes are immutable, so the stored objects are safe to hand out
            return [self._data[(start + i) % self._capacity] or b"" for i in range(n)]

    def get_all(self) -> list[bytes]:
        with self._lock.read():
            size = self._size
        return self.get_last_n(size)

    def size(self) -> int:
        with self._lock.read():
            return self._size

    def capacity(self) -> int:
        return self._capacity

    def clear(self) -> None:
        """Empty the buffer, keeping its capacity."""
        with self._lock.write():
            self._data = [None] * self._capacity
            self._size = 0
            self._head = 0

    def export_text(self) -> str:
        return _join_lines(self.get_all())

    def export_last_n_text(self, n: int) -> str:
        return _join_lines(self.get_last_n(n))

    def __len__(self) -> int:
        return self.size()


def _join_lines(lines: list[bytes]) -> str:
    return b"\n".join(lines).decode("utf-8", errors="replace")
