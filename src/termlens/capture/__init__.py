"""Terminal output capture."""

from termlens.capture.buffer import DEFAULT_CAPACITY, CaptureBuffer, ReadWriteLock

__all__ = ["CaptureBuffer", "DEFAULT_CAPACITY", "ReadWriteLock"]
