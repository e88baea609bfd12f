"""Process-wide bound on in-flight HTTP requests."""

from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class ConcurrencyLimiter:
    """Counting semaphore limiting concurrent requests.

    A limit of zero or less disables limiting entirely.
    """

    def __init__(self, max_concurrent: int) -> None:
        self.max_concurrent = max_concurrent
        self._semaphore = threading.BoundedSemaphore(max_concurrent) if max_concurrent > 0 else None

    @property
    def unlimited(self) -> bool:
        return self._semaphore is None

    def acquire(self) -> None:
        if self._semaphore is not None:
            self._semaphore.acquire()

    def release(self) -> None:
        """Return one slot. Raises ValueError when nothing is held."""
        if self._semaphore is not None:
            self._semaphore.release()

    @contextmanager
    def slot(self) -> Iterator[None]:
        """Hold one slot for the duration of the block."""
        self.acquire()
        try:
            yield
        finally:
            self.release()


__all__ = ["ConcurrencyLimiter"]
