"""Deadline and cancellation primitive for blocking retry and poll loops.

Key Responsibilities:
    - Bound a synchronous operation by an absolute monotonic deadline
    - Allow cooperative cancellation from another thread
    - Provide an interruptible sleep used between poll attempts

Thread Safety:
    - Thread-safe; cancellation is backed by ``threading.Event``

Example:
    >>> deadline = Deadline.after(30.0)
    >>> while not deadline.done():
    ...     deadline.sleep(1.0)
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable

# ==============================================================================
# DEADLINE
# ==============================================================================


class Deadline:
    """Absolute deadline plus a cancellation flag.

    A deadline without ``expires_at`` never expires on its own but can still be
    cancelled. Child deadlines created with :meth:`bounded` share the parent's
    cancellation event.
    """

    def __init__(
        self,
        expires_at: float | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
        cancelled: threading.Event | None = None,
    ) -> None:
        self.expires_at = expires_at
        self._clock = clock
        self._cancelled = cancelled or threading.Event()

    @classmethod
    def after(cls, seconds: float, *, clock: Callable[[], float] = time.monotonic) -> Deadline:
        """Return a deadline expiring ``seconds`` from now."""
        return cls(clock() + max(seconds, 0.0), clock=clock)

    @classmethod
    def never(cls) -> Deadline:
        return cls(None)

    def bounded(self, seconds: float | None) -> Deadline:
        """Return a child deadline expiring at the earlier of self and ``seconds`` from now."""
        if seconds is None:
            return Deadline(self.expires_at, clock=self._clock, cancelled=self._cancelled)
        candidate = self._clock() + max(seconds, 0.0)
        if self.expires_at is not None:
            candidate = min(candidate, self.expires_at)
        return Deadline(candidate, clock=self._clock, cancelled=self._cancelled)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def remaining(self) -> float | None:
        """Seconds left before expiry, ``None`` for an unbounded deadline."""
        if self.expires_at is None:
            return None
        return max(self.expires_at - self._clock(), 0.0)

    def done(self) -> bool:
        """Return True once the deadline expired or was cancelled."""
        if self._cancelled.is_set():
            return True
        return self.expires_at is not None and self._clock() >= self.expires_at

    def sleep(self, seconds: float) -> None:
        """Sleep up to ``seconds``, waking early on cancellation or expiry."""
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        if seconds <= 0:
            return
        self._cancelled.wait(seconds)


__all__ = ["Deadline"]
