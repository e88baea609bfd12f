"""Advisory client-side rate limiting driven by server response headers.

Key Responsibilities:
    - Pace requests to the requests/second limit announced in
      ``X-RateLimit-Limit`` (soft limit, backed by ``aiolimiter``)
    - Block dispatch until ``X-RateLimit-Reset`` after the server throttled
      a request or reported an exhausted quota (hard limit)

Collaborators:
    - Upstream: ``Platform_CaC.rest.client.RestClient`` calls :meth:`wait`
      before and :meth:`update` after every attempt
    - Downstream: ``aiolimiter.AsyncLimiter`` via :class:`SynchronousLimiter`

Side Effects:
    - The soft limiter runs a daemon event-loop thread once a limit header has
      been seen

Thread Safety:
    - Thread-safe; state is guarded by a lock. Waiting happens outside the lock.
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Callable, Mapping
from http import HTTPStatus

import structlog
from aiolimiter import AsyncLimiter

from Platform_CaC.observability.metrics import record_rate_limit_wait

logger = structlog.get_logger(__name__)

LIMIT_HEADER = "X-RateLimit-Limit"
REMAINING_HEADER = "X-RateLimit-Remaining"
RESET_HEADER = "X-RateLimit-Reset"

DEFAULT_RESET_TIMEOUT = 0.1


class SynchronousLimiter:
    """Adapt an :class:`AsyncLimiter` for synchronous call sites."""

    def __init__(self, limiter: AsyncLimiter) -> None:
        self.limiter = limiter
        self._loop = asyncio.new_event_loop()
        self._ready = threading.Event()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="platform-cac-rate-limiter",
            daemon=True,
        )
        self._thread.start()
        self._ready.wait()

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._ready.set()
        self._loop.run_forever()

    def acquire(self) -> float:
        """Acquire a limiter slot and return the wait duration in seconds."""
        start = time.perf_counter()
        future = asyncio.run_coroutine_threadsafe(self.limiter.acquire(), self._loop)
        future.result()
        return time.perf_counter() - start

    def close(self) -> None:
        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout=1.0)


def _parse_int(headers: Mapping[str, str], name: str) -> int | None:
    raw = headers.get(name)
    if raw is None:
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        return None


class RateLimiter:
    """Header-driven rate limiter shared by every request of a transport.

    ``clock`` returns wall-clock unix seconds (the reset header is a unix
    timestamp in server time) and ``sleep`` blocks; both are injectable so
    tests can run without real waiting.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.time,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._lock = threading.Lock()
        self._clock = clock
        self._sleep = sleep
        self._soft: SynchronousLimiter | None = None
        self.limit: int | None = None
        self.remaining: int | None = None
        self.reset_at: float | None = None

    def update(self, status_code: int, headers: Mapping[str, str]) -> None:
        """Refresh limiter state from the headers of a completed response."""
        limit = _parse_int(headers, LIMIT_HEADER)
        remaining = _parse_int(headers, REMAINING_HEADER)
        reset = _parse_int(headers, RESET_HEADER)
        stale: SynchronousLimiter | None = None

        with self._lock:
            if limit is not None and limit > 0 and limit != self.limit:
                logger.debug("rest.rate_limit.limit_updated", limit=limit, previous=self.limit)
                stale = self._soft
                self._soft = SynchronousLimiter(AsyncLimiter(limit, 1.0))
                self.limit = limit
            self.remaining = remaining

            throttled = status_code == HTTPStatus.TOO_MANY_REQUESTS
            exhausted = remaining is not None and remaining <= 0 and reset is not None
            if not throttled and not exhausted:
                self.reset_at = None
            elif reset is not None:
                self.reset_at = float(reset)
                logger.debug(
                    "rest.rate_limit.hard_limit",
                    status_code=status_code,
                    reset_at=self.reset_at,
                    timeout=max(self.reset_at - self._clock(), 0.0),
                )
            else:
                self.reset_at = self._clock() + DEFAULT_RESET_TIMEOUT
                logger.debug(
                    "rest.rate_limit.default_timeout",
                    status_code=status_code,
                    timeout=DEFAULT_RESET_TIMEOUT,
                    header=headers.get(RESET_HEADER),
                )

        if stale is not None:
            stale.close()

    def wait(self) -> float:
        """Block until dispatch is permitted. Returns the time spent waiting."""
        with self._lock:
            reset_at = self.reset_at
            soft = self._soft
        waited = 0.0
        if reset_at is not None:
            delay = reset_at - self._clock()
            if delay > 0:
                self._sleep(delay)
                waited += delay
        if soft is not None:
            waited += soft.acquire()
        if waited > 0:
            record_rate_limit_wait(waited)
        return waited

    def close(self) -> None:
        with self._lock:
            soft, self._soft = self._soft, None
        if soft is not None:
            soft.close()


__all__ = [
    "DEFAULT_RESET_TIMEOUT",
    "LIMIT_HEADER",
    "REMAINING_HEADER",
    "RESET_HEADER",
    "RateLimiter",
    "SynchronousLimiter",
]
