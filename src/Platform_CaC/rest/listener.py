"""Request/response observability hook for the transport."""

from __future__ import annotations

import queue
from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime

import httpx


@dataclass(frozen=True, slots=True)
class RequestResponse:
    """One recorded outbound request or inbound response.

    ``id`` correlates a request with its response. Exactly one of ``request``
    and ``response`` is set, unless the exchange failed, in which case
    ``error`` is set instead of ``response``.
    """

    id: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    request: httpx.Request | None = None
    response: httpx.Response | None = None
    error: BaseException | None = None

    @property
    def is_request(self) -> bool:
        return self.request is not None

    @property
    def is_response(self) -> bool:
        return self.response is not None


class HTTPListener:
    """Invokes ``callback`` for every request and response of a transport."""

    def __init__(self, callback: Callable[[RequestResponse], None]) -> None:
        self.callback = callback

    def on_request(self, request_id: str, request: httpx.Request) -> None:
        self.callback(RequestResponse(id=request_id, request=request))

    def on_response(
        self,
        request_id: str,
        response: httpx.Response | None,
        error: BaseException | None = None,
    ) -> None:
        self.callback(RequestResponse(id=request_id, response=response, error=error))


class RequestResponseRecorder:
    """Collects listener records on a queue for a separate consumer.

    ``record`` never blocks; a full queue drops the record and counts it.
    """

    def __init__(self, maxsize: int = 0) -> None:
        self._queue: queue.Queue[RequestResponse] = queue.Queue(maxsize=maxsize)
        self.dropped = 0

    def record(self, entry: RequestResponse) -> None:
        try:
            self._queue.put_nowait(entry)
        except queue.Full:
            self.dropped += 1

    def listener(self) -> HTTPListener:
        return HTTPListener(self.record)

    def drain(self) -> list[RequestResponse]:
        """Return every queued record without blocking."""
        entries: list[RequestResponse] = []
        while True:
            try:
                entries.append(self._queue.get_nowait())
            except queue.Empty:
                return entries

    def __iter__(self) -> Iterator[RequestResponse]:
        return iter(self.drain())


__all__ = ["HTTPListener", "RequestResponse", "RequestResponseRecorder"]
