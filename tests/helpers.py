from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from typing import Any

import httpx

BASE_URL = "https://env.example.com"


def json_response(status_code: int, payload: Any = None, **kwargs: Any) -> httpx.Response:
    if payload is None:
        return httpx.Response(status_code, **kwargs)
    return httpx.Response(status_code, json=payload, **kwargs)


class Recorder:
    """MockTransport handler replaying a queue of responses per request."""

    def __init__(self, responses: Iterable[httpx.Response | Callable[[httpx.Request], httpx.Response]]):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError(f"unexpected request {request.method} {request.url}")
        response = self.responses.pop(0)
        if callable(response):
            return response(request)
        return response

    @property
    def calls(self) -> list[tuple[str, str]]:
        return [(request.method, request.url.path) for request in self.requests]

    def params(self, index: int) -> dict[str, str]:
        return dict(self.requests[index].url.params)

    def body(self, index: int) -> dict[str, Any]:
        return json.loads(self.requests[index].content)
