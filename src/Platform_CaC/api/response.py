"""Response envelopes returned by the resource clients.

Key Responsibilities:
    - Convert raw ``httpx`` responses into immutable :class:`Response` values,
      turning every non-2xx status into an :class:`APIError`
    - Represent single pages (:class:`ListResponse`) and complete paginated
      results (:class:`PagedListResponse`)
    - Decode JSON payloads, raising :class:`DecodeError` on malformed data
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from Platform_CaC.rest.retry import is_success
from Platform_CaC.utils.errors import APIError, DecodeError, RequestInfo


def request_info(response: httpx.Response) -> RequestInfo:
    try:
        request = response.request
    except RuntimeError:
        return RequestInfo()
    return RequestInfo(method=request.method, url=str(request.url))


@dataclass(frozen=True, slots=True)
class Response:
    """A successful HTTP exchange.

    ``data`` holds the raw body bytes. Mutating a received envelope is not
    supported; use :meth:`with_status` to derive a new one.
    """

    status_code: int
    data: bytes = b""
    headers: Mapping[str, str] = field(default_factory=dict)
    request: RequestInfo = field(default_factory=RequestInfo)

    @classmethod
    def from_httpx(cls, response: httpx.Response) -> Response:
        """Build an envelope, raising ``APIError`` for non-2xx responses."""
        body = response.content
        info = request_info(response)
        if not is_success(response.status_code):
            raise APIError(response.status_code, body, request=info)
        return cls(
            status_code=response.status_code,
            data=body,
            headers=dict(response.headers),
            request=info,
        )

    def is_success(self) -> bool:
        return is_success(self.status_code)

    def decode_json(self) -> Any:
        return decode_json(self.data)

    def with_status(self, status_code: int) -> Response:
        return Response(status_code, self.data, self.headers, self.request)


@dataclass(frozen=True, slots=True)
class ListResponse:
    """One page of a list operation: the page envelope plus its objects."""

    response: Response
    objects: list[bytes] = field(default_factory=list)

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def data(self) -> bytes:
        return self.response.data

    def decode_objects(self) -> list[Any]:
        return decode_json_objects(self)


class PagedListResponse(list[ListResponse]):
    """Ordered pages of a list operation."""

    def all(self) -> list[bytes]:
        """Return every object of every page in page order."""
        return [obj for page in self for obj in page.objects]


# ==============================================================================
# DECODING
# ==============================================================================


def decode_json(data: bytes | str) -> Any:
    try:
        return json.loads(data)
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"failed to unmarshal JSON: {exc}") from exc


def decode_json_objects(page: ListResponse) -> list[Any]:
    return [decode_json(obj) for obj in page.objects]


def decode_paginated_json_objects(pages: Iterable[ListResponse]) -> list[Any]:
    """Decode the objects of every page into one flat list."""
    result: list[Any] = []
    for page in pages:
        result.extend(decode_json_objects(page))
    return result


def encode_json(payload: Any) -> bytes:
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


def split_objects(items: Iterable[Any]) -> list[bytes]:
    """Re-encode decoded array items as individual raw JSON objects."""
    return [encode_json(item) for item in items]


__all__ = [
    "ListResponse",
    "PagedListResponse",
    "Response",
    "decode_json",
    "decode_json_objects",
    "decode_paginated_json_objects",
    "encode_json",
    "request_info",
    "split_objects",
]
