"""Draining paginated list endpoints into a :class:`PagedListResponse`.

Two continuation strategies exist. ``OffsetPagination`` sends the number of
objects already retrieved as ``offset`` until the reported total is reached.
``CursorPagination`` forwards the server's next-page key as ``page-key``
until the server stops returning one.

Any failing page aborts the list with :class:`PaginationError`, which carries
the pages accumulated before the failure.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Protocol

import structlog

from Platform_CaC.api.response import ListResponse, PagedListResponse, Response, split_objects
from Platform_CaC.utils.errors import DecodeError, PaginationError, PlatformClientError

logger = structlog.get_logger(__name__)

PageFetcher = Callable[[Mapping[str, str]], Response]


@dataclass(frozen=True, slots=True)
class ParsedPage:
    objects: list[bytes]
    total: int | None = None
    next_key: str = ""


class PaginationStrategy(Protocol):
    def initial_params(self) -> dict[str, str]: ...

    def parse(self, response: Response) -> ParsedPage: ...

    def next_params(
        self, params: Mapping[str, str], page: ParsedPage, retrieved: int
    ) -> dict[str, str] | None: ...


def _decode_page(response: Response) -> dict[str, Any]:
    try:
        document = json.loads(response.data)
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"failed to unmarshal list response: {exc}") from exc
    if not isinstance(document, dict):
        raise DecodeError("list response must be a JSON object")
    return document


def _items(document: Mapping[str, Any], field: str) -> list[bytes]:
    items = document.get(field) or []
    if not isinstance(items, list):
        raise DecodeError(f"list response field {field!r} must be an array")
    return split_objects(items)


@dataclass(frozen=True, slots=True)
class OffsetPagination:
    """``offset`` continuation over a ``count`` total and an items array."""

    items_field: str = "results"
    count_field: str = "count"
    offset_param: str = "offset"

    def initial_params(self) -> dict[str, str]:
        return {self.offset_param: "0"}

    def parse(self, response: Response) -> ParsedPage:
        document = _decode_page(response)
        total = document.get(self.count_field, 0)
        if not isinstance(total, int) or isinstance(total, bool):
            raise DecodeError(f"list response field {self.count_field!r} must be an integer")
        return ParsedPage(objects=_items(document, self.items_field), total=total)

    def next_params(
        self, params: Mapping[str, str], page: ParsedPage, retrieved: int
    ) -> dict[str, str] | None:
        # an empty page ends the loop even if the reported total disagrees
        if not page.objects or page.total is None or retrieved >= page.total:
            return None
        return {self.offset_param: str(retrieved)}


@dataclass(frozen=True, slots=True)
class CursorPagination:
    """``page-key`` continuation over an opaque next-page key."""

    items_field: str
    next_key_field: str = "nextPageKey"
    page_key_param: str = "page-key"

    def initial_params(self) -> dict[str, str]:
        return {}

    def parse(self, response: Response) -> ParsedPage:
        document = _decode_page(response)
        next_key = document.get(self.next_key_field) or ""
        if not isinstance(next_key, str):
            raise DecodeError(f"list response field {self.next_key_field!r} must be a string")
        return ParsedPage(objects=_items(document, self.items_field), next_key=next_key)

    def next_params(
        self, params: Mapping[str, str], page: ParsedPage, retrieved: int
    ) -> dict[str, str] | None:
        if not page.next_key:
            return None
        return {self.page_key_param: page.next_key}


def drain(fetch_page: PageFetcher, strategy: PaginationStrategy) -> PagedListResponse:
    """Fetch every page and return them in order.

    Args:
        fetch_page: Issues one request with the given continuation parameters
            and returns its envelope, raising for non-2xx statuses.
        strategy: Continuation strategy of the resource family.

    Raises:
        PaginationError: When a page fails to load or decode.
    """
    pages = PagedListResponse()
    params: dict[str, str] | None = strategy.initial_params()
    retrieved = 0

    try:
        while params is not None:
            response = fetch_page(params)
            parsed = strategy.parse(response)
            pages.append(ListResponse(response=response, objects=parsed.objects))
            retrieved += len(parsed.objects)
            logger.debug(
                "pagination.page",
                url=response.request.url,
                page=len(pages),
                objects=len(parsed.objects),
                retrieved=retrieved,
            )
            params = strategy.next_params(params, parsed, retrieved)
    except PlatformClientError as exc:
        raise PaginationError(exc, pages) from exc

    return pages


__all__ = [
    "CursorPagination",
    "OffsetPagination",
    "PageFetcher",
    "PaginationStrategy",
    "ParsedPage",
    "drain",
]
