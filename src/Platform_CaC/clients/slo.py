"""Client for service-level objectives.

Lists use cursor pagination. Updates and deletions read the current version
first and send it as ``optimistic-locking-version``.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from Platform_CaC.api.response import PagedListResponse, Response
from Platform_CaC.utils.errors import DecodeError

from .base import ResourceClient
from .pagination import CursorPagination, drain

ENDPOINT = "platform/slo/v1/slos"

Payload = bytes | str | Mapping[str, Any]


def optimistic_locking_version(response: Response) -> str:
    """Return the string ``version`` of an SLO document."""
    document = response.decode_json()
    version = document.get("version") if isinstance(document, dict) else None
    if not isinstance(version, str) or not version:
        raise DecodeError("slo response does not contain a version")
    return version


class SLOClient(ResourceClient):
    resource_name = "slo resource"
    endpoint = ENDPOINT

    pagination = CursorPagination(items_field="slos", next_key_field="nextPageKey")

    def list(self) -> PagedListResponse:
        def _fetch_page(params: Mapping[str, str]) -> Response:
            return self._to_response(self.rest_client.get(self._path(), self._options(params)))

        return drain(_fetch_page, self.pagination)

    def get(self, identifier: str) -> Response:
        self._require_id(identifier)
        return self._wrap("get", identifier, lambda: self._get(identifier))

    def create(self, payload: Payload) -> Response:
        return self._wrap(
            "create",
            "",
            lambda: self._to_response(
                self.rest_client.post(self._path(), self._encode(payload), self._options())
            ),
        )

    def update(self, identifier: str, payload: Payload) -> Response:
        self._require_id(identifier)

        def _update() -> Response:
            version = optimistic_locking_version(self._get(identifier))
            return self._to_response(
                self.rest_client.put(
                    self._path(identifier),
                    self._encode(payload),
                    self._options({"optimistic-locking-version": version}),
                )
            )

        return self._wrap("update", identifier, _update)

    def delete(self, identifier: str) -> Response:
        self._require_id(identifier)

        def _delete() -> Response:
            version = optimistic_locking_version(self._get(identifier))
            return self._to_response(
                self.rest_client.delete(
                    self._path(identifier),
                    self._options({"optimistic-locking-version": version}),
                )
            )

        return self._wrap("delete", identifier, _delete)

    def _get(self, identifier: str) -> Response:
        return self._to_response(self.rest_client.get(self._path(identifier), self._options()))


__all__ = ["ENDPOINT", "SLOClient", "optimistic_locking_version"]
