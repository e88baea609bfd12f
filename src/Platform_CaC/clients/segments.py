"""Client for Grail filter segments."""

from __future__ import annotations

from collections.abc import Mapping
from http import HTTPStatus
from typing import Any

import structlog

from Platform_CaC.api.response import Response, encode_json
from Platform_CaC.utils.errors import APIError, DecodeError

from .base import ResourceClient, load_payload

logger = structlog.get_logger(__name__)

ENDPOINT = "platform/storage/filter-segments/v1/filter-segments"

LIST_FIELDS = ("EXTERNALID",)
GET_FIELDS = ("INCLUDES", "VARIABLES", "EXTERNALID", "RESOURCECONTEXT")

Payload = bytes | str | Mapping[str, Any]


def _segment_version(document: Any) -> int:
    version = document.get("version") if isinstance(document, dict) else None
    if not isinstance(version, int) or isinstance(version, bool) or version == 0:
        raise DecodeError("missing version field in API response")
    return version


class SegmentsClient(ResourceClient):
    resource_name = "segments resource"
    endpoint = ENDPOINT

    def list(self) -> Response:
        """Return the lean listing; ``data`` holds the ``filterSegments`` array."""

        def _list() -> Response:
            response = self._to_response(
                self.rest_client.get(f"{ENDPOINT}:lean", self._options({"add-fields": list(LIST_FIELDS)}))
            )
            document = response.decode_json()
            if not isinstance(document, dict):
                raise DecodeError("segments list response must be a JSON object")
            return Response(
                response.status_code,
                encode_json(document.get("filterSegments")),
                response.headers,
                response.request,
            )

        return self._wrap("list", "", _list)

    def get(self, identifier: str) -> Response:
        self._require_id(identifier)
        return self._wrap("get", identifier, lambda: self._get(identifier))

    def get_all(self) -> list[Response]:
        """Fetch the full document of every listed segment."""
        segments = self.list().decode_json() or []
        return [self.get(str(segment["uid"])) for segment in segments if isinstance(segment, dict) and "uid" in segment]

    def create(self, payload: Payload) -> Response:
        return self._wrap(
            "create",
            "",
            lambda: self._to_response(
                self.rest_client.post(self._path(), self._encode(payload), self._options())
            ),
        )

    def update(self, identifier: str, payload: Payload) -> Response:
        """Replace a segment, keeping its owner unless the payload sets one."""
        self._require_id(identifier)
        return self._wrap(
            "update",
            identifier,
            lambda: self._replace(identifier, self._get(identifier).decode_json(), payload),
        )

    def upsert(self, identifier: str, payload: Payload) -> Response:
        """Create the segment when absent, otherwise update it in place."""
        self._require_id(identifier)

        def _upsert() -> Response:
            try:
                existing = self._get(identifier)
            except APIError as exc:
                if exc.status_code != HTTPStatus.NOT_FOUND:
                    raise
                logger.debug("segments.upsert.create", identifier=identifier)
                return self._to_response(
                    self.rest_client.post(self._path(), self._encode(payload), self._options())
                )
            return self._replace(identifier, existing.decode_json(), payload)

        return self._wrap("upsert", identifier, _upsert)

    def delete(self, identifier: str) -> Response:
        self._require_id(identifier)
        return self._wrap(
            "delete",
            identifier,
            lambda: self._to_response(self.rest_client.delete(self._path(identifier), self._options())),
        )

    def _get(self, identifier: str) -> Response:
        return self._to_response(
            self.rest_client.get(self._path(identifier), self._options({"add-fields": list(GET_FIELDS)}))
        )

    def _replace(self, identifier: str, existing: Any, payload: Payload) -> Response:
        version = _segment_version(existing)
        owner = existing.get("owner")
        if not owner:
            raise DecodeError("missing owner field in API response")
        document = load_payload(payload)
        document.setdefault("owner", owner)
        document["uid"] = identifier
        return self._put(identifier, document, version)

    def _put(self, identifier: str, payload: Payload, version: int) -> Response:
        return self._to_response(
            self.rest_client.put(
                self._path(identifier),
                self._encode(payload),
                self._options({"optimistic-locking-version": str(version)}),
            )
        )


__all__ = ["ENDPOINT", "GET_FIELDS", "LIST_FIELDS", "SegmentsClient"]
