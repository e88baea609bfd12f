"""Client for OpenPipeline configurations.

Configurations always exist; they are read and replaced, never created or
deleted. Updates carry the ``version`` and ``updateToken`` of the current
configuration and are retried while concurrent writers cause conflicts.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from Platform_CaC.api.response import Response
from Platform_CaC.utils.errors import DecodeError

from .base import ResourceClient, load_payload
from .upsert import update_with_conflict_retry

ENDPOINT = "platform/openpipeline/v1/configurations"
MAX_UPDATE_ATTEMPTS = 10

Payload = bytes | str | Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class ConfigurationSummary:
    id: str
    editable: bool = False


class OpenPipelineClient(ResourceClient):
    resource_name = "openpipeline resource"
    endpoint = ENDPOINT
    default_retry_strategy = None

    def get(self, identifier: str) -> Response:
        self._require_id(identifier)
        return self._wrap("get", identifier, lambda: self._get(identifier))

    def list(self) -> list[ConfigurationSummary]:
        def _list() -> list[ConfigurationSummary]:
            response = self._to_response(self.rest_client.get(self._path(), self._options()))
            entries = response.decode_json()
            if not isinstance(entries, list):
                raise DecodeError("openpipeline list response must be a JSON array")
            return [
                ConfigurationSummary(id=str(entry["id"]), editable=bool(entry.get("editable", False)))
                for entry in entries
                if isinstance(entry, dict) and "id" in entry
            ]

        return self._wrap("list", "", _list)

    def get_all(self) -> list[Response]:
        """Fetch the full document of every listed configuration."""
        return [self.get(summary.id) for summary in self.list()]

    def update(self, identifier: str, payload: Payload) -> Response:
        self._require_id(identifier)
        return self._wrap(
            "update",
            identifier,
            lambda: update_with_conflict_retry(
                lambda: self._update_once(identifier, payload),
                resource=self.resource_name,
                identifier=identifier,
                max_attempts=MAX_UPDATE_ATTEMPTS,
            ),
        )

    def _get(self, identifier: str) -> Response:
        return self._to_response(self.rest_client.get(self._path(identifier), self._options()))

    def _update_once(self, identifier: str, payload: Payload) -> Response:
        remote = self._get(identifier).decode_json()
        if not isinstance(remote, dict):
            raise DecodeError("openpipeline configuration must be a JSON object")
        document = load_payload(payload)
        document["version"] = remote.get("version")
        document["updateToken"] = remote.get("updateToken")
        return self._to_response(
            self.rest_client.put(self._path(identifier), self._encode(document), self._options())
        )


__all__ = ["ConfigurationSummary", "ENDPOINT", "MAX_UPDATE_ATTEMPTS", "OpenPipelineClient"]
