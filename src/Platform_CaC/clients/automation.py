"""Client for automation resources: workflows, business calendars, scheduling rules.

Workflow requests are sent with elevated access first and downgraded once
when the caller lacks the privilege. Lists use offset pagination.
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any

import structlog

from Platform_CaC.api.response import PagedListResponse, Response
from Platform_CaC.rest.client import RequestOptions
from Platform_CaC.rest.retry import RetryOnFailureExcept404
from Platform_CaC.utils.errors import PlatformClientError, is_not_found

from .base import ResourceClient, load_payload
from .pagination import OffsetPagination, drain
from .privilege import PrivilegeFallback

logger = structlog.get_logger(__name__)

Payload = bytes | str | Mapping[str, Any]


class ResourceType(str, Enum):
    """Automation resource families and their endpoints."""

    WORKFLOWS = "workflows"
    BUSINESS_CALENDARS = "business-calendars"
    SCHEDULING_RULES = "scheduling-rules"

    @property
    def path(self) -> str:
        return f"platform/automation/v1/{self.value}"

    @property
    def supports_admin_access(self) -> bool:
        return self is ResourceType.WORKFLOWS


class AutomationClient(ResourceClient):
    resource_name = "automation resource"
    default_retry_strategy = None

    pagination = OffsetPagination(items_field="results", count_field="count")

    def get(self, resource_type: ResourceType, identifier: str) -> Response:
        self._require_id(identifier)
        path = self._path(identifier, endpoint=resource_type.path)
        return self._wrap(
            "get",
            identifier,
            lambda: self._to_response(self._privileged(resource_type).send(
                lambda options: self.rest_client.get(path, options)
            )),
        )

    def list(self, resource_type: ResourceType) -> PagedListResponse:
        """Return every object of ``resource_type``.

        Raises:
            PaginationError: With the pages fetched before the failing one.
        """
        fallback = self._privileged(resource_type)
        path = self._path(endpoint=resource_type.path)

        def _fetch_page(params: Mapping[str, str]) -> Response:
            options = RequestOptions(query_params=dict(params))
            return self._to_response(
                fallback.send(lambda opts: self.rest_client.get(path, opts), options)
            )

        return drain(_fetch_page, self.pagination)

    def create(self, resource_type: ResourceType, payload: Payload) -> Response:
        path = self._path(endpoint=resource_type.path)
        body = self._encode(payload)
        return self._wrap(
            "create",
            "",
            lambda: self._to_response(self._privileged(resource_type).send(
                lambda options: self.rest_client.post(path, body, options)
            )),
        )

    def update(self, resource_type: ResourceType, identifier: str, payload: Payload) -> Response:
        """Replace an object. A client-supplied ``id`` field is removed first."""
        self._require_id(identifier)
        path = self._path(identifier, endpoint=resource_type.path)

        def _update() -> Response:
            document = load_payload(payload)
            document.pop("id", None)
            body = self._encode(document)
            return self._to_response(self._privileged(resource_type).send(
                lambda options: self.rest_client.put(path, body, options)
            ))

        return self._wrap("update", identifier, _update)

    def upsert(self, resource_type: ResourceType, identifier: str, payload: Payload) -> Response:
        """Update ``identifier``, creating it with that id when it does not exist."""
        self._require_id(identifier)
        try:
            return self.update(resource_type, identifier, payload)
        except PlatformClientError as exc:
            if not is_not_found(exc):
                raise
        logger.debug("automation.upsert.create_with_id", resource_type=resource_type.value, identifier=identifier)

        document = self._wrap("upsert", identifier, lambda: load_payload(payload))
        document["id"] = identifier
        return self.create(resource_type, document)

    def delete(self, resource_type: ResourceType, identifier: str) -> Response:
        self._require_id(identifier)
        path = self._path(identifier, endpoint=resource_type.path)
        options = RequestOptions(retry_strategy=RetryOnFailureExcept404())
        return self._wrap(
            "delete",
            identifier,
            lambda: self._to_response(self._privileged(resource_type).send(
                lambda opts: self.rest_client.delete(path, opts), options
            )),
        )

    def _privileged(self, resource_type: ResourceType) -> PrivilegeFallback:
        return PrivilegeFallback(
            f"automation/{resource_type.value}",
            enabled=resource_type.supports_admin_access,
        )


__all__ = ["AutomationClient", "ResourceType"]
