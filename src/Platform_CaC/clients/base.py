"""Shared plumbing for the resource clients.

Key Responsibilities:
    - Join resource identifiers onto a family's endpoint path
    - Reject empty identifiers before any request is issued
    - Wrap transport, HTTP and decode failures with the operation, resource
      and identifier that produced them

Collaborators:
    - Upstream: the family clients in :mod:`Platform_CaC.clients`
    - Downstream: :class:`Platform_CaC.rest.RestClient`

Thread Safety:
    - Thread-safe; clients hold no mutable state besides the shared transport
"""

from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from typing import Any, ClassVar, TypeVar
from urllib.parse import quote

import httpx
import structlog

from Platform_CaC.api.response import Response, encode_json
from Platform_CaC.rest.client import RequestOptions, RestClient
from Platform_CaC.rest.retry import RetryIfTooManyRequests, RetryStrategy
from Platform_CaC.utils.deadline import Deadline
from Platform_CaC.utils.errors import (
    APIError,
    ClientError,
    DecodeError,
    TransportError,
    ValidationError,
)

from .convergence import RetrySettings

logger = structlog.get_logger(__name__)

T = TypeVar("T")

WRAPPED_ERRORS = (APIError, DecodeError, TransportError)


def load_payload(payload: bytes | str | Mapping[str, Any]) -> dict[str, Any]:
    """Return a mutable copy of a JSON object payload."""
    if isinstance(payload, Mapping):
        return dict(payload)
    try:
        decoded = json.loads(payload)
    except (TypeError, ValueError) as exc:
        raise DecodeError(f"unable to unmarshal payload: {exc}") from exc
    if not isinstance(decoded, dict):
        raise DecodeError("payload must be a JSON object")
    return decoded


class ResourceClient:
    """Base class for clients of one resource family."""

    resource_name: ClassVar[str] = "resource"
    endpoint: ClassVar[str] = ""
    default_retry_strategy: ClassVar[RetryStrategy | None] = RetryIfTooManyRequests()

    def __init__(self, rest_client: RestClient, *, retry_settings: RetrySettings | None = None) -> None:
        self.rest_client = rest_client
        self.retry_settings = retry_settings or RetrySettings()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _path(self, *parts: str, endpoint: str | None = None) -> str:
        base = (endpoint if endpoint is not None else self.endpoint).rstrip("/")
        suffix = "/".join(quote(part, safe="") for part in parts)
        return f"{base}/{suffix}" if suffix else base

    def _require_id(self, identifier: str, field: str = "id") -> None:
        if not identifier:
            raise ValidationError(field, "must be non-empty")

    def _options(
        self,
        query_params: Mapping[str, Any] | None = None,
        *,
        retry_strategy: RetryStrategy | None = None,
    ) -> RequestOptions:
        return RequestOptions(
            query_params=dict(query_params or {}),
            retry_strategy=retry_strategy or self.default_retry_strategy,
        )

    def _deadline(self, deadline: Deadline | None) -> Deadline:
        """Bound ``deadline`` by the configured maximum wait."""
        return (deadline or Deadline.never()).bounded(self.retry_settings.max_wait_seconds)

    def _wrap(self, operation: str, identifier: str, func: Callable[[], T]) -> T:
        """Run ``func`` and add operation context to lower-level failures."""
        try:
            return func()
        except WRAPPED_ERRORS as exc:
            logger.debug(
                f"{self.resource_name}.{operation}.failed",
                identifier=identifier,
                error=str(exc),
            )
            raise ClientError(operation, self.resource_name, exc, identifier=identifier) from exc

    @staticmethod
    def _to_response(response: httpx.Response) -> Response:
        return Response.from_httpx(response)

    @staticmethod
    def _encode(payload: bytes | str | Mapping[str, Any]) -> bytes:
        if isinstance(payload, Mapping):
            return encode_json(payload)
        return payload.encode("utf-8") if isinstance(payload, str) else payload


__all__ = ["ResourceClient", "WRAPPED_ERRORS", "load_payload"]
