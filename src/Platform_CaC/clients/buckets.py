"""Client for storage bucket definitions.

Buckets are provisioned and torn down asynchronously. ``create`` waits until
the bucket is ``active``, ``update`` waits for a stable bucket before sending
the new definition, and ``delete`` returns only after the bucket is gone.
"""

from __future__ import annotations

from collections.abc import Mapping
from http import HTTPStatus
from typing import Any

import structlog

from Platform_CaC.api.response import ListResponse, PagedListResponse, Response, split_objects
from Platform_CaC.rest.client import RestClient
from Platform_CaC.utils.deadline import Deadline
from Platform_CaC.utils.errors import (
    APIError,
    ClientError,
    DeadlineExceededError,
    DecodeError,
    PlatformClientError,
    ResourceDeletingError,
    is_not_found,
)

from .base import ResourceClient, load_payload
from .convergence import STATE_DELETING, RetrySettings, TargetState, await_state, resource_status
from .upsert import Upserter, update_with_conflict_retry

logger = structlog.get_logger(__name__)

ENDPOINT = "platform/storage/management/v1/bucket-definitions"

Payload = bytes | str | Mapping[str, Any]


def buckets_equal(existing: Mapping[str, Any], desired: Mapping[str, Any]) -> bool:
    """Compare definitions ignoring the server-managed fields."""
    candidate = dict(desired)
    for key in ("bucketName", "version", "status"):
        candidate[key] = existing.get(key)
    return dict(existing) == candidate


class BucketClient(ResourceClient):
    resource_name = "bucket"
    endpoint = ENDPOINT

    def __init__(self, rest_client: RestClient, *, retry_settings: RetrySettings | None = None) -> None:
        super().__init__(rest_client, retry_settings=retry_settings)
        rest_client.set_header("Cache-Control", "no-cache")
        self._upserter = Upserter(self, self.retry_settings)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, identifier: str) -> Response:
        self._require_id(identifier, "bucketName")
        return self._wrap("get", identifier, lambda: self._get(identifier))

    def list(self) -> PagedListResponse:
        return self._wrap("list", "", self._list)

    def _get(self, identifier: str) -> Response:
        return self._to_response(self.rest_client.get(self._path(identifier), self._options()))

    def _list(self) -> PagedListResponse:
        response = self._to_response(self.rest_client.get(self._path(), self._options()))
        document = response.decode_json()
        if not isinstance(document, dict) or not isinstance(document.get("buckets", []), list):
            raise DecodeError("bucket list response must contain a 'buckets' array")
        objects = split_objects(document.get("buckets", []))
        return PagedListResponse([ListResponse(response=response, objects=objects)])

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def create(self, identifier: str, payload: Payload, *, deadline: Deadline | None = None) -> Response:
        """Create a bucket and wait until it is active.

        Returns:
            The active bucket, reported with status 201.
        """
        self._require_id(identifier, "bucketName")

        def _create() -> Response:
            document = load_payload(payload)
            document["bucketName"] = identifier
            self._to_response(
                self.rest_client.post(self._path(), self._encode(document), self._options())
            )
            logger.debug("bucket.create.accepted", identifier=identifier)
            return self._await_active(identifier, deadline, normalize_created=True)

        return self._wrap("create", identifier, _create)

    def update(self, identifier: str, payload: Payload, *, deadline: Deadline | None = None) -> Response:
        """Replace a bucket definition once the bucket is stable.

        Raises:
            ResourceDeletingError: When the bucket is being deleted.
        """
        self._require_id(identifier, "bucketName")
        bound = self._deadline(deadline)
        return self._wrap(
            "update",
            identifier,
            lambda: update_with_conflict_retry(
                lambda: self._update_once(identifier, payload, bound),
                resource=self.resource_name,
                identifier=identifier,
                max_attempts=self.retry_settings.conflict_attempts,
                deadline=bound,
                interval=self.retry_settings.interval_seconds,
            ),
        )

    def delete(self, identifier: str, *, deadline: Deadline | None = None) -> Response:
        """Delete a bucket and wait until it is gone.

        Returns:
            The envelope of the DELETE request (typically 202).
        """
        self._require_id(identifier, "bucketName")

        def _delete() -> Response:
            response = self._to_response(self.rest_client.delete(self._path(identifier), self._options()))
            self._await_removed(identifier, deadline)
            return response

        return self._wrap("delete", identifier, _delete)

    def upsert(self, identifier: str, payload: Payload, *, deadline: Deadline | None = None) -> Response:
        self._require_id(identifier, "bucketName")
        return self._upserter.upsert(identifier, self._encode(payload), deadline=deadline)

    def await_removed(self, identifier: str, *, deadline: Deadline | None = None) -> None:
        self._wrap("await removal of", identifier, lambda: self._await_removed(identifier, deadline))

    def await_active_or_not_found(self, identifier: str, *, deadline: Deadline | None = None) -> bool:
        """Wait for a stable bucket. Returns False when it does not exist."""
        self._require_id(identifier, "bucketName")
        try:
            self._wrap(
                "await",
                identifier,
                lambda: self._await_active(identifier, deadline, stop_on_not_found=True),
            )
        except ClientError as exc:
            if not is_not_found(exc):
                raise
            return False
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _update_once(self, identifier: str, payload: Payload, deadline: Deadline) -> Response:
        current = self._await_active(
            identifier, deadline, reject_deleting=True, stop_on_not_found=True
        )
        existing = current.decode_json()
        if not isinstance(existing, dict):
            raise DecodeError("bucket definition must be a JSON object")
        desired = load_payload(payload)

        if buckets_equal(existing, desired):
            logger.info("bucket.update.unmodified", identifier=identifier)
            return Response(HTTPStatus.OK.value, current.data, current.headers, current.request)

        for key in ("bucketName", "version", "status"):
            desired[key] = existing.get(key)
        response = self.rest_client.put(
            self._path(identifier),
            self._encode(desired),
            self._options({"optimistic-locking-version": str(existing.get("version"))}),
        )
        logger.debug("bucket.update.sent", identifier=identifier, version=existing.get("version"))
        return self._to_response(response)

    def _await_active(
        self,
        identifier: str,
        deadline: Deadline | None,
        *,
        normalize_created: bool = False,
        reject_deleting: bool = False,
        stop_on_not_found: bool = False,
    ) -> Response:
        def _fetch() -> Response:
            try:
                response = self._get(identifier)
            except APIError as exc:
                if stop_on_not_found and exc.status_code == HTTPStatus.NOT_FOUND:
                    raise _BucketMissing(exc) from exc
                raise
            if reject_deleting and resource_status(response) == STATE_DELETING:
                raise ResourceDeletingError(self.resource_name, identifier)
            return response

        try:
            result = await_state(
                _fetch,
                resource=self.resource_name,
                identifier=identifier,
                target=TargetState.ACTIVE,
                settings=self.retry_settings,
                deadline=deadline,
                normalize_created=normalize_created,
            )
        except _BucketMissing as missing:
            raise missing.not_found from None
        if result is None:
            raise DeadlineExceededError(self.resource_name, identifier, TargetState.ACTIVE.value)
        return result

    def _await_removed(self, identifier: str, deadline: Deadline | None) -> None:
        await_state(
            lambda: self._get(identifier),
            resource=self.resource_name,
            identifier=identifier,
            target=TargetState.REMOVED,
            settings=self.retry_settings,
            deadline=deadline,
        )


class _BucketMissing(PlatformClientError):
    """Carries a 404 out of a stability wait, which otherwise keeps polling."""

    def __init__(self, not_found: APIError) -> None:
        super().__init__(str(not_found))
        self.not_found = not_found


__all__ = ["BucketClient", "ENDPOINT", "buckets_equal"]
