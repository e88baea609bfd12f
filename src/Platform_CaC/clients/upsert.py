"""Create-or-update orchestration with conflict resolution.

Key Responsibilities:
    - Create first and fall back to update on HTTP 409
    - Wait for a resource in ``deleting`` state to disappear before recreating
    - Recreate when an update races with a deletion (HTTP 404 on update)
    - Retry optimistic-concurrency updates under sustained HTTP 409

Collaborators:
    - Upstream: bucket client ``upsert``/``update``, OpenPipeline ``update``
    - Downstream: any client satisfying :class:`Upsertable`

Thread Safety:
    - Thread-safe; no mutual exclusion is provided per identifier, concurrent
      writers rely on the conflict retry
"""

from __future__ import annotations

from collections.abc import Callable
from http import HTTPStatus
from typing import Protocol, TypeVar

import structlog

from Platform_CaC.api.response import Response
from Platform_CaC.utils.deadline import Deadline
from Platform_CaC.utils.errors import (
    DeadlineExceededError,
    PlatformClientError,
    is_api_error,
    is_not_found,
)

from .convergence import STATE_DELETING, RetrySettings, resource_status

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class Upsertable(Protocol):
    """Operations the orchestrator composes. Failures raise, never return."""

    resource_name: str

    def create(self, identifier: str, payload: bytes, *, deadline: Deadline | None = None) -> Response: ...

    def get(self, identifier: str) -> Response: ...

    def update(self, identifier: str, payload: bytes, *, deadline: Deadline | None = None) -> Response: ...

    def await_removed(self, identifier: str, *, deadline: Deadline | None = None) -> None: ...


def update_with_conflict_retry(
    attempt: Callable[[], T],
    *,
    resource: str,
    identifier: str,
    max_attempts: int,
    deadline: Deadline | None = None,
    interval: float = 0.0,
) -> T:
    """Run ``attempt`` until it stops failing with HTTP 409.

    Each attempt is expected to re-read the current version. After
    ``max_attempts`` conflicts the last conflict error is raised.

    Raises:
        DeadlineExceededError: When ``deadline`` is done before an attempt.
    """
    bound = deadline or Deadline.never()
    attempts = max(max_attempts, 1)

    for number in range(1, attempts):
        if bound.done():
            raise DeadlineExceededError(resource, identifier, "updated")
        try:
            return attempt()
        except PlatformClientError as exc:
            if not is_api_error(exc, HTTPStatus.CONFLICT):
                raise
            logger.debug(
                "upsert.update.conflict",
                resource=resource,
                identifier=identifier,
                attempt=number,
                max_attempts=attempts,
            )
        bound.sleep(interval)

    # the final conflict propagates unchanged
    if bound.done():
        raise DeadlineExceededError(resource, identifier, "updated")
    return attempt()


class Upserter:
    """Idempotent create-or-update for resources with asynchronous lifecycles."""

    def __init__(self, target: Upsertable, settings: RetrySettings | None = None) -> None:
        self.target = target
        self.settings = settings or RetrySettings()

    def upsert(self, identifier: str, payload: bytes, *, deadline: Deadline | None = None) -> Response:
        """Create ``identifier`` or update it when it already exists.

        Create failures other than 409 are raised without attempting an
        update. A conflicting resource that is being deleted is awaited and
        then recreated; an update that finds the resource gone does the same.
        """
        resource = self.target.resource_name
        bound = (deadline or Deadline.never()).bounded(self.settings.max_wait_seconds)
        cycles = self.settings.conflict_attempts
        last_error: PlatformClientError | None = None

        for _ in range(cycles):
            if bound.done():
                raise DeadlineExceededError(resource, identifier, "created or updated")

            try:
                response = self.target.create(identifier, payload, deadline=bound)
            except PlatformClientError as exc:
                if not is_api_error(exc, HTTPStatus.CONFLICT):
                    raise
                last_error = exc
            else:
                logger.info("upsert.created", resource=resource, identifier=identifier)
                return response

            logger.debug("upsert.create.conflict", resource=resource, identifier=identifier)
            try:
                existing = self.target.get(identifier)
            except PlatformClientError as exc:
                if not is_not_found(exc):
                    raise
                last_error = exc
                continue

            if resource_status(existing) == STATE_DELETING:
                logger.info("upsert.awaiting_deletion", resource=resource, identifier=identifier)
                self.target.await_removed(identifier, deadline=bound)
                continue

            try:
                response = self.target.update(identifier, payload, deadline=bound)
            except PlatformClientError as exc:
                if not is_not_found(exc):
                    raise
                last_error = exc
                logger.info("upsert.update.vanished", resource=resource, identifier=identifier)
                self.target.await_removed(identifier, deadline=bound)
                continue

            logger.info("upsert.updated", resource=resource, identifier=identifier)
            return response

        if last_error is None:
            raise DeadlineExceededError(resource, identifier, "created or updated")
        raise last_error


__all__ = ["Upsertable", "Upserter", "update_with_conflict_retry"]
