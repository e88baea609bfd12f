"""Polling until an asynchronously provisioned resource reaches a target state.

Key Responsibilities:
    - Turn eventually consistent server operations into bounded synchronous
      waits (``active`` after creation, ``removed`` after deletion)
    - Abort on transport failures, keep polling on other HTTP failures
    - Fail with :class:`DeadlineExceededError` once the wait bound is reached

Collaborators:
    - Upstream: bucket client, :class:`Platform_CaC.clients.upsert.Upserter`
    - Downstream: a caller supplied fetch callable

Side Effects:
    - Sleeps the calling thread between polls; increments
      ``platform_cac_convergence_polls_total``

Thread Safety:
    - Thread-safe; every wait keeps its state on the stack

Note:
    Polls use a fixed interval. Exponential backoff with jitter would reduce
    load on slow provisioning but is not needed at the current poll rates.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from enum import Enum
from http import HTTPStatus

import structlog

from Platform_CaC.api.response import Response
from Platform_CaC.observability.metrics import record_convergence_poll
from Platform_CaC.utils.deadline import Deadline
from Platform_CaC.utils.errors import DeadlineExceededError, PlatformClientError, as_api_error

logger = structlog.get_logger(__name__)

STATE_ACTIVE = "active"
STATE_DELETING = "deleting"

DEFAULT_CONFLICT_ATTEMPTS = 10

# ==============================================================================
# TYPE DEFINITIONS
# ==============================================================================


class TargetState(str, Enum):
    """Terminal conditions a wait can converge on."""

    ACTIVE = "active"
    REMOVED = "removed"


@dataclass(frozen=True, slots=True)
class RetrySettings:
    """Bounds of polling and conflict-retry loops.

    ``max_wait_duration`` always applies. ``max_retries`` is an optional
    additional cap on the number of polls and the number of update attempts
    under sustained conflicts; ``None`` leaves polls bounded by time only and
    conflict retries at :data:`DEFAULT_CONFLICT_ATTEMPTS`.
    """

    max_retries: int | None = None
    interval_between_tries: timedelta = timedelta(seconds=1)
    max_wait_duration: timedelta = timedelta(minutes=2)

    @property
    def interval_seconds(self) -> float:
        return self.interval_between_tries.total_seconds()

    @property
    def max_wait_seconds(self) -> float:
        return self.max_wait_duration.total_seconds()

    @property
    def conflict_attempts(self) -> int:
        return self.max_retries or DEFAULT_CONFLICT_ATTEMPTS


def resource_status(response: Response) -> str:
    """Return the ``status`` field of a resource document, or ``""``."""
    try:
        document = json.loads(response.data)
    except (TypeError, ValueError):
        return ""
    if not isinstance(document, dict):
        return ""
    status = document.get("status")
    return status if isinstance(status, str) else ""


# ==============================================================================
# CONVERGENCE
# ==============================================================================


def await_state(
    fetch: Callable[[], Response],
    *,
    resource: str,
    identifier: str,
    target: TargetState,
    settings: RetrySettings,
    deadline: Deadline | None = None,
    normalize_created: bool = False,
    active_marker: str = STATE_ACTIVE,
) -> Response | None:
    """Poll ``fetch`` until the resource reaches ``target``.

    Args:
        fetch: Issues one GET for the resource. HTTP failures must surface as
            (possibly wrapped) :class:`APIError`.
        resource: Resource family name used in logs and errors.
        identifier: Identifier of the polled resource.
        target: State to wait for.
        settings: Interval and bounds of the wait.
        deadline: Caller deadline; the effective bound is the earlier of it
            and ``settings.max_wait_duration``.
        normalize_created: Report an ``active`` result with status 201 so a
            finished creation is distinguishable from a plain read.
        active_marker: Value of the ``status`` field meaning usable.

    Returns:
        The last fetched envelope for ``ACTIVE``, ``None`` for ``REMOVED``.

    Raises:
        DeadlineExceededError: When the bound elapses (or the poll cap is hit)
            before the target state is observed.
        PlatformClientError: Transport and decode failures of ``fetch``.
    """
    bound = (deadline or Deadline.never()).bounded(settings.max_wait_seconds)
    polls = 0

    while not bound.done():
        polls += 1
        record_convergence_poll(resource, target.value)
        try:
            response = fetch()
        except PlatformClientError as exc:
            api_err = as_api_error(exc)
            if api_err is None:
                raise
            if target is TargetState.REMOVED and api_err.status_code == HTTPStatus.NOT_FOUND:
                logger.debug("convergence.removed", resource=resource, identifier=identifier, polls=polls)
                return None
            logger.debug(
                "convergence.poll.http_error",
                resource=resource,
                identifier=identifier,
                status_code=api_err.status_code,
            )
        else:
            status = resource_status(response)
            if target is TargetState.ACTIVE and status == active_marker:
                logger.debug("convergence.active", resource=resource, identifier=identifier, polls=polls)
                return response.with_status(HTTPStatus.CREATED.value) if normalize_created else response
            logger.debug(
                "convergence.poll.pending",
                resource=resource,
                identifier=identifier,
                status=status,
                target=target.value,
            )

        if settings.max_retries and polls >= settings.max_retries:
            break
        bound.sleep(settings.interval_seconds)

    raise DeadlineExceededError(resource, identifier, target.value)


__all__ = [
    "DEFAULT_CONFLICT_ATTEMPTS",
    "RetrySettings",
    "STATE_ACTIVE",
    "STATE_DELETING",
    "TargetState",
    "await_state",
    "resource_status",
]
