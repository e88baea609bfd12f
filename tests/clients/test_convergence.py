from __future__ import annotations

from datetime import timedelta

import pytest

from Platform_CaC.api import Response
from Platform_CaC.clients.convergence import RetrySettings, TargetState, await_state
from Platform_CaC.utils.deadline import Deadline
from Platform_CaC.utils.errors import (
    APIError,
    ClientError,
    DeadlineExceededError,
    TransportError,
)


def _status(value: str) -> Response:
    return Response(200, f'{{"status":"{value}"}}'.encode())


class Replay:
    """Fetch callable replaying results; exceptions are raised."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = 0

    def __call__(self) -> Response:
        self.calls += 1
        result = self.results.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result


def test_await_active_polls_until_active(fast_settings):
    fetch = Replay(_status("creating"), _status("updating"), _status("active"))

    response = await_state(
        fetch,
        resource="bucket",
        identifier="logs",
        target=TargetState.ACTIVE,
        settings=fast_settings,
        normalize_created=True,
    )

    assert fetch.calls == 3
    assert response.status_code == 201


def test_await_active_keeps_polling_through_http_errors(fast_settings):
    fetch = Replay(ClientError("get", "bucket", APIError(404)), _status("active"))

    response = await_state(
        fetch, resource="bucket", identifier="logs", target=TargetState.ACTIVE, settings=fast_settings
    )

    assert response.status_code == 200


def test_await_removed_returns_on_not_found(fast_settings):
    fetch = Replay(_status("deleting"), ClientError("get", "bucket", APIError(404)))

    result = await_state(
        fetch, resource="bucket", identifier="logs", target=TargetState.REMOVED, settings=fast_settings
    )

    assert result is None
    assert fetch.calls == 2


def test_transport_error_aborts_wait(fast_settings):
    fetch = Replay(TransportError("connection reset"))

    with pytest.raises(TransportError):
        await_state(
            fetch, resource="bucket", identifier="logs", target=TargetState.ACTIVE, settings=fast_settings
        )


def test_wait_fails_after_poll_cap():
    settings = RetrySettings(max_retries=2, interval_between_tries=timedelta(0))
    fetch = Replay(_status("creating"), _status("creating"), _status("active"))

    with pytest.raises(DeadlineExceededError) as excinfo:
        await_state(fetch, resource="bucket", identifier="logs", target=TargetState.ACTIVE, settings=settings)

    assert fetch.calls == 2
    assert excinfo.value.waiting_for == "active"


def test_expired_deadline_fails_without_polling(fast_settings):
    deadline = Deadline.never()
    deadline.cancel()
    fetch = Replay()

    with pytest.raises(DeadlineExceededError):
        await_state(
            fetch,
            resource="bucket",
            identifier="logs",
            target=TargetState.REMOVED,
            settings=fast_settings,
            deadline=deadline,
        )

    assert fetch.calls == 0


def test_wait_bounded_by_max_wait_duration():
    settings = RetrySettings(
        interval_between_tries=timedelta(milliseconds=10),
        max_wait_duration=timedelta(milliseconds=50),
    )
    pending = _status("creating")

    with pytest.raises(DeadlineExceededError):
        await_state(
            lambda: pending,
            resource="bucket",
            identifier="logs",
            target=TargetState.ACTIVE,
            settings=settings,
        )
