from __future__ import annotations

from datetime import timedelta

import pytest

from Platform_CaC.api import Response
from Platform_CaC.clients.convergence import RetrySettings
from Platform_CaC.clients.upsert import Upserter, update_with_conflict_retry
from Platform_CaC.utils.deadline import Deadline
from Platform_CaC.utils.errors import (
    APIError,
    ClientError,
    DeadlineExceededError,
    TransportError,
    is_api_error,
)


def _api(operation: str, status: int) -> ClientError:
    return ClientError(operation, "widget", APIError(status), identifier="w")


def _doc(status: str) -> Response:
    return Response(200, f'{{"status":"{status}"}}'.encode())


class FakeTarget:
    """Scripted ``Upsertable``; each operation pops its next outcome."""

    resource_name = "widget"

    def __init__(self, **scripts):
        self.scripts = {name: list(outcomes) for name, outcomes in scripts.items()}
        self.calls: list[str] = []

    def _next(self, name: str):
        self.calls.append(name)
        outcome = self.scripts[name].pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    def create(self, identifier, payload, *, deadline=None):
        return self._next("create")

    def get(self, identifier):
        return self._next("get")

    def update(self, identifier, payload, *, deadline=None):
        return self._next("update")

    def await_removed(self, identifier, *, deadline=None):
        return self._next("await_removed")


SETTINGS = RetrySettings(interval_between_tries=timedelta(0), max_wait_duration=timedelta(seconds=5))


def test_upsert_creates_when_absent():
    target = FakeTarget(create=[Response(201)])

    assert Upserter(target, SETTINGS).upsert("w", b"{}").status_code == 201
    assert target.calls == ["create"]


def test_upsert_updates_on_conflict():
    target = FakeTarget(create=[_api("create", 409)], get=[_doc("active")], update=[Response(200)])

    assert Upserter(target, SETTINGS).upsert("w", b"{}").status_code == 200
    assert target.calls == ["create", "get", "update"]


def test_upsert_waits_for_deletion_then_recreates():
    target = FakeTarget(
        create=[_api("create", 409), Response(201)],
        get=[_doc("deleting")],
        await_removed=[None],
    )

    assert Upserter(target, SETTINGS).upsert("w", b"{}").status_code == 201
    assert target.calls == ["create", "get", "await_removed", "create"]


def test_upsert_recreates_when_update_finds_resource_gone():
    target = FakeTarget(
        create=[_api("create", 409), Response(201)],
        get=[_doc("active")],
        update=[_api("update", 404)],
        await_removed=[None],
    )

    assert Upserter(target, SETTINGS).upsert("w", b"{}").status_code == 201
    assert target.calls == ["create", "get", "update", "await_removed", "create"]


def test_upsert_retries_when_conflicting_resource_vanishes():
    target = FakeTarget(create=[_api("create", 409), Response(201)], get=[_api("get", 404)])

    assert Upserter(target, SETTINGS).upsert("w", b"{}").status_code == 201


def test_upsert_does_not_update_after_other_create_failures():
    target = FakeTarget(create=[_api("create", 500)])

    with pytest.raises(ClientError) as excinfo:
        Upserter(target, SETTINGS).upsert("w", b"{}")

    assert is_api_error(excinfo.value, 500)
    assert target.calls == ["create"]


def test_upsert_cycles_are_bounded_by_max_retries():
    settings = RetrySettings(max_retries=2, interval_between_tries=timedelta(0))
    target = FakeTarget(
        create=[_api("create", 409), _api("create", 409)],
        get=[_api("get", 404), _api("get", 404)],
    )

    with pytest.raises(ClientError) as excinfo:
        Upserter(target, settings).upsert("w", b"{}")

    assert is_api_error(excinfo.value, 404)
    assert target.calls.count("create") == 2


def test_upsert_honours_cancelled_deadline():
    deadline = Deadline.never()
    deadline.cancel()
    target = FakeTarget()

    with pytest.raises(DeadlineExceededError):
        Upserter(target, SETTINGS).upsert("w", b"{}", deadline=deadline)

    assert target.calls == []


def test_conflict_retry_counts_attempts_exactly():
    attempts = []

    def attempt():
        attempts.append(1)
        raise _api("update", 409)

    with pytest.raises(ClientError):
        update_with_conflict_retry(attempt, resource="widget", identifier="w", max_attempts=4)

    assert len(attempts) == 4


def test_conflict_retry_stops_on_other_errors():
    attempts = []

    def attempt():
        attempts.append(1)
        raise TransportError("reset")

    with pytest.raises(TransportError):
        update_with_conflict_retry(attempt, resource="widget", identifier="w", max_attempts=4)

    assert len(attempts) == 1


def test_conflict_retry_returns_first_success():
    outcomes = [_api("update", 409), Response(200)]

    def attempt():
        outcome = outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    result = update_with_conflict_retry(attempt, resource="widget", identifier="w", max_attempts=3)

    assert result.status_code == 200


def test_conflict_retry_single_attempt_raises_conflict():
    attempts = []

    def attempt():
        attempts.append(1)
        raise _api("update", 409)

    with pytest.raises(ClientError) as excinfo:
        update_with_conflict_retry(attempt, resource="widget", identifier="w", max_attempts=1)

    assert is_api_error(excinfo.value, 409)
    assert len(attempts) == 1
