from __future__ import annotations

import httpx
import pytest

from Platform_CaC.clients.automation import AutomationClient, ResourceType
from Platform_CaC.rest import RetryOptions
from Platform_CaC.utils.errors import ClientError, PaginationError, is_api_error

from tests.helpers import Recorder, json_response

WORKFLOWS = "/platform/automation/v1/workflows"


@pytest.fixture
def automation(make_rest_client):
    def _build(recorder: Recorder) -> AutomationClient:
        return AutomationClient(make_rest_client(recorder))

    return _build


def test_workflow_list_drops_admin_access_after_forbidden(automation):
    recorder = Recorder(
        [
            httpx.Response(403),
            json_response(200, {"count": 3, "results": [{"id": "w1"}, {"id": "w2"}]}),
            json_response(200, {"count": 3, "results": [{"id": "w3"}]}),
        ]
    )

    pages = automation(recorder).list(ResourceType.WORKFLOWS)

    assert len(pages.all()) == 3
    assert recorder.params(0) == {"offset": "0", "adminAccess": "true"}
    assert recorder.params(1) == {"offset": "0"}
    assert recorder.params(2) == {"offset": "2"}


def test_workflow_list_keeps_admin_access_when_permitted(automation):
    recorder = Recorder(
        [
            json_response(200, {"count": 2, "results": [{"id": "w1"}]}),
            json_response(200, {"count": 2, "results": [{"id": "w2"}]}),
        ]
    )

    automation(recorder).list(ResourceType.WORKFLOWS)

    assert recorder.params(1) == {"offset": "1", "adminAccess": "true"}


def test_calendar_requests_never_carry_admin_access(automation):
    recorder = Recorder([json_response(200, {"id": "cal", "title": "Holidays"})])

    automation(recorder).get(ResourceType.BUSINESS_CALENDARS, "cal")

    assert recorder.calls == [("GET", "/platform/automation/v1/business-calendars/cal")]
    assert recorder.params(0) == {}


def test_list_failure_reports_partial_pages(automation):
    recorder = Recorder(
        [
            json_response(200, {"count": 4, "results": [{"id": "r1"}, {"id": "r2"}]}),
            httpx.Response(500),
        ]
    )

    with pytest.raises(PaginationError) as excinfo:
        automation(recorder).list(ResourceType.SCHEDULING_RULES)

    assert len(excinfo.value.partial.all()) == 2


def test_update_strips_client_supplied_id(automation):
    recorder = Recorder([json_response(200, {"id": "w1"})])

    automation(recorder).update(ResourceType.WORKFLOWS, "w1", {"id": "w1", "title": "Nightly"})

    assert recorder.calls == [("PUT", f"{WORKFLOWS}/w1")]
    assert recorder.body(0) == {"title": "Nightly"}


def test_upsert_creates_with_id_when_missing(automation):
    recorder = Recorder([httpx.Response(404), json_response(201, {"id": "w1"})])

    response = automation(recorder).upsert(ResourceType.WORKFLOWS, "w1", {"title": "Nightly"})

    assert response.status_code == 201
    assert recorder.calls == [("PUT", f"{WORKFLOWS}/w1"), ("POST", WORKFLOWS)]
    assert recorder.body(1) == {"title": "Nightly", "id": "w1"}


def test_upsert_surfaces_other_update_failures(automation):
    recorder = Recorder([httpx.Response(400)])

    with pytest.raises(ClientError) as excinfo:
        automation(recorder).upsert(ResourceType.WORKFLOWS, "w1", {"title": "Nightly"})

    assert is_api_error(excinfo.value, 400)
    assert len(recorder.requests) == 1


def test_delete_reports_not_found_without_retrying(make_rest_client):
    recorder = Recorder([httpx.Response(404)])
    client = AutomationClient(make_rest_client(recorder, retry_options=RetryOptions(max_retries=3)))

    with pytest.raises(ClientError) as excinfo:
        client.delete(ResourceType.SCHEDULING_RULES, "r1")

    assert is_api_error(excinfo.value, 404)
    assert len(recorder.requests) == 1
