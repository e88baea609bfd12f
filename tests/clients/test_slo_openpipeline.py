from __future__ import annotations

import httpx
import pytest

from Platform_CaC.clients.openpipeline import (
    MAX_UPDATE_ATTEMPTS,
    ConfigurationSummary,
    OpenPipelineClient,
)
from Platform_CaC.clients.slo import ENDPOINT as SLO_ENDPOINT
from Platform_CaC.clients.slo import SLOClient
from Platform_CaC.utils.errors import ClientError, DecodeError, is_api_error

from tests.helpers import Recorder, json_response

SLO_PATH = f"/{SLO_ENDPOINT}/slo-1"
PIPELINE_PATH = "/platform/openpipeline/v1/configurations/logs"


def test_slo_list_follows_next_page_key(make_rest_client):
    recorder = Recorder(
        [
            json_response(200, {"slos": [{"id": "a"}], "nextPageKey": "p2", "totalCount": 2}),
            json_response(200, {"slos": [{"id": "b"}], "totalCount": 2}),
        ]
    )

    pages = SLOClient(make_rest_client(recorder)).list()

    assert pages.all() == [b'{"id":"a"}', b'{"id":"b"}']
    assert recorder.params(1) == {"page-key": "p2"}


def test_slo_update_sends_current_version(make_rest_client):
    recorder = Recorder(
        [json_response(200, {"id": "slo-1", "version": "vu9U3hXa3q0AAAABAB"}), httpx.Response(200)]
    )

    SLOClient(make_rest_client(recorder)).update("slo-1", {"name": "availability"})

    assert recorder.calls == [("GET", SLO_PATH), ("PUT", SLO_PATH)]
    assert recorder.params(1) == {"optimistic-locking-version": "vu9U3hXa3q0AAAABAB"}
    assert recorder.body(1) == {"name": "availability"}


def test_slo_delete_requires_version(make_rest_client):
    recorder = Recorder([json_response(200, {"id": "slo-1"})])

    with pytest.raises(ClientError) as excinfo:
        SLOClient(make_rest_client(recorder)).delete("slo-1")

    assert isinstance(excinfo.value.wrapped, DecodeError)
    assert len(recorder.requests) == 1


def test_slo_get_not_found_is_wrapped(make_rest_client):
    recorder = Recorder([httpx.Response(404, content=b'{"error":{"code":404}}')])

    with pytest.raises(ClientError) as excinfo:
        SLOClient(make_rest_client(recorder)).get("slo-1")

    assert is_api_error(excinfo.value, 404)
    assert excinfo.value.identifier == "slo-1"
    assert excinfo.value.wrapped.body == b'{"error":{"code":404}}'


def test_openpipeline_list_and_get_all(make_rest_client):
    recorder = Recorder(
        [
            json_response(200, [{"id": "logs", "editable": True}, {"id": "events"}]),
            json_response(200, {"id": "logs"}),
            json_response(200, {"id": "events"}),
        ]
    )
    client = OpenPipelineClient(make_rest_client(recorder))

    documents = client.get_all()

    assert [doc.decode_json()["id"] for doc in documents] == ["logs", "events"]
    assert recorder.calls[0] == ("GET", "/platform/openpipeline/v1/configurations")


def test_openpipeline_list_summaries(make_rest_client):
    recorder = Recorder([json_response(200, [{"id": "logs", "editable": True}, {"id": "events"}])])

    summaries = OpenPipelineClient(make_rest_client(recorder)).list()

    assert summaries == [ConfigurationSummary("logs", True), ConfigurationSummary("events", False)]


def test_openpipeline_update_injects_version_and_token(make_rest_client):
    recorder = Recorder(
        [
            json_response(200, {"id": "logs", "version": "7", "updateToken": "tok-7"}),
            httpx.Response(409),
            json_response(200, {"id": "logs", "version": "8", "updateToken": "tok-8"}),
            httpx.Response(200),
        ]
    )

    OpenPipelineClient(make_rest_client(recorder)).update("logs", {"id": "logs", "routing": {}})

    assert recorder.calls == [
        ("GET", PIPELINE_PATH),
        ("PUT", PIPELINE_PATH),
        ("GET", PIPELINE_PATH),
        ("PUT", PIPELINE_PATH),
    ]
    assert recorder.body(3)["version"] == "8"
    assert recorder.body(3)["updateToken"] == "tok-8"


def test_openpipeline_update_gives_up_after_max_conflicts(make_rest_client):
    responses = []
    for number in range(MAX_UPDATE_ATTEMPTS):
        responses.append(json_response(200, {"version": str(number), "updateToken": "t"}))
        responses.append(httpx.Response(409))
    recorder = Recorder(responses)

    with pytest.raises(ClientError) as excinfo:
        OpenPipelineClient(make_rest_client(recorder)).update("logs", {"id": "logs"})

    assert is_api_error(excinfo.value, 409)
    assert len(recorder.requests) == 2 * MAX_UPDATE_ATTEMPTS
