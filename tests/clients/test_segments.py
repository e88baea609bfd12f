from __future__ import annotations

import httpx
import pytest

from Platform_CaC.clients.segments import ENDPOINT, GET_FIELDS, SegmentsClient
from Platform_CaC.utils.errors import ClientError, DecodeError, ValidationError

from tests.helpers import Recorder, json_response

PATH = f"/{ENDPOINT}/seg-1"


def test_list_uses_lean_endpoint(make_rest_client):
    recorder = Recorder(
        [json_response(200, {"filterSegments": [{"uid": "seg-1", "externalId": "x"}], "totalCount": 1})]
    )

    response = SegmentsClient(make_rest_client(recorder)).list()

    assert recorder.calls == [("GET", f"/{ENDPOINT}:lean")]
    assert recorder.requests[0].url.params.get_list("add-fields") == ["EXTERNALID"]
    assert response.decode_json() == [{"uid": "seg-1", "externalId": "x"}]


def test_get_all_fetches_each_segment_with_fields(make_rest_client):
    recorder = Recorder(
        [
            json_response(200, {"filterSegments": [{"uid": "seg-1"}, {"uid": "seg-2"}]}),
            json_response(200, {"uid": "seg-1"}),
            json_response(200, {"uid": "seg-2"}),
        ]
    )

    documents = SegmentsClient(make_rest_client(recorder)).get_all()

    assert len(documents) == 2
    assert recorder.requests[1].url.params.get_list("add-fields") == list(GET_FIELDS)


def test_update_keeps_owner_and_sets_uid(make_rest_client):
    recorder = Recorder(
        [json_response(200, {"uid": "seg-1", "version": 4, "owner": "team-a"}), httpx.Response(200)]
    )

    SegmentsClient(make_rest_client(recorder)).update("seg-1", {"name": "prod hosts"})

    assert recorder.calls == [("GET", PATH), ("PUT", PATH)]
    assert recorder.params(1) == {"optimistic-locking-version": "4"}
    assert recorder.body(1) == {"name": "prod hosts", "owner": "team-a", "uid": "seg-1"}


def test_update_without_version_is_a_decode_error(make_rest_client):
    recorder = Recorder([json_response(200, {"uid": "seg-1", "owner": "team-a"})])

    with pytest.raises(ClientError) as excinfo:
        SegmentsClient(make_rest_client(recorder)).update("seg-1", {"name": "prod hosts"})

    assert isinstance(excinfo.value.wrapped, DecodeError)
    assert "missing version" in str(excinfo.value)


def test_upsert_creates_missing_segment(make_rest_client):
    recorder = Recorder([httpx.Response(404), json_response(201, {"uid": "seg-1"})])

    response = SegmentsClient(make_rest_client(recorder)).upsert("seg-1", {"name": "prod hosts"})

    assert response.status_code == 201
    assert recorder.calls == [("GET", PATH), ("POST", f"/{ENDPOINT}")]


def test_upsert_updates_existing_segment(make_rest_client):
    recorder = Recorder(
        [json_response(200, {"uid": "seg-1", "version": 2, "owner": "team-b"}), httpx.Response(200)]
    )

    SegmentsClient(make_rest_client(recorder)).upsert("seg-1", {"name": "prod hosts"})

    assert recorder.calls[-1] == ("PUT", PATH)
    assert recorder.params(1) == {"optimistic-locking-version": "2"}
    assert recorder.body(1)["owner"] == "team-b"


def test_delete_rejects_empty_identifier(make_rest_client):
    recorder = Recorder([])

    with pytest.raises(ValidationError):
        SegmentsClient(make_rest_client(recorder)).delete("")

    assert recorder.requests == []
