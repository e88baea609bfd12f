from __future__ import annotations

import httpx
import pytest

from Platform_CaC.api import (
    ListResponse,
    PagedListResponse,
    Response,
    decode_json,
    decode_paginated_json_objects,
    encode_json,
    split_objects,
)
from Platform_CaC.utils.errors import APIError, DecodeError


def _httpx_response(status: int, content: bytes = b"") -> httpx.Response:
    request = httpx.Request("GET", "https://env.example.com/platform/slo/v1/slos/a")
    return httpx.Response(status, content=content, request=request)


def test_from_httpx_keeps_body_and_request():
    response = Response.from_httpx(_httpx_response(200, b'{"id":"a"}'))

    assert response.status_code == 200
    assert response.is_success()
    assert response.decode_json() == {"id": "a"}
    assert response.request.method == "GET"
    assert response.request.url.endswith("/slos/a")


def test_from_httpx_raises_api_error_with_payload():
    with pytest.raises(APIError) as excinfo:
        Response.from_httpx(_httpx_response(404, b'{"error":"gone"}'))

    err = excinfo.value
    assert err.status_code == 404
    assert err.body == b'{"error":"gone"}'
    assert err.is_4xx() and not err.is_5xx()
    assert "GET https://env.example.com/platform/slo/v1/slos/a" in str(err)


def test_from_httpx_without_request_has_empty_info():
    response = Response.from_httpx(httpx.Response(204))

    assert response.request.method == ""
    assert response.data == b""


def test_with_status_derives_new_envelope():
    original = Response(200, b"{}")
    created = original.with_status(201)

    assert created.status_code == 201
    assert original.status_code == 200
    assert created.data is original.data


def test_paged_list_response_flattens_pages_in_order():
    pages = PagedListResponse(
        [
            ListResponse(Response(200), [b'{"n":1}', b'{"n":2}']),
            ListResponse(Response(200), [b'{"n":3}']),
        ]
    )

    assert pages.all() == [b'{"n":1}', b'{"n":2}', b'{"n":3}']
    assert pages[0].decode_objects() == [{"n": 1}, {"n": 2}]
    assert decode_paginated_json_objects(pages) == [{"n": 1}, {"n": 2}, {"n": 3}]


def test_decode_json_rejects_malformed_payload():
    with pytest.raises(DecodeError):
        decode_json(b"{not json")


def test_split_objects_reencodes_compactly():
    assert split_objects([{"a": 1}, {"b": [1, 2]}]) == [b'{"a":1}', b'{"b":[1,2]}']
    assert encode_json({"k": "v"}) == b'{"k":"v"}'
