"""Response envelopes and JSON decoding helpers."""

from .response import (
    ListResponse,
    PagedListResponse,
    Response,
    decode_json,
    decode_json_objects,
    decode_paginated_json_objects,
    encode_json,
    request_info,
    split_objects,
)

__all__ = [
    "ListResponse",
    "PagedListResponse",
    "Response",
    "decode_json",
    "decode_json_objects",
    "decode_paginated_json_objects",
    "encode_json",
    "request_info",
    "split_objects",
]
