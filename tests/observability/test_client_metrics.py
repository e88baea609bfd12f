"""Tests for Prometheus metrics recorded by the transport and clients."""

import httpx
from prometheus_client import REGISTRY

from Platform_CaC.clients.privilege import PrivilegeFallback
from Platform_CaC.rest import RetryIfNotSuccess, RetryOptions

from tests.helpers import Recorder


def _sample(name: str, **labels: str) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


def test_attempts_and_retries_are_counted(make_rest_client) -> None:
    before_attempts = _sample("platform_cac_http_requests_total", method="PATCH", status="502")
    before_retries = _sample("platform_cac_http_retries_total", method="PATCH", status="502")
    client = make_rest_client(
        Recorder([httpx.Response(502), httpx.Response(200)]),
        retry_options=RetryOptions(max_retries=1, strategy=RetryIfNotSuccess()),
    )

    client.patch("resource", b"{}")

    assert _sample("platform_cac_http_requests_total", method="PATCH", status="502") == before_attempts + 1
    assert _sample("platform_cac_http_retries_total", method="PATCH", status="502") == before_retries + 1


def test_privilege_fallback_is_counted(make_rest_client) -> None:
    before = _sample("platform_cac_privilege_fallbacks_total", resource="metrics-test")
    client = make_rest_client(Recorder([httpx.Response(403), httpx.Response(200)]))

    PrivilegeFallback("metrics-test").send(lambda options: client.get("resource", options))

    assert _sample("platform_cac_privilege_fallbacks_total", resource="metrics-test") == before + 1
