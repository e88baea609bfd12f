from __future__ import annotations

from collections.abc import Callable
from datetime import timedelta
from typing import Any

import httpx
import pytest

from Platform_CaC.clients.convergence import RetrySettings
from Platform_CaC.rest import RestClient, RetryOptions

from .helpers import BASE_URL


@pytest.fixture
def no_sleep() -> Callable[[float], None]:
    sleeps: list[float] = []

    def _sleep(seconds: float) -> None:
        sleeps.append(seconds)

    _sleep.calls = sleeps  # type: ignore[attr-defined]
    return _sleep


@pytest.fixture
def make_rest_client(no_sleep) -> Callable[..., RestClient]:
    def _factory(handler: Callable[[httpx.Request], httpx.Response], **kwargs: Any) -> RestClient:
        kwargs.setdefault("sleep", no_sleep)
        kwargs.setdefault("retry_options", RetryOptions(max_retries=0))
        return RestClient(BASE_URL, transport=httpx.MockTransport(handler), **kwargs)

    return _factory


@pytest.fixture
def fast_settings() -> RetrySettings:
    return RetrySettings(
        max_retries=None,
        interval_between_tries=timedelta(0),
        max_wait_duration=timedelta(seconds=5),
    )
