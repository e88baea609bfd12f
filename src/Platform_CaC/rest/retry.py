"""Response-driven retry strategies for the transport.

Key Responsibilities:
    - Define the ``RetryStrategy`` capability consulted after every completed
      response (never after a transport failure)
    - Provide the named strategies resource clients select per call
    - Describe the transport retry budget via ``RetryOptions``

Thread Safety:
    - Thread-safe; strategies are stateless
"""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from typing import Protocol, runtime_checkable

import httpx

# ==============================================================================
# TYPE DEFINITIONS
# ==============================================================================


@runtime_checkable
class RetryStrategy(Protocol):
    """Decides whether a completed response should be re-issued."""

    def should_retry(self, response: httpx.Response) -> bool: ...


def is_success(status_code: int) -> bool:
    return 200 <= status_code <= 299


# ==============================================================================
# NAMED STRATEGIES
# ==============================================================================


class RetryIfNotSuccess:
    """Retry on any non-2xx status code."""

    def should_retry(self, response: httpx.Response) -> bool:
        return not is_success(response.status_code)

    def __repr__(self) -> str:
        return "RetryIfNotSuccess()"


class RetryIfTooManyRequests:
    """Retry only when the server throttled the request (429)."""

    def should_retry(self, response: httpx.Response) -> bool:
        return response.status_code == HTTPStatus.TOO_MANY_REQUESTS

    def __repr__(self) -> str:
        return "RetryIfTooManyRequests()"


class RetryOnFailureExcept404:
    """Retry failed responses except 404, which is a meaningful answer."""

    def should_retry(self, response: httpx.Response) -> bool:
        return not is_success(response.status_code) and response.status_code != HTTPStatus.NOT_FOUND

    def __repr__(self) -> str:
        return "RetryOnFailureExcept404()"


class RetryIfNotSuccessExcept403:
    """Retry failed responses except 403, used for elevated-access attempts."""

    def should_retry(self, response: httpx.Response) -> bool:
        return not is_success(response.status_code) and response.status_code != HTTPStatus.FORBIDDEN

    def __repr__(self) -> str:
        return "RetryIfNotSuccessExcept403()"


@dataclass(frozen=True, slots=True)
class AllOf:
    """Retry only when every wrapped strategy agrees."""

    strategies: tuple[RetryStrategy, ...]

    def should_retry(self, response: httpx.Response) -> bool:
        return all(strategy.should_retry(response) for strategy in self.strategies)


class NeverRetry:
    def should_retry(self, response: httpx.Response) -> bool:
        return False

    def __repr__(self) -> str:
        return "NeverRetry()"


def should_retry_status(status_code: int) -> bool:
    """Generic status classification: retry every failure except 403."""
    if is_success(status_code):
        return False
    return status_code != HTTPStatus.FORBIDDEN


# ==============================================================================
# RETRY BUDGET
# ==============================================================================


@dataclass(frozen=True, slots=True)
class RetryOptions:
    """Transport retry budget.

    ``strategy`` is the client-wide default; a strategy passed with a single
    request replaces it for that request only.
    """

    max_retries: int = 5
    delay_after_retry: float = 0.1
    strategy: RetryStrategy | None = None

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("RetryOptions.max_retries must be >= 0")
        if self.delay_after_retry < 0:
            raise ValueError("RetryOptions.delay_after_retry must be >= 0")


__all__ = [
    "AllOf",
    "NeverRetry",
    "RetryIfNotSuccess",
    "RetryIfNotSuccessExcept403",
    "RetryIfTooManyRequests",
    "RetryOnFailureExcept404",
    "RetryOptions",
    "RetryStrategy",
    "is_success",
    "should_retry_status",
]
