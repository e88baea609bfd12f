"""Resilient HTTP transport: concurrency, rate limiting, retries, listeners."""

from .client import DEFAULT_CONTENT_TYPE, RequestOptions, RestClient
from .concurrency import ConcurrencyLimiter
from .listener import HTTPListener, RequestResponse, RequestResponseRecorder
from .rate import RateLimiter
from .retry import (
    AllOf,
    NeverRetry,
    RetryIfNotSuccess,
    RetryIfNotSuccessExcept403,
    RetryIfTooManyRequests,
    RetryOnFailureExcept404,
    RetryOptions,
    RetryStrategy,
    is_success,
    should_retry_status,
)

__all__ = [
    "AllOf",
    "ConcurrencyLimiter",
    "DEFAULT_CONTENT_TYPE",
    "HTTPListener",
    "NeverRetry",
    "RateLimiter",
    "RequestOptions",
    "RequestResponse",
    "RequestResponseRecorder",
    "RestClient",
    "RetryIfNotSuccess",
    "RetryIfNotSuccessExcept403",
    "RetryIfTooManyRequests",
    "RetryOnFailureExcept404",
    "RetryOptions",
    "RetryStrategy",
    "is_success",
    "should_retry_status",
]
