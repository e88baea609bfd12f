"""Resilient synchronous HTTP transport shared by every resource client.

Key Responsibilities:
    - Join endpoint paths onto a base URL and apply fixed headers
    - Bound in-flight requests with an injected :class:`ConcurrencyLimiter`
    - Pace requests with an optional header-driven :class:`RateLimiter`
    - Re-issue completed responses selected by a :class:`RetryStrategy`
      after a fixed delay using ``tenacity``
    - Report every request and response to an optional :class:`HTTPListener`

Collaborators:
    - Upstream: ``Platform_CaC.clients`` resource clients
    - Downstream: ``httpx.Client`` (authentication is configured on it)

Side Effects:
    - Emits an OpenTelemetry ``http.request`` span and Prometheus metrics per
      attempt

Thread Safety:
    - Thread-safe; a single instance is meant to be shared across threads

Example:
    >>> client = RestClient("https://env.example.com", retry_options=RetryOptions(3))
    >>> response = client.get("platform/slo/v1/slos")
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

import httpx
import structlog
from opentelemetry import trace
from tenacity import RetryCallState, Retrying, retry_if_result, stop_after_attempt, wait_fixed

from Platform_CaC.observability.metrics import record_http_attempt, record_http_retry
from Platform_CaC.utils.errors import RequestInfo, TransportError

from .concurrency import ConcurrencyLimiter
from .listener import HTTPListener
from .rate import RateLimiter
from .retry import RetryOptions, RetryStrategy

logger = structlog.get_logger(__name__)

DEFAULT_CONTENT_TYPE = "application/json"

# ==============================================================================
# TYPE DEFINITIONS
# ==============================================================================


@dataclass(frozen=True, slots=True)
class RequestOptions:
    """Per-request options.

    ``content_type`` overrides the default ``application/json`` for a single
    request. ``retry_strategy`` replaces the client-wide strategy for this
    request only.
    """

    query_params: Mapping[str, Any] = field(default_factory=dict)
    content_type: str = ""
    retry_strategy: RetryStrategy | None = None


def _is_connection_reset(exc: BaseException) -> bool:
    if isinstance(exc, httpx.RemoteProtocolError):
        return True
    cause = exc.__cause__ or exc.__context__
    while cause is not None:
        if isinstance(cause, ConnectionResetError):
            return True
        cause = cause.__cause__ or cause.__context__
    return "connection reset" in str(exc).lower()


# ==============================================================================
# CLIENT
# ==============================================================================


class RestClient:
    """HTTP transport with concurrency limiting, rate limiting and retries.

    Non-2xx responses are returned, never raised. Only failures without a
    response (connect errors, resets, timeouts) raise :class:`TransportError`.
    """

    def __init__(
        self,
        base_url: str,
        *,
        http_client: httpx.Client | None = None,
        transport: httpx.BaseTransport | None = None,
        auth: httpx.Auth | None = None,
        timeout: float = 30.0,
        headers: Mapping[str, str] | None = None,
        concurrency_limiter: ConcurrencyLimiter | None = None,
        rate_limiter: RateLimiter | None = None,
        retry_options: RetryOptions | None = None,
        listener: HTTPListener | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """Create a transport.

        Args:
            base_url: Root URL every endpoint path is joined onto.
            http_client: Pre-configured (typically authenticated) client. When
                omitted one is built from ``transport``, ``auth`` and ``timeout``.
            transport: Optional httpx transport override used in tests.
            auth: Authentication applied when ``http_client`` is built here.
            timeout: Request timeout in seconds.
            headers: Fixed headers set on every request.
            concurrency_limiter: Shared bound on in-flight requests.
            rate_limiter: Optional header-driven rate limiter.
            retry_options: Retry budget and default strategy.
            listener: Optional request/response observer.
            sleep: Blocking sleep between retries.
        """
        self.base_url = base_url.rstrip("/")
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(transport=transport, auth=auth, timeout=timeout)
        self._headers: dict[str, str] = dict(headers or {})
        self._concurrency = concurrency_limiter or ConcurrencyLimiter(0)
        self._rate_limiter = rate_limiter
        self._retry_options = retry_options or RetryOptions(max_retries=0)
        self._listener = listener
        self._sleep = sleep
        self._tracer = trace.get_tracer(__name__)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def set_header(self, key: str, value: str) -> None:
        self._headers[key] = value

    def url_for(self, path: str) -> str:
        path = path.lstrip("/")
        return f"{self.base_url}/{path}" if path else self.base_url

    def get(self, path: str, options: RequestOptions | None = None) -> httpx.Response:
        return self.send("GET", path, None, options)

    def post(
        self, path: str, body: bytes | str | None, options: RequestOptions | None = None
    ) -> httpx.Response:
        return self.send("POST", path, body, options)

    def put(
        self, path: str, body: bytes | str | None, options: RequestOptions | None = None
    ) -> httpx.Response:
        return self.send("PUT", path, body, options)

    def patch(
        self, path: str, body: bytes | str | None, options: RequestOptions | None = None
    ) -> httpx.Response:
        return self.send("PATCH", path, body, options)

    def delete(self, path: str, options: RequestOptions | None = None) -> httpx.Response:
        return self.send("DELETE", path, None, options)

    def send(
        self,
        method: str,
        path: str,
        body: bytes | str | None = None,
        options: RequestOptions | None = None,
    ) -> httpx.Response:
        """Send a request, retrying completed responses the strategy selects.

        Returns:
            The last response received. When the retry budget is exhausted the
            last (failed) response is returned as-is.

        Raises:
            TransportError: When no response could be obtained.
        """
        options = options or RequestOptions()
        content = body.encode("utf-8") if isinstance(body, str) else body
        strategy = options.retry_strategy or self._retry_options.strategy

        def _attempt() -> httpx.Response:
            return self._send_once(method, path, content, options)

        if strategy is None or self._retry_options.max_retries == 0:
            return _attempt()

        retrying = Retrying(
            retry=retry_if_result(strategy.should_retry),
            stop=stop_after_attempt(self._retry_options.max_retries + 1),
            wait=wait_fixed(self._retry_options.delay_after_retry),
            sleep=self._sleep,
            before_sleep=self._log_retry,
            retry_error_callback=lambda state: state.outcome.result(),
        )
        return retrying(_attempt)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    @contextmanager
    def lifespan(self) -> Iterator[RestClient]:
        try:
            yield self
        finally:
            self.close()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _build_request(
        self, method: str, path: str, content: bytes | None, options: RequestOptions
    ) -> httpx.Request:
        headers = {"Content-Type": options.content_type or DEFAULT_CONTENT_TYPE}
        headers.update(self._headers)
        return self._client.build_request(
            method,
            self.url_for(path),
            params=dict(options.query_params) or None,
            content=content,
            headers=headers,
        )

    def _send_once(
        self, method: str, path: str, content: bytes | None, options: RequestOptions
    ) -> httpx.Response:
        if self._rate_limiter is not None:
            self._rate_limiter.wait()

        with self._concurrency.slot():
            request = self._build_request(method, path, content, options)
            info = RequestInfo(method=method, url=str(request.url))
            request_id = str(uuid.uuid4())
            if self._listener is not None:
                self._listener.on_request(request_id, request)

            start = time.perf_counter()
            with self._tracer.start_as_current_span("http.request") as span:
                span.set_attribute("http.method", method)
                span.set_attribute("http.url", info.url)
                try:
                    response = self._client.send(request)
                    response.read()
                except httpx.TransportError as exc:
                    record_http_attempt(method, "error", time.perf_counter() - start)
                    if self._listener is not None:
                        self._listener.on_response(request_id, None, exc)
                    if _is_connection_reset(exc):
                        message = (
                            f"unable to connect to host {request.url.host!r}, "
                            f"connection closed unexpectedly: {exc}"
                        )
                    else:
                        message = f"HTTP {method} {info.url} failed: {exc}"
                    logger.debug("rest.request.transport_error", method=method, url=info.url, error=str(exc))
                    raise TransportError(message, request=info) from exc
                span.set_attribute("http.status_code", response.status_code)

        record_http_attempt(method, response.status_code, time.perf_counter() - start)
        if self._listener is not None:
            self._listener.on_response(request_id, response)
        if self._rate_limiter is not None:
            self._rate_limiter.update(response.status_code, response.headers)
        return response

    def _log_retry(self, retry_state: RetryCallState) -> None:
        response: httpx.Response = retry_state.outcome.result()
        record_http_retry(response.request.method, response.status_code)
        logger.debug(
            "rest.request.retry",
            method=response.request.method,
            url=str(response.request.url),
            status_code=response.status_code,
            attempt=retry_state.attempt_number,
            max_retries=self._retry_options.max_retries,
            delay=self._retry_options.delay_after_retry,
        )


__all__ = ["DEFAULT_CONTENT_TYPE", "RequestOptions", "RestClient"]
