"""Prometheus metrics for the transport and the convergence protocol.

Key Responsibilities:
    - Count requests by method and status, transport retries and privilege
      fallbacks
    - Record request latency and rate-limiter wait time
    - Count convergence polls by resource and target state

Collaborators:
    - Upstream: ``Platform_CaC.rest.client`` and ``Platform_CaC.clients``
    - Downstream: Prometheus scrapers of the embedding application

Side Effects:
    - Registers collectors in the default Prometheus registry on import

Thread Safety:
    - Thread-safe: All metric operations use atomic Prometheus operations
"""

# ==============================================================================
# IMPORTS
# ==============================================================================

from prometheus_client import Counter, Histogram

# ==============================================================================
# METRIC DEFINITIONS
# ==============================================================================

HTTP_REQUESTS_TOTAL = Counter(
    "platform_cac_http_requests_total",
    "Total number of HTTP attempts issued by the transport",
    ["method", "status"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "platform_cac_http_request_duration_seconds",
    "Duration of single HTTP attempts",
    ["method"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
)

HTTP_RETRIES_TOTAL = Counter(
    "platform_cac_http_retries_total",
    "Transport retries triggered by a retry strategy",
    ["method", "status"],
)

RATE_LIMIT_WAIT_SECONDS = Histogram(
    "platform_cac_rate_limit_wait_seconds",
    "Time spent blocked by the rate limiter before dispatch",
    buckets=[0.0, 0.01, 0.1, 0.5, 1.0, 5.0, 30.0, 60.0],
)

PRIVILEGE_FALLBACKS_TOTAL = Counter(
    "platform_cac_privilege_fallbacks_total",
    "Requests retried without elevated access after a 403",
    ["resource"],
)

CONVERGENCE_POLLS_TOTAL = Counter(
    "platform_cac_convergence_polls_total",
    "Polls issued while waiting for a resource state",
    ["resource", "target"],
)

# ==============================================================================
# RECORDING HELPERS
# ==============================================================================


def record_http_attempt(method: str, status: int | str, duration: float) -> None:
    """Record one completed (or failed) HTTP attempt.

    Args:
        method: HTTP method of the attempt.
        status: Status code, or ``"error"`` when no response was received.
        duration: Wall time of the attempt in seconds.
    """
    HTTP_REQUESTS_TOTAL.labels(method=method, status=str(status)).inc()
    HTTP_REQUEST_DURATION_SECONDS.labels(method=method).observe(duration)


def record_http_retry(method: str, status: int) -> None:
    HTTP_RETRIES_TOTAL.labels(method=method, status=str(status)).inc()


def record_rate_limit_wait(waited: float) -> None:
    RATE_LIMIT_WAIT_SECONDS.observe(waited)


def record_privilege_fallback(resource: str) -> None:
    PRIVILEGE_FALLBACKS_TOTAL.labels(resource=resource).inc()


def record_convergence_poll(resource: str, target: str) -> None:
    CONVERGENCE_POLLS_TOTAL.labels(resource=resource, target=target).inc()


__all__ = [
    "CONVERGENCE_POLLS_TOTAL",
    "HTTP_REQUESTS_TOTAL",
    "HTTP_RETRIES_TOTAL",
    "PRIVILEGE_FALLBACKS_TOTAL",
    "record_convergence_poll",
    "record_http_attempt",
    "record_http_retry",
    "record_privilege_fallback",
    "record_rate_limit_wait",
]
