"""Observability helpers (Prometheus metrics)."""

from .metrics import (
    record_convergence_poll,
    record_http_attempt,
    record_http_retry,
    record_privilege_fallback,
    record_rate_limit_wait,
)

__all__ = [
    "record_convergence_poll",
    "record_http_attempt",
    "record_http_retry",
    "record_privilege_fallback",
    "record_rate_limit_wait",
]
