"""Error taxonomy shared by the transport and the resource clients.

Key Responsibilities:
    - Distinguish transport failures, HTTP failures, decode failures, domain
      precondition violations and deadline expiry so callers can branch on them
    - Keep the raw server payload reachable on every HTTP failure
    - Provide a context wrapper naming the operation, resource and identifier

Collaborators:
    - Upstream: ``Platform_CaC.rest`` raises ``TransportError``; the
      ``Platform_CaC.api`` layer raises ``APIError``/``DecodeError``
    - Downstream: Resource clients wrap failures in ``ClientError``

Side Effects:
    - None; exceptions are plain data carriers

Thread Safety:
    - Thread-safe; instances are not mutated after construction
"""

from __future__ import annotations

from dataclasses import dataclass
from http import HTTPStatus
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from Platform_CaC.api.response import PagedListResponse

# ==============================================================================
# TYPE DEFINITIONS
# ==============================================================================

__all__ = [
    "APIError",
    "as_api_error",
    "ClientError",
    "ConfigurationError",
    "DecodeError",
    "DeadlineExceededError",
    "PaginationError",
    "PlatformClientError",
    "RequestInfo",
    "ResourceDeletingError",
    "TransportError",
    "ValidationError",
    "is_api_error",
    "is_not_found",
]


@dataclass(frozen=True, slots=True)
class RequestInfo:
    """Information about the request that produced a response or error."""

    method: str = ""
    url: str = ""


class PlatformClientError(RuntimeError):
    """Base class for every error raised by this library."""


class TransportError(PlatformClientError):
    """Raised when no HTTP response was received (connect, read, reset)."""

    def __init__(self, message: str, *, request: RequestInfo | None = None) -> None:
        super().__init__(message)
        self.request = request or RequestInfo()


class APIError(PlatformClientError):
    """A completed HTTP exchange with a non-2xx status code."""

    def __init__(
        self,
        status_code: int,
        body: bytes = b"",
        *,
        request: RequestInfo | None = None,
    ) -> None:
        """Capture the failed exchange.

        Args:
            status_code: HTTP status returned by the server.
            body: Raw response payload, kept so callers can surface server
                diagnostics.
            request: Method and URL of the request that failed.
        """
        self.status_code = status_code
        self.body = body
        self.request = request or RequestInfo()
        super().__init__(str(self))

    def __str__(self) -> str:
        return (
            f"API request HTTP {self.request.method} {self.request.url} failed with "
            f"status code {self.status_code}: {self.body.decode('utf-8', errors='replace')}"
        )

    def is_4xx(self) -> bool:
        return 400 <= self.status_code <= 499

    def is_5xx(self) -> bool:
        return 500 <= self.status_code <= 599


class DecodeError(PlatformClientError):
    """Raised when a response body expected to hold JSON cannot be decoded."""


class ValidationError(PlatformClientError):
    """Client-side precondition failure raised before any request is sent."""

    def __init__(self, field: str, reason: str = "") -> None:
        self.field = field
        self.reason = reason
        if reason:
            message = f"validation failed for field {field}: {reason}"
        else:
            message = f"validation failed for field {field}"
        super().__init__(message)


class ResourceDeletingError(PlatformClientError):
    """Raised when a mutation targets a resource that is being deleted."""

    def __init__(self, resource: str, identifier: str) -> None:
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"cannot update {resource} {identifier!r}: it is currently being deleted")


class DeadlineExceededError(PlatformClientError):
    """Raised when a polling or retry loop runs out of time."""

    def __init__(self, resource: str, identifier: str, waiting_for: str) -> None:
        self.resource = resource
        self.identifier = identifier
        self.waiting_for = waiting_for
        super().__init__(
            f"deadline exceeded before {resource} {identifier!r} became {waiting_for}"
        )


class ConfigurationError(PlatformClientError):
    """Raised when a client cannot be built from the supplied configuration."""


class ClientError(PlatformClientError):
    """Adds operation, resource and identifier context to a lower-level error.

    The wrapped error is available both as ``wrapped`` and as ``__cause__``
    when raised with ``raise ClientError(...) from err``.
    """

    def __init__(
        self,
        operation: str,
        resource: str,
        wrapped: BaseException,
        *,
        identifier: str = "",
    ) -> None:
        self.operation = operation
        self.resource = resource
        self.identifier = identifier
        self.wrapped = wrapped
        if identifier:
            message = f"failed to {operation} {resource} with id {identifier}: {wrapped}"
        else:
            message = f"failed to {operation} {resource}: {wrapped}"
        super().__init__(message)


class PaginationError(PlatformClientError):
    """Raised when a page of a list operation fails.

    ``partial`` holds every page accumulated before the failing one.
    """

    def __init__(self, wrapped: BaseException, partial: PagedListResponse) -> None:
        self.wrapped = wrapped
        self.partial = partial
        super().__init__(f"pagination aborted after {len(partial)} page(s): {wrapped}")


# ==============================================================================
# HELPERS
# ==============================================================================


def _unwrap(err: BaseException | None) -> APIError | None:
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        if isinstance(err, APIError):
            return err
        wrapped = getattr(err, "wrapped", None)
        err = wrapped if isinstance(wrapped, BaseException) else err.__cause__
    return None


def is_api_error(err: BaseException, status_code: int | None = None) -> bool:
    """Return True when ``err`` is (or wraps) an ``APIError`` with ``status_code``."""
    api_err = _unwrap(err)
    if api_err is None:
        return False
    return status_code is None or api_err.status_code == status_code


def is_not_found(err: BaseException) -> bool:
    """Return True when ``err`` is (or wraps) an HTTP 404."""
    return is_api_error(err, HTTPStatus.NOT_FOUND)


def as_api_error(err: BaseException) -> APIError | None:
    """Return the ``APIError`` in the chain of ``err``, if any."""
    return _unwrap(err)
