"""Utility modules shared by the transport and the resource clients."""

from .deadline import Deadline
from .errors import (
    APIError,
    ClientError,
    ConfigurationError,
    DecodeError,
    DeadlineExceededError,
    PaginationError,
    PlatformClientError,
    RequestInfo,
    ResourceDeletingError,
    TransportError,
    ValidationError,
    as_api_error,
    is_api_error,
    is_not_found,
)


__all__ = [
    "APIError",
    "ClientError",
    "ConfigurationError",
    "Deadline",
    "DecodeError",
    "DeadlineExceededError",
    "PaginationError",
    "PlatformClientError",
    "RequestInfo",
    "ResourceDeletingError",
    "TransportError",
    "ValidationError",
    "as_api_error",
    "is_api_error",
    "is_not_found",
]
