"""Configuration system for the client core."""

from __future__ import annotations

import os
from collections.abc import Sequence
from datetime import timedelta
from functools import lru_cache

from pydantic import BaseModel, Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class TelemetrySettings(BaseModel):
    """Configuration block for OpenTelemetry export."""

    exporter: str = Field(default="console", description="Target exporter type")
    endpoint: str | None = Field(default=None, description="Exporter endpoint")
    sample_ratio: float = Field(default=0.1, ge=0.0, le=1.0)


class LoggingSettings(BaseModel):
    """Structured logging configuration."""

    level: str = Field(default="INFO", description="Log level for library output")
    correlation_id_header: str = Field(
        default="X-Correlation-ID", description="Header used for trace correlation"
    )
    scrub_fields: Sequence[str] = Field(
        default_factory=lambda: ["password", "token", "secret", "authorization"],
        description="Fields that should be redacted in logs",
    )


class TransportSettings(BaseModel):
    """Knobs of the shared HTTP transport."""

    concurrent_request_limit: int = Field(
        default=5,
        description="Maximum in-flight requests per process; zero or negative disables the limit",
    )
    rate_limiter_enabled: bool = Field(
        default=True,
        description="Honour X-RateLimit-* response headers before dispatching",
    )
    max_retries: int = Field(
        default=5,
        ge=0,
        description="Default number of transport-level retries per request",
    )
    retry_delay_seconds: float = Field(
        default=0.1,
        ge=0.0,
        description="Fixed delay between transport-level retries",
    )


class ConvergenceSettings(BaseModel):
    """Polling bounds used when waiting for asynchronous server-side state."""

    max_retries: int = Field(
        default=0,
        ge=0,
        description="Optional cap on poll/conflict attempts; zero means only the wait bound applies",
    )
    interval_between_tries_seconds: float = Field(
        default=1.0,
        ge=0.0,
        description="Fixed sleep between two polls",
    )
    max_wait_seconds: float = Field(
        default=120.0,
        gt=0.0,
        description="Upper bound for a single convergence wait",
    )

    def to_retry_settings(self):
        """Return the runtime ``RetrySettings`` described by this block."""
        from Platform_CaC.clients.convergence import RetrySettings

        return RetrySettings(
            max_retries=self.max_retries or None,
            interval_between_tries=timedelta(seconds=self.interval_between_tries_seconds),
            max_wait_duration=timedelta(seconds=self.max_wait_seconds),
        )


class ClientSettings(BaseSettings):
    """Top-level settings consumed by :class:`Platform_CaC.factory.ClientFactory`."""

    platform_url: str | None = Field(default=None, description="Base URL of platform APIs")
    classic_url: str | None = Field(default=None, description="Base URL of classic APIs")
    api_token: SecretStr | None = Field(default=None, description="Static classic API token")
    platform_token: SecretStr | None = Field(default=None, description="Static platform token")
    user_agent: str | None = Field(default=None, description="User-Agent header for every request")
    timeout_seconds: float = Field(default=30.0, gt=0, description="Per-request HTTP timeout")
    transport: TransportSettings = Field(default_factory=TransportSettings)
    convergence: ConvergenceSettings = Field(default_factory=ConvergenceSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    telemetry: TelemetrySettings = Field(default_factory=TelemetrySettings)

    model_config = SettingsConfigDict(env_prefix="PCAC_", env_nested_delimiter="__")


def load_settings() -> ClientSettings:
    """Load settings from the environment, failing with a readable message."""
    try:
        return ClientSettings()
    except ValidationError as err:
        prefixed = sorted(key for key in os.environ if key.startswith("PCAC_"))
        raise RuntimeError(f"Invalid configuration (from {prefixed}): {err}") from err


@lru_cache(maxsize=1)
def get_settings() -> ClientSettings:
    """Cached accessor used by production code."""
    return load_settings()


__all__ = [
    "ClientSettings",
    "ConvergenceSettings",
    "LoggingSettings",
    "TelemetrySettings",
    "TransportSettings",
    "get_settings",
    "load_settings",
]
