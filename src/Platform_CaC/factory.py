"""Builder for configured transports and resource clients.

Key Responsibilities:
    - Collect base URLs, credentials and transport options through immutable
      ``with_*`` calls
    - Share one concurrency limiter and one rate limiter between every client
      built from the same factory
    - Fail early with :class:`ConfigurationError` when a URL or credential
      required by the requested client is missing

Example:
    >>> factory = (
    ...     ClientFactory()
    ...     .with_platform_url("https://abc.apps.example.com")
    ...     .with_platform_token("dt0s16.XXX")
    ...     .with_concurrent_request_limit(5)
    ... )
    >>> buckets = factory.bucket_client()
"""

from __future__ import annotations

from dataclasses import dataclass, replace

import httpx
import structlog
from pydantic import SecretStr

from Platform_CaC.auth.tokens import ApiTokenAuth, PlatformTokenAuth
from Platform_CaC.clients.automation import AutomationClient
from Platform_CaC.clients.buckets import BucketClient
from Platform_CaC.clients.convergence import RetrySettings
from Platform_CaC.clients.openpipeline import OpenPipelineClient
from Platform_CaC.clients.segments import SegmentsClient
from Platform_CaC.clients.slo import SLOClient
from Platform_CaC.config.settings import ClientSettings
from Platform_CaC.rest.client import RestClient
from Platform_CaC.rest.concurrency import ConcurrencyLimiter
from Platform_CaC.rest.listener import HTTPListener
from Platform_CaC.rest.rate import RateLimiter
from Platform_CaC.rest.retry import RetryIfNotSuccess, RetryOptions
from Platform_CaC.utils.errors import ConfigurationError

logger = structlog.get_logger(__name__)

ERR_PLATFORM_CREDENTIALS_MISSING = "no OAuth2 client credentials or platform token provided"
ERR_PLATFORM_URL_MISSING = "no platform API URL provided"
ERR_CLASSIC_URL_MISSING = "no classic API URL provided"
ERR_ACCESS_TOKEN_MISSING = "no access token provided"


@dataclass(frozen=True)
class ClientFactory:
    """Immutable client builder; every ``with_*`` returns a modified copy."""

    platform_url: str = ""
    classic_url: str = ""
    api_token: SecretStr | None = None
    platform_token: SecretStr | None = None
    auth: httpx.Auth | None = None
    user_agent: str = ""
    timeout_seconds: float = 30.0
    listener: HTTPListener | None = None
    concurrency_limiter: ConcurrencyLimiter | None = None
    rate_limiter: RateLimiter | None = None
    retry_options: RetryOptions | None = None
    retry_settings: RetrySettings | None = None
    transport: httpx.BaseTransport | None = None

    @classmethod
    def from_settings(cls, settings: ClientSettings) -> ClientFactory:
        """Build a factory from environment-backed settings."""
        transport = settings.transport
        factory = cls(
            platform_url=settings.platform_url or "",
            classic_url=settings.classic_url or "",
            api_token=settings.api_token,
            platform_token=settings.platform_token,
            user_agent=settings.user_agent or "",
            timeout_seconds=settings.timeout_seconds,
            retry_options=RetryOptions(
                max_retries=transport.max_retries,
                delay_after_retry=transport.retry_delay_seconds,
                strategy=RetryIfNotSuccess(),
            ),
            retry_settings=settings.convergence.to_retry_settings(),
        )
        factory = factory.with_concurrent_request_limit(transport.concurrent_request_limit)
        return factory.with_rate_limiter(transport.rate_limiter_enabled)

    # ------------------------------------------------------------------
    # Options
    # ------------------------------------------------------------------

    def with_platform_url(self, url: str) -> ClientFactory:
        return replace(self, platform_url=url)

    def with_classic_url(self, url: str) -> ClientFactory:
        return replace(self, classic_url=url)

    def with_api_token(self, token: str | SecretStr) -> ClientFactory:
        return replace(self, api_token=SecretStr(token) if isinstance(token, str) else token)

    def with_platform_token(self, token: str | SecretStr) -> ClientFactory:
        return replace(self, platform_token=SecretStr(token) if isinstance(token, str) else token)

    def with_auth(self, auth: httpx.Auth) -> ClientFactory:
        """Use ``auth`` (for example an OAuth2 flow) for platform clients."""
        return replace(self, auth=auth)

    def with_user_agent(self, user_agent: str) -> ClientFactory:
        return replace(self, user_agent=user_agent)

    def with_timeout(self, seconds: float) -> ClientFactory:
        return replace(self, timeout_seconds=seconds)

    def with_http_listener(self, listener: HTTPListener | None) -> ClientFactory:
        return replace(self, listener=listener)

    def with_concurrent_request_limit(self, limit: int) -> ClientFactory:
        return replace(self, concurrency_limiter=ConcurrencyLimiter(limit))

    def with_rate_limiter(self, enabled: bool = True) -> ClientFactory:
        return replace(self, rate_limiter=RateLimiter() if enabled else None)

    def with_retry_options(self, options: RetryOptions | None) -> ClientFactory:
        return replace(self, retry_options=options)

    def with_retry_settings(self, settings: RetrySettings | None) -> ClientFactory:
        return replace(self, retry_settings=settings)

    def with_transport(self, transport: httpx.BaseTransport | None) -> ClientFactory:
        return replace(self, transport=transport)

    # ------------------------------------------------------------------
    # Transports
    # ------------------------------------------------------------------

    def create_platform_client(self) -> RestClient:
        auth = self.auth
        if auth is None and self.platform_token is not None and self.platform_token.get_secret_value():
            auth = PlatformTokenAuth(self.platform_token)
        if auth is None:
            raise ConfigurationError(ERR_PLATFORM_CREDENTIALS_MISSING)
        if not self.platform_url:
            raise ConfigurationError(ERR_PLATFORM_URL_MISSING)
        return self._create_rest_client(self.platform_url, auth)

    def create_classic_client(self) -> RestClient:
        if self.api_token is None or not self.api_token.get_secret_value():
            raise ConfigurationError(ERR_ACCESS_TOKEN_MISSING)
        if not self.classic_url:
            raise ConfigurationError(ERR_CLASSIC_URL_MISSING)
        return self._create_rest_client(self.classic_url, ApiTokenAuth(self.api_token))

    def _create_rest_client(self, base_url: str, auth: httpx.Auth) -> RestClient:
        try:
            parsed = httpx.URL(base_url)
        except httpx.InvalidURL as exc:
            raise ConfigurationError(f"failed to parse URL {base_url!r}") from exc
        if not parsed.scheme or not parsed.host:
            raise ConfigurationError(f"failed to parse URL {base_url!r}")

        headers = {"User-Agent": self.user_agent} if self.user_agent else None
        logger.debug(
            "factory.rest_client.created",
            base_url=base_url,
            rate_limiter=self.rate_limiter is not None,
            concurrency_limit=self.concurrency_limiter.max_concurrent if self.concurrency_limiter else 0,
        )
        return RestClient(
            base_url,
            transport=self.transport,
            auth=auth,
            timeout=self.timeout_seconds,
            headers=headers,
            concurrency_limiter=self.concurrency_limiter,
            rate_limiter=self.rate_limiter,
            retry_options=self.retry_options,
            listener=self.listener,
        )

    # ------------------------------------------------------------------
    # Resource clients
    # ------------------------------------------------------------------

    def bucket_client(self) -> BucketClient:
        return BucketClient(self.create_platform_client(), retry_settings=self.retry_settings)

    def automation_client(self) -> AutomationClient:
        return AutomationClient(self.create_platform_client(), retry_settings=self.retry_settings)

    def slo_client(self) -> SLOClient:
        return SLOClient(self.create_platform_client(), retry_settings=self.retry_settings)

    def openpipeline_client(self) -> OpenPipelineClient:
        return OpenPipelineClient(self.create_platform_client(), retry_settings=self.retry_settings)

    def segments_client(self) -> SegmentsClient:
        return SegmentsClient(self.create_platform_client(), retry_settings=self.retry_settings)


__all__ = [
    "ClientFactory",
    "ERR_ACCESS_TOKEN_MISSING",
    "ERR_CLASSIC_URL_MISSING",
    "ERR_PLATFORM_CREDENTIALS_MISSING",
    "ERR_PLATFORM_URL_MISSING",
]
