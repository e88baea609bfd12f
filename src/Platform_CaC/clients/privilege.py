"""One-shot downgrade from elevated to regular access on HTTP 403."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from http import HTTPStatus

import httpx
import structlog

from Platform_CaC.observability.metrics import record_privilege_fallback
from Platform_CaC.rest.client import RequestOptions
from Platform_CaC.rest.retry import AllOf, RetryIfNotSuccessExcept403

logger = structlog.get_logger(__name__)

ADMIN_ACCESS_PARAM = "adminAccess"


class PrivilegeFallback:
    """Send requests with ``adminAccess=true`` and drop the flag after a 403.

    The elevated attempt never retries a 403 at transport level. A 403 on the
    elevated attempt is followed by exactly one attempt without the flag whose
    outcome is returned as-is. Once downgraded, the instance stays downgraded
    so that later pages of the same list omit the flag.
    """

    def __init__(self, resource: str, *, enabled: bool = True) -> None:
        self.resource = resource
        self.elevated = enabled

    def send(
        self,
        request: Callable[[RequestOptions], httpx.Response],
        options: RequestOptions | None = None,
    ) -> httpx.Response:
        options = options or RequestOptions()
        if not self.elevated:
            return request(options)

        response = request(self.elevate(options))
        if response.status_code != HTTPStatus.FORBIDDEN:
            return response

        self.elevated = False
        record_privilege_fallback(self.resource)
        logger.debug(
            "privilege.fallback",
            resource=self.resource,
            url=str(response.request.url),
        )
        return request(options)

    @staticmethod
    def elevate(options: RequestOptions) -> RequestOptions:
        """Return ``options`` with the elevated-access flag and a 403-safe strategy."""
        strategy = RetryIfNotSuccessExcept403()
        if options.retry_strategy is not None:
            strategy = AllOf((strategy, options.retry_strategy))
        return replace(
            options,
            query_params={**options.query_params, ADMIN_ACCESS_PARAM: "true"},
            retry_strategy=strategy,
        )


__all__ = ["ADMIN_ACCESS_PARAM", "PrivilegeFallback"]
