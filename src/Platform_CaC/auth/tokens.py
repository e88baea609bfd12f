"""Static-token authentication for ``httpx`` clients.

OAuth2 client-credential flows are not handled here; pass any ``httpx.Auth``
implementing them to :meth:`Platform_CaC.factory.ClientFactory.with_auth`.
"""

from __future__ import annotations

from collections.abc import Generator

import httpx
from pydantic import SecretStr


def _reveal(token: str | SecretStr) -> str:
    return token.get_secret_value() if isinstance(token, SecretStr) else token


class _StaticTokenAuth(httpx.Auth):
    scheme = ""

    def __init__(self, token: str | SecretStr) -> None:
        value = _reveal(token)
        if not value:
            raise ValueError("token must be non-empty")
        self._header = f"{self.scheme} {value}"

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        request.headers["Authorization"] = self._header
        yield request

    def __repr__(self) -> str:
        return f"{type(self).__name__}(token=***)"


class ApiTokenAuth(_StaticTokenAuth):
    """``Authorization: Api-Token <token>`` for classic API tokens."""

    scheme = "Api-Token"


class PlatformTokenAuth(_StaticTokenAuth):
    """``Authorization: Bearer <token>`` for platform tokens."""

    scheme = "Bearer"


__all__ = ["ApiTokenAuth", "PlatformTokenAuth"]
