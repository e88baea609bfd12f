"""Authentication helpers producing ``httpx.Auth`` objects."""

from .tokens import ApiTokenAuth, PlatformTokenAuth

__all__ = ["ApiTokenAuth", "PlatformTokenAuth"]
