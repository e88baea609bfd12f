"""Lightweight configuration package exports."""

from __future__ import annotations

from .settings import (
    ClientSettings,
    ConvergenceSettings,
    LoggingSettings,
    TelemetrySettings,
    TransportSettings,
    get_settings,
    load_settings,
)

__all__ = [
    "ClientSettings",
    "ConvergenceSettings",
    "LoggingSettings",
    "TelemetrySettings",
    "TransportSettings",
    "get_settings",
    "load_settings",
]
