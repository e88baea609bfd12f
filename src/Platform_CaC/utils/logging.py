"""Logging and tracing setup for applications embedding the client core.

Key Responsibilities:
    - Render stdlib log records and structlog events (``rest.request.retry``,
      ``upsert.created``, ...) as single-line JSON
    - Redact credentials such as ``authorization`` headers and tokens from both
      paths with one set of scrubbing rules
    - Install an OpenTelemetry tracer provider for the per-attempt
      ``http.request`` spans of the transport
    - Bind a correlation identifier to every event of the current context

Collaborators:
    - Upstream: the embedding application, once at startup
    - Downstream: ``logging``, ``structlog`` and the OpenTelemetry SDK

Side Effects:
    - Replaces root logging handlers and the global structlog/tracing setup

Thread Safety:
    - Configuration is global and not thread-safe; correlation identifiers are
      stored in ``contextvars``
"""

# ==============================================================================
# IMPORTS
# ==============================================================================

from __future__ import annotations

import json
import logging
import sys
from collections.abc import Iterable, Mapping, MutableMapping
from contextvars import ContextVar, Token
from typing import Any

import structlog
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

from Platform_CaC.config.settings import LoggingSettings, TelemetrySettings

REDACTED = "***"

_correlation_id: ContextVar[str | None] = ContextVar("platform_cac_correlation_id", default=None)

# attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRIBUTES = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
}

# ==============================================================================
# SCRUBBING
# ==============================================================================


def scrub(value: Any, fields: frozenset[str]) -> Any:
    """Return ``value`` with every mapping entry named in ``fields`` redacted.

    Keys are matched case-insensitively; nested mappings and lists are walked.
    """
    if isinstance(value, Mapping):
        return {
            key: REDACTED if str(key).lower() in fields else scrub(item, fields)
            for key, item in value.items()
        }
    if isinstance(value, list | tuple):
        return [scrub(item, fields) for item in value]
    return value


def _normalise(fields: Iterable[str] | None) -> frozenset[str]:
    return frozenset(field.lower() for field in fields or ())


class JsonFormatter(logging.Formatter):
    """Stdlib formatter emitting one JSON object per record."""

    def __init__(self, *, scrub_fields: Iterable[str] | None = None) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")
        self._fields = _normalise(scrub_fields)

    def format(self, record: logging.LogRecord) -> str:
        extra = {
            key: value for key, value in vars(record).items() if key not in _RECORD_ATTRIBUTES
        }
        payload: dict[str, Any] = scrub(extra, self._fields)
        payload.update(
            level=record.levelname,
            logger=record.name,
            message=record.getMessage(),
            time=self.formatTime(record, self.datefmt),
        )
        correlation_id = _correlation_id.get()
        if correlation_id:
            payload["correlation_id"] = correlation_id
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, sort_keys=True, default=str)


def _scrub_event(fields: frozenset[str]):
    """Structlog processor applying :func:`scrub` and the correlation id."""

    def processor(_: Any, __: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
        correlation_id = _correlation_id.get()
        if correlation_id:
            event_dict.setdefault("correlation_id", correlation_id)
        return scrub(event_dict, fields)

    return processor


# ==============================================================================
# CONFIGURATION
# ==============================================================================


def _level_value(level: int | str | None) -> int:
    if isinstance(level, int):
        return level
    if isinstance(level, str):
        value = logging.getLevelNamesMapping().get(level.upper())
        return value if value is not None else logging.INFO
    return logging.INFO


def configure_logging(
    level: int | str | None = None,
    *,
    settings: LoggingSettings | None = None,
) -> None:
    """Route stdlib logging and structlog through the JSON renderers.

    Args:
        level: Level or level name; ignored when ``settings`` is given.
        settings: Level and scrub-field configuration.
    """
    fields: frozenset[str] = frozenset()
    if settings is not None:
        level = settings.level
        fields = _normalise(settings.scrub_fields)
    level_value = _level_value(level)
    formatter = JsonFormatter(scrub_fields=fields)

    stream = logging.StreamHandler(sys.stdout)
    stream.setFormatter(formatter)
    # pytest's capture handlers stay installed so caplog keeps working
    captured = [
        handler
        for handler in logging.getLogger().handlers
        if type(handler).__module__.startswith("_pytest.")
    ]
    for handler in captured:
        handler.setFormatter(formatter)
    logging.basicConfig(level=level_value, handlers=[*captured, stream], force=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _scrub_event(fields),
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_value),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


def configure_tracing(service_name: str, telemetry: TelemetrySettings) -> None:
    """Install a sampling tracer provider exporting via OTLP or the console.

    Without this call the transport's ``http.request`` spans go to the no-op
    provider.
    """
    exporter: SpanExporter
    if telemetry.exporter.lower() == "otlp":
        exporter = OTLPSpanExporter(endpoint=telemetry.endpoint) if telemetry.endpoint else OTLPSpanExporter()
    else:
        exporter = ConsoleSpanExporter()

    provider = TracerProvider(
        resource=Resource(attributes={"service.name": service_name}),
        sampler=TraceIdRatioBased(telemetry.sample_ratio),
    )
    provider.add_span_processor(BatchSpanProcessor(exporter))
    trace.set_tracer_provider(provider)


# ==============================================================================
# CORRELATION IDS
# ==============================================================================


def bind_correlation_id(value: str) -> Token[str | None]:
    """Attach ``value`` to every log event of the current context.

    Returns:
        Token for :func:`reset_correlation_id`.
    """
    structlog.contextvars.bind_contextvars(correlation_id=value)
    return _correlation_id.set(value)


def reset_correlation_id(token: Token[str | None] | None) -> None:
    if token is not None:
        _correlation_id.reset(token)
    structlog.contextvars.unbind_contextvars("correlation_id")


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


__all__ = [
    "JsonFormatter",
    "REDACTED",
    "bind_correlation_id",
    "configure_logging",
    "configure_tracing",
    "get_correlation_id",
    "get_logger",
    "reset_correlation_id",
    "scrub",
]
