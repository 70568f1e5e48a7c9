"""OpenTelemetry tracing configuration for the storage service.

Environment Variables:
    PROCSTORE_OTEL_ENABLED: Set to "1" to enable tracing (default: disabled)
    PROCSTORE_REQUIRE_OTEL: Set to "1" to fail startup if tracing cannot initialize
    PROCSTORE_OTEL_SERVICE_NAME: Service name for spans (default: "procstore")
    PROCSTORE_OTEL_EXPORTER: "console" or "none" (default: "console")
    PROCSTORE_OTEL_TEST_CAPTURE: Set to "1" to use the in-memory exporter for tests

Security:
    - Never export request bodies, file contents or absolute paths
"""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import ReadableSpan

logger = logging.getLogger(__name__)

PROCSTORE_OTEL_ENABLED_ENV = "PROCSTORE_OTEL_ENABLED"
PROCSTORE_REQUIRE_OTEL_ENV = "PROCSTORE_REQUIRE_OTEL"

_tracer_provider: TracerProvider | None = None
_test_exporter: InMemorySpanExporter | None = None


class TracingConfigError(Exception):
    """Raised when tracing configuration fails and PROCSTORE_REQUIRE_OTEL=1."""

    pass


def _get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean from environment variable."""
    val = os.environ.get(key, "").strip().lower()
    if val in ("1", "true", "yes"):
        return True
    if val in ("0", "false", "no", ""):
        return default
    return default


def _get_env_str(key: str, default: str = "") -> str:
    """Get string from environment variable."""
    return os.environ.get(key, default).strip()


def is_tracing_enabled() -> bool:
    """Check if OpenTelemetry tracing is enabled."""
    return _get_env_bool(PROCSTORE_OTEL_ENABLED_ENV, False)


def configure_tracing() -> bool:
    """Configure OpenTelemetry tracing.

    Idempotent - safe to call multiple times.

    Returns:
        True if tracing is enabled and configured, False otherwise.

    Raises:
        TracingConfigError: If PROCSTORE_REQUIRE_OTEL=1 and configuration fails.
    """
    global _tracer_provider, _test_exporter

    if not is_tracing_enabled():
        logger.debug("OpenTelemetry tracing disabled (%s not set)", PROCSTORE_OTEL_ENABLED_ENV)
        return False

    if _tracer_provider is not None:
        return True

    require_otel = _get_env_bool(PROCSTORE_REQUIRE_OTEL_ENV, False)
    test_capture = _get_env_bool("PROCSTORE_OTEL_TEST_CAPTURE", False)
    service_name = _get_env_str("PROCSTORE_OTEL_SERVICE_NAME", "procstore")
    exporter_type = _get_env_str("PROCSTORE_OTEL_EXPORTER", "console")

    try:
        provider = TracerProvider(resource=Resource.create({"service.name": service_name}))

        if test_capture:
            _test_exporter = InMemorySpanExporter()
            provider.add_span_processor(SimpleSpanProcessor(_test_exporter))
        elif exporter_type == "console":
            provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

        trace.set_tracer_provider(provider)
        _tracer_provider = provider

        logger.info(
            "OpenTelemetry tracing configured: service=%s, exporter=%s",
            service_name,
            "in-memory" if test_capture else exporter_type,
        )
        return True

    except Exception as e:
        logger.error("Failed to configure OpenTelemetry tracing: %s", e)
        if require_otel:
            raise TracingConfigError(
                f"OpenTelemetry tracing required but configuration failed: {e}"
            ) from e
        return False


def get_test_spans() -> list[ReadableSpan]:
    """Get captured spans from the in-memory exporter (for testing)."""
    if _test_exporter is not None:
        return list(_test_exporter.get_finished_spans())
    return []


def clear_test_spans() -> None:
    """Clear captured spans from the in-memory exporter (for testing)."""
    if _test_exporter is not None:
        _test_exporter.clear()
