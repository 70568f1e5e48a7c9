"""Observability module.

Provides optional OpenTelemetry tracing for the storage service.
"""

from procstore.observability.tracing import configure_tracing, is_tracing_enabled

__all__ = ["configure_tracing", "is_tracing_enabled"]
