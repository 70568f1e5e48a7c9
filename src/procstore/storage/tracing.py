"""OpenTelemetry tracing for content storage operations.

Security:
    - Never export absolute filesystem paths in span attributes
    - Only document ids, digests and sizes are attached
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable
from typing import Any, TypeVar, cast

from opentelemetry import trace

from procstore.observability.tracing import is_tracing_enabled
from procstore.storage.models import StagedContent

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


def traced_content_operation(operation: str) -> Callable[[F], F]:
    """Decorator to trace content store operations with OpenTelemetry.

    The decorated method must take the document id as its first argument.
    Spans are only emitted when tracing is enabled.

    Args:
        operation: Operation name (e.g., "stage", "commit", "open").

    Returns:
        Decorated function that emits OTel spans when tracing is enabled.
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(self: Any, document_id: str, *args: Any, **kwargs: Any) -> Any:
            if not is_tracing_enabled():
                return func(self, document_id, *args, **kwargs)

            tracer = trace.get_tracer("procstore.content_store")
            with tracer.start_as_current_span(f"procstore.content_store.{operation}") as span:
                span.set_attribute("procstore.document_id", document_id)
                span.set_attribute("storage.backend", getattr(self, "backend_name", "unknown"))
                try:
                    result = func(self, document_id, *args, **kwargs)
                except Exception as e:
                    span.set_attribute("error", True)
                    span.set_attribute("error.type", type(e).__name__)
                    raise

                if isinstance(result, StagedContent):
                    span.set_attribute("procstore.content_digest", result.digest)
                    span.set_attribute("procstore.content_size_bytes", result.size_bytes)
                return result

        return cast(F, wrapper)

    return decorator
