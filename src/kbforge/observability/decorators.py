"""
Tracing Decorators

Provides decorators for easy instrumentation of pipeline stages.
"""

import functools
import logging
from collections.abc import Callable
from typing import Any

from opentelemetry.trace import Status, StatusCode

from kbforge.observability.tracer import get_tracer, is_tracing_enabled

logger = logging.getLogger(__name__)


def trace_span(
    name: str | None = None,
    attributes: dict[str, Any] | None = None,
    record_exception: bool = True,
):
    """
    Decorator to trace a function execution as an OpenTelemetry span.

    The wrapped function runs untouched while tracing is disabled.

    Args:
        name: Span name. Defaults to function name if not provided.
        attributes: Static attributes to add to the span.
        record_exception: If True, record exceptions in the span.

    Example:
        @trace_span("pipeline.embedding", attributes={"queue": "embedding"})
        def generate_embeddings(job):
            ...
    """
    def decorator(func: Callable) -> Callable:
        span_name = name or func.__qualname__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            if not is_tracing_enabled():
                return func(*args, **kwargs)

            tracer = get_tracer()
            with tracer.start_as_current_span(span_name) as span:
                if attributes:
                    for key, value in attributes.items():
                        span.set_attribute(key, value)

                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if record_exception:
                        span.record_exception(e)
                        span.set_status(Status(StatusCode.ERROR))
                    raise

        return wrapper

    return decorator
