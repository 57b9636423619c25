"""
OpenTelemetry Tracer Configuration

Provides initialization and management of OpenTelemetry tracing for the
ingestion pipeline. Tracing is off until :func:`init_tracer` is called.
"""

import logging
import os

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor

logger = logging.getLogger(__name__)

# Global state
_tracer: trace.Tracer | None = None
_tracer_provider: TracerProvider | None = None
_tracing_enabled = False


def is_tracing_enabled() -> bool:
    """Check if tracing is currently enabled."""
    return _tracing_enabled


def init_tracer(
    service_name: str = "kbforge",
    endpoint: str | None = None,
    enable_console_export: bool = False,
) -> bool:
    """
    Initialize OpenTelemetry tracer.

    Args:
        service_name: Name of the service for tracing.
        endpoint: OTLP endpoint URL (e.g., "http://localhost:4317").
                  If None, reads from OTEL_EXPORTER_OTLP_ENDPOINT env var.
        enable_console_export: If True, also export spans to console (for debugging).

    Returns:
        True once the tracer is installed.
    """
    global _tracer, _tracer_provider, _tracing_enabled

    endpoint = endpoint or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")

    _tracer_provider = TracerProvider(resource=Resource.create({SERVICE_NAME: service_name}))

    if endpoint:
        # The OTLP exporter ships separately (kbforge[otlp])
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        from opentelemetry.sdk.trace.export import BatchSpanProcessor

        _tracer_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
        logger.info(f"OpenTelemetry OTLP exporter configured: {endpoint}")

    if enable_console_export:
        _tracer_provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
        logger.info("OpenTelemetry console exporter enabled")

    trace.set_tracer_provider(_tracer_provider)
    _tracer = trace.get_tracer("kbforge")
    _tracing_enabled = True

    logger.info(f"OpenTelemetry tracer initialized for service: {service_name}")
    return True


def get_tracer() -> trace.Tracer:
    """
    Get the OpenTelemetry tracer instance.

    Falls back to the globally configured tracer provider (a no-op provider
    unless one was installed) when :func:`init_tracer` was not called.
    """
    if _tracer is not None:
        return _tracer
    return trace.get_tracer("kbforge")


def shutdown_tracer() -> None:
    """Shutdown the tracer and flush any pending spans."""
    global _tracer, _tracer_provider, _tracing_enabled

    if _tracer_provider is not None:
        try:
            _tracer_provider.shutdown()
            logger.info("OpenTelemetry tracer shut down")
        except Exception as e:
            logger.error(f"Error shutting down tracer: {e}")

    _tracer = None
    _tracer_provider = None
    _tracing_enabled = False
