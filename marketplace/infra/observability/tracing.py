"""
OpenTelemetry Distributed Tracing

Configures OpenTelemetry for the order engine. Spans are exported over OTLP
when tracing is enabled; otherwise the global no-op tracer is used.
"""

import logging
from typing import Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.django import DjangoInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

logger = logging.getLogger(__name__)

_initialized = False


def setup_tracing(service_name: str = "bazaar-backend", endpoint: Optional[str] = None, enable: bool = True) -> None:
    """
    Initialize OpenTelemetry tracing with an OTLP exporter.

    Args:
        service_name: Name of the service for tracing
        endpoint: OTLP/HTTP collector endpoint (defaults to the exporter's env config)
        enable: Enable/disable tracing
    """
    global _initialized

    if _initialized:
        logger.warning("Tracing already initialized. Skipping.")
        return

    if not enable:
        logger.info("Tracing disabled via configuration")
        return

    try:
        resource = Resource(attributes={SERVICE_NAME: service_name})
        tracer_provider = TracerProvider(resource=resource)
        trace.set_tracer_provider(tracer_provider)

        exporter = OTLPSpanExporter(endpoint=endpoint) if endpoint else OTLPSpanExporter()
        tracer_provider.add_span_processor(BatchSpanProcessor(exporter))

        # Auto-instrument Django (traces all HTTP requests)
        DjangoInstrumentor().instrument()

        _initialized = True
        logger.info(f"OpenTelemetry tracing initialized for service: {service_name}")

    except Exception as e:
        logger.error(f"Failed to initialize tracing: {e}")


def get_tracer(name: str = __name__) -> trace.Tracer:
    """
    Get tracer instance for creating custom spans.

    Example:
        tracer = get_tracer(__name__)

        with tracer.start_as_current_span("order.create") as span:
            add_span_attributes(span, order_id=order.id)
    """
    return trace.get_tracer(name)


def add_span_attributes(span: trace.Span, **attributes) -> None:
    """Add custom attributes to a span, stringifying values."""
    for key, value in attributes.items():
        span.set_attribute(key, str(value))
