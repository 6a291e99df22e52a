"""
typesense-dispatch - OpenTelemetry Tracing Module

One span per logical API call, named ``typesense.request``, carrying the
HTTP method, the endpoint and the number of attempts it took. Until
configure_tracing() runs, the OpenTelemetry API hands out no-op tracers, so
applications that do not opt in pay nothing.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
)

from typesense_dispatch import __version__

# Module-level flag for one-time configuration
_configured: bool = False

SERVICE_NAME = "typesense-dispatch"
REQUEST_SPAN_NAME = "typesense.request"

ATTR_METHOD = "http.method"
ATTR_ENDPOINT = "typesense.endpoint"
ATTR_ATTEMPTS = "typesense.attempts"
ATTR_NODE = "typesense.node"


def configure_tracing(
    service_name: str = SERVICE_NAME,
    exporter: SpanExporter | None = None,
    console_export: bool = False,
) -> TracerProvider | None:
    """Install a tracer provider for dispatcher spans.

    Args:
        service_name: ``service.name`` resource attribute.
        exporter: Span exporter to attach (OTLP, in-memory, ...).
        console_export: Also print spans to stdout, for development.

    Returns:
        The installed provider, or None if tracing was already configured.
    """
    global _configured

    if _configured:
        return None

    provider = TracerProvider(
        resource=Resource.create({"service.name": service_name, "service.version": __version__})
    )
    for span_exporter in (exporter, ConsoleSpanExporter() if console_export else None):
        if span_exporter is not None:
            provider.add_span_processor(SimpleSpanProcessor(span_exporter))

    trace.set_tracer_provider(provider)
    _configured = True
    return provider


def get_tracer(name: str) -> Any:
    return trace.get_tracer(name, __version__)


@contextmanager
def request_span(method: str, endpoint: str) -> Iterator[Any]:
    """Span covering every attempt of one logical call."""
    with get_tracer(__name__).start_as_current_span(REQUEST_SPAN_NAME) as span:
        span.set_attribute(ATTR_METHOD, method)
        span.set_attribute(ATTR_ENDPOINT, endpoint)
        yield span


def record_attempt(span: Any, attempt: int, node_label: str) -> None:
    span.set_attribute(ATTR_ATTEMPTS, attempt)
    span.set_attribute(ATTR_NODE, node_label)


def reset_tracing() -> None:
    """Reset tracing configuration for testing."""
    global _configured
    _configured = False
