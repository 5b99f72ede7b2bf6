"""
OpenTelemetry spans for sync runs.

Span names used by pagesync:

- ``sync_data_source``: one datasource run (``datasource``, ``sync_all``, ``wipe``)
- ``process_page``: build + upsert of one page (``page_id``)
- ``webhook_process_page``: a webhook-triggered page sync
- ``<METHOD> <path>``: one API request, opened by the request middleware

Tracing stays off until ``setup_tracing`` runs (``TRACING_ENABLED=true``);
until then ``get_tracer`` hands out OpenTelemetry's no-op tracer and
``traced`` costs next to nothing.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SimpleSpanProcessor,
    SpanExporter,
)
from opentelemetry.trace import StatusCode, Tracer
from opentelemetry.trace.propagation import get_current_span

logger = logging.getLogger(__name__)

_tracing_enabled = False


def setup_tracing(
    service_name: str,
    otlp_endpoint: str | None = None,
    *,
    exporter: SpanExporter | None = None,
) -> TracerProvider:
    """
    Install the global TracerProvider.

    Spans go to an OTLP collector over gRPC in batches. Passing
    ``exporter`` exports each span synchronously instead, which is what
    the test suite does with an in-memory exporter.
    """
    global _tracing_enabled

    provider = TracerProvider(resource=Resource.create({"service.name": service_name}))

    if exporter is not None:
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        target = type(exporter).__name__
    else:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
            OTLPSpanExporter,
        )

        target = otlp_endpoint or "http://localhost:4317"
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=target, insecure=True))
        )

    trace.set_tracer_provider(provider)
    _tracing_enabled = True
    logger.info("Tracing enabled for %s -> %s", service_name, target)
    return provider


def get_tracer(name: str) -> Tracer:
    return trace.get_tracer(name)


def is_tracing_enabled() -> bool:
    return _tracing_enabled


@contextmanager
def traced(
    tracer: Tracer,
    name: str,
    attributes: dict[str, Any] | None = None,
):
    """
    Open span ``name`` with ``attributes``; an escaping exception marks it failed.

    None-valued attributes are left off the span.
    """
    with tracer.start_as_current_span(name) as span:
        for key, value in (attributes or {}).items():
            if value is not None:
                span.set_attribute(key, value)
        try:
            yield span
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(StatusCode.ERROR, str(exc))
            raise


def add_trace_context(
    logger_: Any, method: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """structlog processor: tag events emitted inside a span with its ids."""
    ctx = get_current_span().get_span_context()
    if ctx.is_valid:
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict
