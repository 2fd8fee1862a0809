"""Optional OpenTelemetry spans for catalog operations.

Tracing switches on when OTEL_EXPORTER_OTLP_ENDPOINT is set. Each API
operation then gets a server span named ``query <operation>`` carrying
its arguments and outcome code, and psycopg is instrumented so the
repository's SQL appears as child spans. With tracing off every helper
here does nothing and ``operation_span`` yields None.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator

from .config import Config

log = logging.getLogger(__name__)

TRACER_NAME = "bluebox-catalog"
ARG_PREFIX = "catalog.arg."

_tracer = None
_provider = None


def _exporter(config: Config):
    from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

    headers = _parse_headers(config.otel_headers) or None
    return OTLPSpanExporter(endpoint=config.otel_endpoint, headers=headers)


def init_tracing(config: Config) -> None:
    """Install a tracer provider and instrument psycopg, if an endpoint is configured."""
    global _tracer, _provider

    if not config.otel_enabled:
        log.info("OTel tracing disabled (OTEL_EXPORTER_OTLP_ENDPOINT not set)")
        return

    from opentelemetry import trace
    from opentelemetry.instrumentation.psycopg import PsycopgInstrumentor
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import BatchSpanProcessor

    _provider = TracerProvider(resource=Resource.create({"service.name": config.otel_service_name}))
    _provider.add_span_processor(BatchSpanProcessor(_exporter(config)))
    trace.set_tracer_provider(_provider)
    _tracer = trace.get_tracer(TRACER_NAME)

    # async cursors included
    PsycopgInstrumentor().instrument()

    log.info("OTel tracing initialized (endpoint=%s, service=%s)",
             config.otel_endpoint, config.otel_service_name)


def shutdown_tracing() -> None:
    """Flush pending spans and drop the tracer."""
    global _tracer, _provider
    if _provider is None:
        return
    _provider.shutdown()
    _provider = None
    _tracer = None
    log.info("OTel tracing shut down")


def span_attributes(operation: str, args: dict[str, Any]) -> dict[str, str]:
    """Flatten an operation call into span attributes."""
    attributes = {"catalog.operation": operation}
    for key, value in sorted(args.items()):
        if value is not None:
            attributes[ARG_PREFIX + key] = str(value)
    return attributes


@contextmanager
def operation_span(operation: str, args: dict[str, Any]) -> Iterator:
    """Open the server span for one operation call, or yield None when tracing is off."""
    if _tracer is None:
        yield None
        return

    from opentelemetry.trace import SpanKind

    with _tracer.start_as_current_span(
        f"query {operation}",
        kind=SpanKind.SERVER,
        attributes=span_attributes(operation, args),
    ) as span:
        yield span


def record_outcome(span, envelope: dict, exc: BaseException | None = None) -> None:
    """Mark a span OK or ERROR from the response envelope it produced.

    ``exc`` is attached as a span event for failures nobody anticipated.
    """
    if span is None:
        return

    from opentelemetry.trace import StatusCode

    errors = envelope.get("errors")
    if not errors:
        span.set_status(StatusCode.OK)
        return

    span.set_attribute("catalog.error_code", errors[0]["code"])
    span.set_status(StatusCode.ERROR, errors[0]["message"])
    if exc is not None:
        span.record_exception(exc)


def _parse_headers(header_str: str) -> dict[str, str]:
    """Parse 'key1=val1,key2=val2' into a dict, ignoring entries without '='."""
    pairs = (item.partition("=") for item in header_str.split(","))
    return {key.strip(): value.strip() for key, sep, value in pairs if sep}
