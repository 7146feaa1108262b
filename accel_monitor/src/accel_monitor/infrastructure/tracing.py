"""OpenTelemetry tracing for the accelerator monitor.

Spans wrap management library work that the orchestrator waits on
(library start-up and device enumeration). Failures carry the native
return code so a trace shows which HLML call refused.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator, Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter

from accel_monitor.infrastructure.config import Config, get_config
from accel_monitor.ports.outbound.errors import ManagementLibraryError

SERVICE_NAME = "accel_monitor"
SERVICE_VERSION = "0.1.0"


def _span_exporter(config: Config) -> SpanExporter:
    endpoint = config.observability.otlp_endpoint
    if endpoint:
        return OTLPSpanExporter(endpoint=endpoint, insecure=True)
    return ConsoleSpanExporter(service_name=SERVICE_NAME)


def setup_tracing(config: Config | None = None) -> trace.Tracer:
    """Install the global tracer provider and return the service tracer."""
    config = config or get_config()

    provider = TracerProvider(
        resource=Resource.create(
            {
                "service.name": SERVICE_NAME,
                "service.version": SERVICE_VERSION,
                "deployment.environment": config.observability.environment,
                "accel.library_mode": config.library.mode,
            }
        )
    )
    provider.add_span_processor(BatchSpanProcessor(_span_exporter(config)))
    trace.set_tracer_provider(provider)

    return get_tracer()


def get_tracer(name: str = SERVICE_NAME) -> trace.Tracer:
    return trace.get_tracer(name, SERVICE_VERSION)


def return_code_of(error: Optional[BaseException]) -> Optional[int]:
    """Native return code behind an error, following the cause chain."""
    while error is not None:
        if isinstance(error, ManagementLibraryError) and error.code is not None:
            return int(error.code)
        error = error.__cause__
    return None


@contextmanager
def library_span(tracer: trace.Tracer, name: str, **attributes: Any) -> Iterator[trace.Span]:
    """Span around management library work, tagged with the failing return code.

    The exception is recorded and re-raised unchanged.
    """
    with tracer.start_as_current_span(name, attributes=attributes) as span:
        try:
            yield span
        except Exception as e:
            code = return_code_of(e)
            if code is not None:
                span.set_attribute("hlml.return_code", code)
            raise
