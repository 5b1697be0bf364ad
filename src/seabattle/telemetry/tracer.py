"""Tracing helpers built on OpenTelemetry."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.trace import Tracer

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .config import TelemetryConfig

logger = logging.getLogger(__name__)

_TRACER: Tracer | None = None
_TRACER_PROVIDER: TracerProvider | None = None


def get_tracer(name: str = "seabattle") -> Tracer:
    """Return the process tracer; a proxy until tracing is initialised."""
    global _TRACER
    if _TRACER is None:
        _TRACER = trace.get_tracer(name)
    return _TRACER


def init_tracing(config: TelemetryConfig) -> Tracer:
    """Install a TracerProvider exporting over OTLP, or to the console."""
    global _TRACER, _TRACER_PROVIDER

    if config.otlp_traces_endpoint:
        processor = BatchSpanProcessor(OTLPSpanExporter(endpoint=config.otlp_traces_endpoint, insecure=True))
    else:
        processor = SimpleSpanProcessor(ConsoleSpanExporter())

    provider = TracerProvider(resource=Resource.create(config.resource_attributes_with_service()))
    provider.add_span_processor(processor)
    trace.set_tracer_provider(provider)

    _TRACER_PROVIDER = provider
    _TRACER = provider.get_tracer(config.service_name)
    logger.info("tracing_initialised", extra={"endpoint": config.otlp_traces_endpoint or "console"})
    return _TRACER


def shutdown_tracing() -> None:
    """Flush pending spans; no-op unless ``init_tracing`` ran."""
    global _TRACER, _TRACER_PROVIDER
    if _TRACER_PROVIDER is None:
        return
    _TRACER_PROVIDER.shutdown()
    _TRACER_PROVIDER = None
    _TRACER = None
