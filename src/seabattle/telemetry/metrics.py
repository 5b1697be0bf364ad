"""Metric instruments for the game server."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Mapping

from opentelemetry import metrics as otel_metrics
from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import OTLPMetricExporter
from opentelemetry.metrics import Counter, Histogram, Meter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import Resource

if TYPE_CHECKING:  # pragma: no cover
    from .config import TelemetryConfig

logger = logging.getLogger(__name__)

EXPORT_INTERVAL_MS = 5000

MetricAttributes = Mapping[str, str | bool | int | float]

_METER_PROVIDER: MeterProvider | None = None
_METER: Meter | None = None
_COUNTERS: dict[str, Counter] = {}
_HISTOGRAMS: dict[str, Histogram] = {}


def get_meter(name: str = "seabattle") -> Meter:
    """Return the process meter, falling back to the global (no-op) provider."""
    global _METER
    if _METER is None:
        _METER = otel_metrics.get_meter(name)
    return _METER


def init_metrics(config: TelemetryConfig) -> Meter:
    global _METER_PROVIDER, _METER, _COUNTERS, _HISTOGRAMS

    readers = []
    if config.otlp_metrics_endpoint:
        exporter = OTLPMetricExporter(endpoint=config.otlp_metrics_endpoint, insecure=True)
        readers.append(PeriodicExportingMetricReader(exporter, export_interval_millis=EXPORT_INTERVAL_MS))

    provider = MeterProvider(
        resource=Resource.create(config.resource_attributes_with_service()),
        metric_readers=readers,
    )
    otel_metrics.set_meter_provider(provider)

    _METER_PROVIDER = provider
    _METER = provider.get_meter(config.service_name)
    # instruments created against the proxy meter would never export
    _COUNTERS = {}
    _HISTOGRAMS = {}
    logger.info("metrics_initialised", extra={"endpoint": config.otlp_metrics_endpoint or "none"})
    return _METER


def shutdown_metrics() -> None:
    """Export the last collection and release the provider."""
    global _METER_PROVIDER, _METER, _COUNTERS, _HISTOGRAMS
    if _METER_PROVIDER is None:
        return
    _METER_PROVIDER.shutdown()
    _METER_PROVIDER = None
    _METER = None
    _COUNTERS = {}
    _HISTOGRAMS = {}


def record_game_metric(name: str, value: float, attrs: MetricAttributes | None = None) -> None:
    """Add ``value`` to the counter called ``name``, creating it on first use."""
    counter = _COUNTERS.get(name)
    if counter is None:
        counter = get_meter().create_counter(name)
        _COUNTERS[name] = counter
    counter.add(value, attributes=attrs or {})


def record_game_duration(name: str, seconds: float, attrs: MetricAttributes | None = None) -> None:
    histogram = _HISTOGRAMS.get(name)
    if histogram is None:
        histogram = get_meter().create_histogram(name, unit="s")
        _HISTOGRAMS[name] = histogram
    histogram.record(seconds, attributes=attrs or {})
