"""Logging setup, with an optional OpenTelemetry log exporter."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.grpc._log_exporter import OTLPLogExporter
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.resources import Resource

if TYPE_CHECKING:
    from .config import TelemetryConfig

LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | %(message)s "
    "| trace_id=%(otelTraceID)s span_id=%(otelSpanID)s"
)

_OTLP_HANDLER: logging.Handler | None = None


class _OtelContextFilter(logging.Filter):
    """Fill trace/span placeholders on records emitted outside a span."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - trivial
        if not hasattr(record, "otelTraceID"):
            record.otelTraceID = "-"
        if not hasattr(record, "otelSpanID"):
            record.otelSpanID = "-"
        return True


def get_logger(name: str = "seabattle") -> logging.Logger:
    return logging.getLogger(name)


def configure_console_logging(level: int | str = logging.INFO) -> None:
    """Send records to stderr in the server's line format, once."""
    root_logger = logging.getLogger()
    if root_logger.handlers:
        root_logger.setLevel(level)
        return
    logging.basicConfig(level=level, format=LOG_FORMAT)
    for handler in root_logger.handlers:
        handler.addFilter(_OtelContextFilter())


def init_logging(config: TelemetryConfig) -> logging.Logger:
    """Export log records over OTLP in addition to the console."""
    global _OTLP_HANDLER
    logger = get_logger(config.service_name)
    configure_console_logging()
    if _OTLP_HANDLER is not None:
        return logger

    provider = LoggerProvider(resource=Resource.create(config.resource_attributes_with_service()))
    if config.otlp_logs_endpoint:
        exporter = OTLPLogExporter(endpoint=config.otlp_logs_endpoint, insecure=True)
        provider.add_log_record_processor(BatchLogRecordProcessor(exporter))
    set_logger_provider(provider)

    handler = LoggingHandler(level=logging.INFO, logger_provider=provider)
    handler.addFilter(_OtelContextFilter())
    logging.getLogger().addHandler(handler)
    _OTLP_HANDLER = handler
    return logger
