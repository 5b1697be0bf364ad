"""Telemetry configuration for the game server."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, Field

from .logger import init_logging
from .metrics import init_metrics, shutdown_metrics
from .tracer import init_tracing, shutdown_tracing

_TRUTHY = {"1", "true", "yes", "on"}

# field -> env vars checked in order
_FLAG_ENV = {
    "enable_tracing": ("SEABATTLE_ENABLE_TRACING", "OTEL_TRACES_ENABLED"),
    "enable_metrics": ("SEABATTLE_ENABLE_METRICS", "OTEL_METRICS_ENABLED"),
    "enable_logging": ("SEABATTLE_ENABLE_LOGGING", "OTEL_LOGS_ENABLED"),
}

_ENDPOINT_ENV = {
    "otlp_traces_endpoint": ("OTEL_EXPORTER_OTLP_TRACES_ENDPOINT", "v1/traces", "enable_tracing"),
    "otlp_metrics_endpoint": ("OTEL_EXPORTER_OTLP_METRICS_ENDPOINT", "v1/metrics", "enable_metrics"),
    "otlp_logs_endpoint": ("OTEL_EXPORTER_OTLP_LOGS_ENDPOINT", "v1/logs", "enable_logging"),
}


class TelemetryConfig(BaseModel):
    """Which OpenTelemetry signals to export, and where."""

    enable_tracing: bool = False
    enable_metrics: bool = False
    enable_logging: bool = False
    otlp_traces_endpoint: str | None = None
    otlp_metrics_endpoint: str | None = None
    otlp_logs_endpoint: str | None = None
    service_name: str = "seabattle"
    service_namespace: str = "game-server"
    resource_attributes: dict[str, str] = Field(default_factory=dict)

    @classmethod
    def from_env(cls, **overrides: Any) -> "TelemetryConfig":
        """Build a config from `SEABATTLE_*` and standard `OTEL_*` variables.

        An exporter whose endpoint is configured is switched on even when its
        enable flag is absent.
        """

        data: dict[str, Any] = cls().model_dump()

        for field, names in _FLAG_ENV.items():
            for name in names:
                raw = os.getenv(name)
                if raw is not None:
                    data[field] = raw.strip().lower() in _TRUTHY
                    break

        base = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
        for field, (name, suffix, flag) in _ENDPOINT_ENV.items():
            endpoint = os.getenv(name)
            if not endpoint and base:
                endpoint = f"{base.rstrip('/')}/{suffix}"
            if endpoint:
                data[field] = endpoint
                data[flag] = True

        data["service_name"] = os.getenv("OTEL_SERVICE_NAME") or data["service_name"]
        data["service_namespace"] = os.getenv("OTEL_SERVICE_NAMESPACE") or data["service_namespace"]

        for part in os.getenv("OTEL_RESOURCE_ATTRIBUTES", "").split(","):
            if "=" in part:
                key, value = part.split("=", 1)
                data["resource_attributes"][key.strip()] = value.strip()

        data.update(overrides)
        return cls(**data)

    def resource_attributes_with_service(self) -> dict[str, str]:
        attributes = {
            "service.name": self.service_name,
            "service.namespace": self.service_namespace,
        }
        attributes.update(self.resource_attributes)
        return attributes


@lru_cache(maxsize=1)
def load_telemetry_config() -> TelemetryConfig:
    """Load and cache telemetry config from the environment."""

    return TelemetryConfig.from_env()


def init_telemetry(config: TelemetryConfig | None = None) -> TelemetryConfig:
    """Start the exporters the config asks for."""

    resolved = config or load_telemetry_config()

    if resolved.enable_tracing:
        init_tracing(resolved)
    if resolved.enable_metrics:
        init_metrics(resolved)
    if resolved.enable_logging:
        init_logging(resolved)
    return resolved


def shutdown_telemetry() -> None:
    """Flush and release whatever exporters ``init_telemetry`` started."""

    shutdown_tracing()
    shutdown_metrics()
