"""Command-line entry point that boots the game server."""

from __future__ import annotations

import argparse
import logging
from typing import Sequence

import uvicorn
from opentelemetry.instrumentation.logging import LoggingInstrumentor

from seabattle.config import ServerConfig
from seabattle.server import make_app
from seabattle.telemetry import TelemetryConfig, configure_console_logging, init_telemetry, shutdown_telemetry

logger = logging.getLogger(__name__)


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the Sea Battle WebSocket server.")
    parser.add_argument("--host", default=None, help="Interface to bind (env: SEABATTLE_HOST, HOST).")
    parser.add_argument("--port", type=int, default=None, help="Port to listen on (env: SEABATTLE_PORT, PORT).")
    parser.add_argument("--path", default=None, help="WebSocket route (env: SEABATTLE_PATH).")
    parser.add_argument(
        "--seed", type=int, default=None, help="Optional RNG seed for who moves first."
    )
    parser.add_argument("--log-level", default=None, help="Logging level (env: SEABATTLE_LOG_LEVEL).")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ServerConfig:
    return ServerConfig.from_env(
        host=args.host,
        port=args.port,
        path=args.path,
        seed=args.seed,
        log_level=args.log_level,
    )


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    config = build_config(args)

    configure_console_logging(config.log_level.upper())
    telemetry = init_telemetry(TelemetryConfig.from_env())
    if telemetry.enable_logging:
        LoggingInstrumentor().instrument()

    logger.info("server_starting", extra={"host": config.host, "port": config.port, "path": config.path})
    try:
        uvicorn.run(make_app(config=config), host=config.host, port=config.port, log_level=config.log_level)
    finally:
        shutdown_telemetry()


if __name__ == "__main__":
    main()
