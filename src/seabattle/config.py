"""Server configuration."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any

from pydantic import BaseModel, Field


class ServerConfig(BaseModel):
    """Where the WebSocket endpoint listens and how games are seeded."""

    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=1, le=65535)
    path: str = "/"
    log_level: str = "info"
    seed: int | None = None

    @classmethod
    def from_env(cls, **overrides: Any) -> "ServerConfig":
        """Construct config from `SEABATTLE_*` vars, falling back to `HOST`/`PORT`."""

        data: dict[str, Any] = {}
        env_names = {
            "host": ("SEABATTLE_HOST", "HOST"),
            "port": ("SEABATTLE_PORT", "PORT"),
            "path": ("SEABATTLE_PATH",),
            "log_level": ("SEABATTLE_LOG_LEVEL",),
            "seed": ("SEABATTLE_SEED",),
        }
        for field, names in env_names.items():
            for name in names:
                value = os.getenv(name)
                if value:
                    data[field] = value
                    break

        data.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**data)


@lru_cache(maxsize=1)
def load_server_config() -> ServerConfig:
    """Load and cache server config from the environment."""

    return ServerConfig.from_env()
