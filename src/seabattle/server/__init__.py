"""WebSocket transport, protocol models and event routing."""

from .app import GameServer, build_server, make_app
from .hub import Connection, ConnectionHub
from .router import EventRouter

__all__ = ["Connection", "ConnectionHub", "EventRouter", "GameServer", "build_server", "make_app"]
