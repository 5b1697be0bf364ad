"""FastAPI application exposing the game over a WebSocket."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import random
from dataclasses import dataclass

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from seabattle.config import ServerConfig, load_server_config
from seabattle.lobby import PlayerRegistry, RoomRegistry

from .hub import Connection, ConnectionHub
from .router import EventRouter

logger = logging.getLogger(__name__)


@dataclass
class GameServer:
    """The process-wide registries and the router wired over them."""

    hub: ConnectionHub
    players: PlayerRegistry
    rooms: RoomRegistry
    router: EventRouter


def build_server(seed: int | None = None) -> GameServer:
    hub = ConnectionHub()
    players = PlayerRegistry()
    rooms = RoomRegistry(on_win=players.record_win, rng=random.Random(seed))
    return GameServer(hub=hub, players=players, rooms=rooms, router=EventRouter(hub, players, rooms))


async def _pump(websocket: WebSocket, connection: Connection) -> None:
    while True:
        frame = await connection.outbox.get()
        try:
            await websocket.send_text(frame)
        except (WebSocketDisconnect, RuntimeError) as exc:
            logger.warning("send_failed", extra={"connection": connection.id, "reason": str(exc)})
            return


def make_app(server: GameServer | None = None, config: ServerConfig | None = None) -> FastAPI:
    config = config or load_server_config()
    server = server or build_server(config.seed)
    app = FastAPI(title="seabattle")
    app.state.server = server

    @app.get("/health")
    def health() -> dict[str, int]:
        return {"connections": len(server.hub), "players": len(server.players), "rooms": len(server.rooms.rooms())}

    @app.websocket(config.path)
    async def play(websocket: WebSocket) -> None:
        await websocket.accept()
        connection = server.hub.connect()
        logger.info("client_connected", extra={"connection": connection.id})
        sender = asyncio.create_task(_pump(websocket, connection))
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
                raw = message.get("text")
                if raw is None:
                    raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")
                server.router.handle(connection, raw)
        finally:
            server.router.disconnect(connection)
            sender.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sender
            logger.info("client_disconnected", extra={"connection": connection.id})

    return app
