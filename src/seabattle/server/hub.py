"""Connection bookkeeping and outbound delivery."""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from .protocol import encode

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class Connection:
    """One client socket; ``player`` is set once it registers or logs in."""

    id: int
    player: str | None = None
    outbox: asyncio.Queue[str] = field(default_factory=asyncio.Queue)

    def push(self, frame: str) -> None:
        self.outbox.put_nowait(frame)


class ConnectionHub:
    """Tracks open connections and which player each one speaks for.

    Delivery only enqueues frames; the transport drains each outbox. A
    message for a player with no open connection is dropped.
    """

    def __init__(self) -> None:
        self._connections: dict[int, Connection] = {}
        self._by_player: dict[str, Connection] = {}
        self._ids = itertools.count(1)

    def __len__(self) -> int:
        return len(self._connections)

    def connect(self) -> Connection:
        connection = Connection(id=next(self._ids))
        self._connections[connection.id] = connection
        logger.debug("connection_opened", extra={"connection": connection.id})
        return connection

    def bind(self, connection: Connection, player: str) -> None:
        """Make ``connection`` the current connection of ``player``."""
        if connection.player is not None and self._by_player.get(connection.player) is connection:
            del self._by_player[connection.player]
        connection.player = player
        self._by_player[player] = connection

    def disconnect(self, connection: Connection) -> None:
        self._connections.pop(connection.id, None)
        if connection.player is not None and self._by_player.get(connection.player) is connection:
            del self._by_player[connection.player]
        logger.debug("connection_closed", extra={"connection": connection.id})

    def connection_of(self, player: str) -> Connection | None:
        return self._by_player.get(player)

    def send(self, connection: Connection, message_type: str, payload: Any) -> None:
        connection.push(encode(message_type, payload))

    def send_to_player(self, player: str, message_type: str, payload: Any) -> None:
        connection = self._by_player.get(player)
        if connection is None:
            logger.debug("delivery_dropped", extra={"player": player, "type": message_type})
            return
        self.send(connection, message_type, payload)

    def send_to_players(self, players: Iterable[str], message_type: str, payload: Any) -> None:
        frame = encode(message_type, payload)
        for player in players:
            connection = self._by_player.get(player)
            if connection is not None:
                connection.push(frame)

    def broadcast(self, message_type: str, payload: Any) -> None:
        frame = encode(message_type, payload)
        for connection in self._connections.values():
            connection.push(frame)
