"""Pre-game lobby: rooms, joining, and the sessions rooms spawn."""

from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from seabattle.engine import GameSession, InstrumentedGameSession
from seabattle.errors import AlreadyInRoom, RoomFull, RoomNotFound, SessionNotFound
from seabattle.telemetry import get_meter, get_tracer

logger = logging.getLogger(__name__)
tracer = get_tracer("seabattle.lobby.rooms")
meter = get_meter("seabattle.lobby.rooms")

ROOM_COUNTER = meter.create_counter(
    "seabattle_lobby_room_events",
    unit="1",
    description="Room lifecycle transitions",
)

ROOM_CAPACITY = 2

SessionFactory = Callable[..., GameSession]


class RoomState(Enum):
    WAITING = "waiting"
    PLACING = "placing"
    PLAYING = "playing"
    FINISHED = "finished"


@dataclass
class Room:
    id: str
    members: list[str] = field(default_factory=list)
    state: RoomState = RoomState.WAITING

    def is_full(self) -> bool:
        return len(self.members) >= ROOM_CAPACITY


class RoomRegistry:
    """Owns every room and the game session each full room runs.

    A session shares its room's id. Finishing a game deletes both.
    """

    def __init__(
        self,
        on_win: Callable[[str], None] | None = None,
        rng: random.Random | None = None,
        id_factory: Callable[[], str] | None = None,
        session_factory: SessionFactory = InstrumentedGameSession,
    ) -> None:
        self._rooms: dict[str, Room] = {}
        self._sessions: dict[str, GameSession] = {}
        self._on_win = on_win
        self._rng = rng or random.Random()
        self._new_id = id_factory or (lambda: str(uuid.uuid4()))
        self._session_factory = session_factory

    def create_room(self, identity: str) -> Room:
        room = Room(id=self._new_id(), members=[identity])
        self._rooms[room.id] = room
        ROOM_COUNTER.add(1, attributes={"event": "created"})
        logger.info("room_created", extra={"room_id": room.id, "player": identity})
        return room

    def join_room(self, room_id: str, identity: str) -> GameSession:
        """Seat ``identity`` as the second member and spawn the room's session."""
        with tracer.start_as_current_span("rooms.join_room") as span:
            span.set_attribute("room.id", room_id)
            room = self.room(room_id)
            if room.is_full():
                raise RoomFull(room_id)
            if identity in room.members:
                raise AlreadyInRoom(room_id)

            room.members.append(identity)
            room.state = RoomState.PLACING
            session = self._session_factory(
                room.id,
                (room.members[0], room.members[1]),
                rng=random.Random(self._rng.random()),
                on_win=self._on_win,
            )
            self._sessions[room.id] = session
            ROOM_COUNTER.add(1, attributes={"event": "joined"})
            logger.info("room_joined", extra={"room_id": room.id, "player": identity})
            return session

    def room(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFound(room_id)
        return room

    def session(self, game_id: str) -> GameSession:
        session = self._sessions.get(game_id)
        if session is None:
            raise SessionNotFound(game_id)
        return session

    def mark_playing(self, game_id: str) -> None:
        room = self._rooms.get(game_id)
        if room is not None:
            room.state = RoomState.PLAYING

    def finish(self, game_id: str) -> None:
        """Drop a finished game and its room; neither is reused."""
        room = self._rooms.pop(game_id, None)
        if room is not None:
            room.state = RoomState.FINISHED
        self._sessions.pop(game_id, None)
        ROOM_COUNTER.add(1, attributes={"event": "finished"})
        logger.info("room_finished", extra={"room_id": game_id})

    def leave(self, identity: str) -> list[Room]:
        """Evict ``identity`` from every room it is in, discarding their games.

        Returns the rooms that changed. Rooms left without members are deleted.
        """
        changed: list[Room] = []
        for room in list(self._rooms.values()):
            if identity not in room.members or room.state is RoomState.FINISHED:
                continue
            room.members.remove(identity)
            room.state = RoomState.WAITING
            session = self._sessions.pop(room.id, None)
            if session is not None:
                session.close()
                ROOM_COUNTER.add(1, attributes={"event": "abandoned"})
            if not room.members:
                del self._rooms[room.id]
            changed.append(room)
            logger.info(
                "room_left",
                extra={"room_id": room.id, "player": identity, "remaining": len(room.members)},
            )
        return changed

    def open_rooms(self) -> list[Room]:
        """Rooms still waiting for a second player, in creation order."""
        return [room for room in self._rooms.values() if room.state is RoomState.WAITING]

    def rooms(self) -> list[Room]:
        return list(self._rooms.values())
