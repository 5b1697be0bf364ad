"""Inbound command dispatch and outbound event fan-out."""

from __future__ import annotations

import logging
from typing import Callable

from seabattle.engine import Coordinate, GameSession
from seabattle.errors import (
    AuthenticationRequired,
    InvalidSlot,
    NotYourTurn,
    SeaBattleError,
    SessionNotFound,
    UnknownCommand,
)
from seabattle.lobby import PlayerRegistry, RoomRegistry
from seabattle.telemetry import get_meter, get_tracer

from .hub import Connection, ConnectionHub
from .protocol import (
    AddShipsRequest,
    AttackFeedback,
    AttackRequest,
    CellPosition,
    CreateGame,
    FinishInfo,
    JoinRoomRequest,
    RandomAttackRequest,
    RegRequest,
    RegResponse,
    RoomListItem,
    RoomUser,
    ShipPayload,
    StartGame,
    TurnInfo,
    WinnerEntry,
    decode_envelope,
    decode_payload,
)

logger = logging.getLogger(__name__)
tracer = get_tracer("seabattle.server.router")
meter = get_meter("seabattle.server.router")

COMMAND_COUNTER = meter.create_counter(
    "seabattle_server_commands",
    unit="1",
    description="Inbound commands handled, by type and result",
)

Handler = Callable[[Connection, str], None]


class EventRouter:
    """Turns inbound frames into lobby/session calls and outbound events.

    Every failure is answered on the offending connection only: a ``reg``
    event with ``error`` set, or, for an attack out of turn, an ``attack``
    event naming the current turn holder.
    """

    def __init__(self, hub: ConnectionHub, players: PlayerRegistry, rooms: RoomRegistry) -> None:
        self.hub = hub
        self.players = players
        self.rooms = rooms
        self._handlers: dict[str, Handler] = {
            "reg": self._on_reg,
            "create_room": self._on_create_room,
            "add_user_to_room": self._on_add_user_to_room,
            "add_ships": self._on_add_ships,
            "attack": self._on_attack,
            "randomAttack": self._on_random_attack,
        }

    def handle(self, connection: Connection, raw: str | bytes) -> None:
        with tracer.start_as_current_span("router.handle") as span:
            span.set_attribute("connection.id", connection.id)
            command = "invalid"
            try:
                envelope = decode_envelope(raw)
                command = envelope.type
                span.set_attribute("command", command)
                handler = self._handlers.get(command)
                if handler is None:
                    raise UnknownCommand(command)
                if command != "reg" and connection.player is None:
                    raise AuthenticationRequired()
                logger.info(
                    "command_received",
                    extra={"command": command, "connection": connection.id, "player": connection.player},
                )
                handler(connection, envelope.data)
            except SeaBattleError as exc:
                span.set_attribute("error", type(exc).__name__)
                COMMAND_COUNTER.add(1, attributes={"command": command, "result": type(exc).__name__})
                logger.warning(
                    "command_failed",
                    extra={"command": command, "connection": connection.id, "reason": str(exc)},
                )
                self._reply_error(connection, str(exc))
                return
            COMMAND_COUNTER.add(1, attributes={"command": command, "result": "ok"})

    def disconnect(self, connection: Connection) -> None:
        """Evict the connection's player from its rooms, if it is still theirs."""
        player = connection.player
        is_current = player is not None and self.hub.connection_of(player) is connection
        self.hub.disconnect(connection)
        if not is_current:
            return
        changed = self.rooms.leave(player)
        if changed:
            logger.info("player_disconnected", extra={"player": player, "rooms": len(changed)})
            self.broadcast_rooms()

    def broadcast_rooms(self) -> None:
        listing = [
            RoomListItem(
                roomId=room.id,
                roomUsers=[
                    RoomUser(name=self.players.name_of(member), index=member) for member in room.members
                ],
            )
            for room in self.rooms.open_rooms()
        ]
        self.hub.broadcast("update_room", listing)

    def broadcast_winners(self) -> None:
        table = [WinnerEntry(name=name, wins=wins) for name, wins in self.players.winners()]
        self.hub.broadcast("update_winners", table)

    # ------------------------------------------------------------ commands

    def _on_reg(self, connection: Connection, data: str) -> None:
        request = decode_payload(RegRequest, data)
        try:
            player = self.players.obtain(request.name or "", request.password or "")
        except SeaBattleError as exc:
            self.hub.send(
                connection,
                "reg",
                RegResponse(name=request.name, index=None, error=True, errorText=str(exc)),
            )
            return
        self.hub.bind(connection, player.identity)
        self.hub.send(connection, "reg", RegResponse(name=player.name, index=player.identity))
        self.broadcast_rooms()
        self.broadcast_winners()

    def _on_create_room(self, connection: Connection, data: str) -> None:
        self.rooms.create_room(connection.player)
        self.broadcast_rooms()

    def _on_add_user_to_room(self, connection: Connection, data: str) -> None:
        request = decode_payload(JoinRoomRequest, data)
        session = self.rooms.join_room(request.indexRoom, connection.player)
        for slot, identity in enumerate(session.players):
            self.hub.send_to_player(identity, "create_game", CreateGame(idGame=session.id, idPlayer=slot))
        self.broadcast_rooms()

    def _on_add_ships(self, connection: Connection, data: str) -> None:
        request = decode_payload(AddShipsRequest, data)
        session = self.rooms.session(request.gameId)
        slot = self._seat(connection, session, request.indexPlayer)
        started = session.submit_fleet(slot, [ship.to_placement() for ship in request.ships])
        if not started:
            return

        self.rooms.mark_playing(session.id)
        for seat, identity in enumerate(session.players):
            fleet = [ShipPayload.from_ship(ship) for ship in session.fleet(seat)]
            self.hub.send_to_player(
                identity,
                "start_game",
                StartGame(ships=fleet, currentPlayerIndex=session.current_turn),
            )
        self.hub.send_to_players(session.players, "turn", TurnInfo(currentPlayer=session.current_turn))

    def _on_attack(self, connection: Connection, data: str) -> None:
        request = decode_payload(AttackRequest, data)
        session = self.rooms.session(request.gameId)
        slot = self._seat(connection, session, request.indexPlayer)
        self._fire(connection, session, slot, request.coordinate)

    def _on_random_attack(self, connection: Connection, data: str) -> None:
        request = decode_payload(RandomAttackRequest, data)
        session = self.rooms.session(request.gameId)
        slot = self._seat(connection, session, request.indexPlayer)
        self._fire(connection, session, slot, session.pick_target(slot))

    # ------------------------------------------------------------- helpers

    def _seat(self, connection: Connection, session: GameSession, index_player: int | None) -> int:
        """Resolve the caller's slot; an explicit ``indexPlayer`` must match it."""
        slot = session.player_slot(connection.player)
        if slot is None:
            raise SessionNotFound(session.id)
        if index_player is not None and index_player != slot:
            raise InvalidSlot(index_player)
        return slot

    def _fire(self, connection: Connection, session: GameSession, slot: int, coord: Coordinate) -> None:
        try:
            report = session.attack(slot, coord)
        except NotYourTurn as exc:
            self.hub.send(
                connection,
                "attack",
                AttackFeedback(
                    position=CellPosition(x=coord.x, y=coord.y),
                    currentPlayer=exc.current_turn,
                    status="miss",
                ),
            )
            return

        for outcome in report.outcomes:
            self.hub.send_to_players(
                session.players,
                "attack",
                AttackFeedback(
                    position=CellPosition(x=outcome.coord.x, y=outcome.coord.y),
                    currentPlayer=report.attacker,
                    status=outcome.status.value,
                ),
            )

        if not report.finished:
            self.hub.send_to_players(session.players, "turn", TurnInfo(currentPlayer=report.current_turn))
            return

        self.hub.send_to_players(session.players, "finish", FinishInfo(winPlayer=report.winner))
        self.rooms.finish(session.id)
        self.broadcast_winners()
        self.broadcast_rooms()

    def _reply_error(self, connection: Connection, text: str) -> None:
        self.hub.send(connection, "reg", RegResponse(name=None, index=None, error=True, errorText=text))
