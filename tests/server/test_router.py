"""End-to-end command handling through the EventRouter."""

from __future__ import annotations

import itertools
import json
import random
from typing import Any

import pytest
from seabattle.engine import GameSession
from seabattle.lobby import PlayerRegistry, RoomRegistry
from seabattle.server.hub import Connection, ConnectionHub
from seabattle.server.router import EventRouter

ONE_CELL_FLEET = [
    {"position": {"x": 0, "y": 0}, "direction": False, "length": 1, "type": "small"},
    {"position": {"x": 9, "y": 9}, "direction": False, "length": 1, "type": "small"},
]


def frame(message_type: str, payload: Any = "") -> str:
    data = payload if isinstance(payload, str) else json.dumps(payload)
    return json.dumps({"type": message_type, "data": data, "id": 0})


def drain(connection: Connection) -> list[tuple[str, Any]]:
    messages = []
    while not connection.outbox.empty():
        envelope = json.loads(connection.outbox.get_nowait())
        assert envelope["id"] == 0
        data = json.loads(envelope["data"]) if envelope["data"] else None
        messages.append((envelope["type"], data))
    return messages


def of_type(messages: list[tuple[str, Any]], message_type: str) -> list[Any]:
    return [data for kind, data in messages if kind == message_type]


@pytest.fixture
def router() -> EventRouter:
    player_ids = itertools.count(1)
    room_ids = itertools.count(1)
    players = PlayerRegistry(id_factory=lambda: f"player-{next(player_ids)}")
    rooms = RoomRegistry(
        on_win=players.record_win,
        rng=random.Random(7),
        id_factory=lambda: f"room-{next(room_ids)}",
        session_factory=GameSession,
    )
    return EventRouter(ConnectionHub(), players, rooms)


def login(router: EventRouter, name: str) -> Connection:
    connection = router.hub.connect()
    router.handle(connection, frame("reg", {"name": name, "password": "pw"}))
    return connection


def seated_game(router: EventRouter) -> tuple[Connection, Connection, str]:
    alice = login(router, "alice")
    bob = login(router, "bob")
    router.handle(alice, frame("create_room"))
    router.handle(bob, frame("add_user_to_room", {"indexRoom": "room-1"}))
    drain(alice)
    drain(bob)
    return alice, bob, "room-1"


def started_game(router: EventRouter) -> tuple[Connection, Connection, str, int]:
    alice, bob, game_id = seated_game(router)
    router.handle(alice, frame("add_ships", {"gameId": game_id, "ships": ONE_CELL_FLEET, "indexPlayer": 0}))
    router.handle(bob, frame("add_ships", {"gameId": game_id, "ships": ONE_CELL_FLEET}))
    turn = of_type(drain(alice), "turn")[0]["currentPlayer"]
    drain(bob)
    return alice, bob, game_id, turn


def test_reg_acknowledges_and_broadcasts_lobby(router: EventRouter) -> None:
    connection = login(router, "alice")
    messages = drain(connection)
    assert messages[0] == ("reg", {"name": "alice", "index": "player-1", "error": False, "errorText": ""})
    assert ("update_room", []) in messages
    assert ("update_winners", [{"name": "alice", "wins": 0}]) in messages


def test_reg_with_wrong_password_echoes_name(router: EventRouter) -> None:
    login(router, "alice")
    other = router.hub.connect()
    router.handle(other, frame("reg", {"name": "alice", "password": "nope"}))
    [(kind, data)] = drain(other)
    assert kind == "reg"
    assert data["name"] == "alice"
    assert data["error"] is True
    assert data["index"] is None
    assert other.player is None


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        json.dumps({"type": "reg", "data": "{}", "id": 1}),
        json.dumps({"type": "reg", "data": {"name": "x"}, "id": 0}),
        json.dumps({"data": "{}", "id": 0}),
        json.dumps({"type": "reg", "data": "{}"}),
    ],
)
def test_malformed_envelopes_get_one_error(router: EventRouter, raw: str) -> None:
    connection = router.hub.connect()
    router.handle(connection, raw)
    [(kind, data)] = drain(connection)
    assert kind == "reg"
    assert data["error"] is True


def test_commands_require_authentication(router: EventRouter) -> None:
    connection = router.hub.connect()
    router.handle(connection, frame("create_room"))
    [(kind, data)] = drain(connection)
    assert (kind, data["errorText"]) == ("reg", "Not authenticated")


def test_unknown_command(router: EventRouter) -> None:
    connection = login(router, "alice")
    drain(connection)
    router.handle(connection, frame("self_destruct"))
    [(kind, data)] = drain(connection)
    assert kind == "reg"
    assert "Unknown command" in data["errorText"]


def test_room_creation_and_join(router: EventRouter) -> None:
    alice = login(router, "alice")
    bob = login(router, "bob")
    drain(alice)
    drain(bob)

    router.handle(alice, frame("create_room"))
    listing = of_type(drain(bob), "update_room")[-1]
    assert listing == [{"roomId": "room-1", "roomUsers": [{"name": "alice", "index": "player-1"}]}]

    router.handle(bob, frame("add_user_to_room", {"indexRoom": "room-1"}))
    alice_messages = drain(alice)
    bob_messages = drain(bob)
    assert of_type(alice_messages, "create_game") == [{"idGame": "room-1", "idPlayer": 0}]
    assert of_type(bob_messages, "create_game") == [{"idGame": "room-1", "idPlayer": 1}]
    assert of_type(bob_messages, "update_room")[-1] == []


def test_joining_own_room_fails(router: EventRouter) -> None:
    alice = login(router, "alice")
    router.handle(alice, frame("create_room"))
    drain(alice)
    router.handle(alice, frame("add_user_to_room", {"indexRoom": "room-1"}))
    [(kind, data)] = drain(alice)
    assert kind == "reg"
    assert data["error"] is True


def test_both_fleets_start_the_game(router: EventRouter) -> None:
    alice, bob, game_id = seated_game(router)
    router.handle(alice, frame("add_ships", {"gameId": game_id, "ships": ONE_CELL_FLEET, "indexPlayer": 0}))
    assert drain(alice) == []

    router.handle(bob, frame("add_ships", {"gameId": game_id, "ships": ONE_CELL_FLEET, "indexPlayer": "1"}))
    alice_messages = drain(alice)
    [start] = of_type(alice_messages, "start_game")
    assert start["ships"][0] == {
        "position": {"x": 0, "y": 0},
        "direction": False,
        "length": 1,
        "type": "small",
    }
    assert start["currentPlayerIndex"] in (0, 1)
    assert of_type(alice_messages, "turn") == [{"currentPlayer": start["currentPlayerIndex"]}]
    assert of_type(drain(bob), "turn") == [{"currentPlayer": start["currentPlayerIndex"]}]


def test_invalid_fleet_is_reported(router: EventRouter) -> None:
    alice, _, game_id = seated_game(router)
    ships = [{"position": {"x": 9, "y": 0}, "direction": False, "length": 3, "type": "large"}]
    router.handle(alice, frame("add_ships", {"gameId": game_id, "ships": ships}))
    [(kind, data)] = drain(alice)
    assert kind == "reg"
    assert data["errorText"].startswith("Ship out of bounds")


def test_index_player_must_match_caller(router: EventRouter) -> None:
    alice, _, game_id = seated_game(router)
    router.handle(alice, frame("add_ships", {"gameId": game_id, "ships": ONE_CELL_FLEET, "indexPlayer": 1}))
    [(kind, data)] = drain(alice)
    assert kind == "reg"
    assert "indexPlayer" in data["errorText"]


def test_outsider_cannot_touch_a_game(router: EventRouter) -> None:
    _, _, game_id = seated_game(router)
    carol = login(router, "carol")
    drain(carol)
    router.handle(carol, frame("attack", {"gameId": game_id, "x": 0, "y": 0}))
    [(kind, data)] = drain(carol)
    assert (kind, data["errorText"]) == ("reg", "Game not found")


def test_out_of_turn_attack_answers_only_the_offender(router: EventRouter) -> None:
    alice, bob, game_id, turn = started_game(router)
    waiting, other = (bob, alice) if turn == 0 else (alice, bob)
    router.handle(waiting, frame("attack", {"gameId": game_id, "x": 4, "y": 4}))
    assert drain(waiting) == [
        ("attack", {"position": {"x": 4, "y": 4}, "currentPlayer": turn, "status": "miss"})
    ]
    assert drain(other) == []


def test_miss_then_turn_goes_to_both(router: EventRouter) -> None:
    alice, bob, game_id, turn = started_game(router)
    shooter = alice if turn == 0 else bob
    router.handle(shooter, frame("attack", {"gameId": game_id, "x": 5, "y": 5, "indexPlayer": turn}))
    for connection in (alice, bob):
        assert drain(connection) == [
            ("attack", {"position": {"x": 5, "y": 5}, "currentPlayer": turn, "status": "miss"}),
            ("turn", {"currentPlayer": 1 - turn}),
        ]


def test_repeat_shot_keeps_the_turn(router: EventRouter) -> None:
    alice, bob, game_id, turn = started_game(router)
    shooter = alice if turn == 0 else bob
    router.handle(shooter, frame("attack", {"gameId": game_id, "x": 0, "y": 0}))
    drain(alice)
    drain(bob)
    router.handle(shooter, frame("attack", {"gameId": game_id, "x": 0, "y": 1}))
    assert drain(shooter) == [
        ("attack", {"position": {"x": 0, "y": 1}, "currentPlayer": turn, "status": "repeat"}),
        ("turn", {"currentPlayer": turn}),
    ]


def test_attack_coordinates_are_validated(router: EventRouter) -> None:
    alice, bob, game_id, turn = started_game(router)
    shooter = alice if turn == 0 else bob
    router.handle(shooter, frame("attack", {"gameId": game_id, "x": 10, "y": 0}))
    [(kind, data)] = drain(shooter)
    assert kind == "reg"
    assert data["error"] is True


def test_game_to_the_finish(router: EventRouter) -> None:
    alice, bob, game_id, turn = started_game(router)
    shooter = alice if turn == 0 else bob

    router.handle(shooter, frame("randomAttack", {"gameId": game_id, "indexPlayer": turn}))
    first = drain(bob)
    statuses = [data["status"] for data in of_type(first, "attack")]
    assert statuses == ["killed", "miss", "miss", "miss"]
    assert of_type(first, "turn") == [{"currentPlayer": turn}]
    drain(alice)

    router.handle(shooter, frame("attack", {"gameId": game_id, "x": 9, "y": 9}))
    for connection in (alice, bob):
        messages = drain(connection)
        assert of_type(messages, "finish") == [{"winPlayer": turn}]
        assert of_type(messages, "turn") == []
        winners = of_type(messages, "update_winners")[-1]
        winner_name = "alice" if turn == 0 else "bob"
        assert {"name": winner_name, "wins": 1} in winners
        assert of_type(messages, "update_room")[-1] == []

    router.handle(shooter, frame("attack", {"gameId": game_id, "x": 5, "y": 5}))
    [(kind, data)] = drain(shooter)
    assert (kind, data["errorText"]) == ("reg", "Game not found")


def test_disconnect_resets_room_and_drops_game(router: EventRouter) -> None:
    alice, bob, game_id, _ = started_game(router)
    router.disconnect(bob)

    listing = of_type(drain(alice), "update_room")[-1]
    assert listing == [{"roomId": game_id, "roomUsers": [{"name": "alice", "index": "player-1"}]}]

    router.handle(alice, frame("randomAttack", {"gameId": game_id}))
    [(kind, data)] = drain(alice)
    assert (kind, data["errorText"]) == ("reg", "Game not found")


def test_stale_connection_close_does_not_evict(router: EventRouter) -> None:
    _, _, game_id = seated_game(router)
    old = router.hub.connection_of("player-2")
    fresh = login(router, "bob")
    assert router.hub.connection_of("player-2") is fresh

    router.disconnect(old)
    assert router.rooms.session(game_id).players == ("player-1", "player-2")
