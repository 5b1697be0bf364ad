"""WebSocket endpoint smoke tests."""

import json

from fastapi.testclient import TestClient
from seabattle.config import ServerConfig, load_server_config
from seabattle.server.app import build_server, make_app


def _frame(message_type: str, payload) -> str:
    return json.dumps({"type": message_type, "data": json.dumps(payload), "id": 0})


def test_register_over_websocket() -> None:
    server = build_server(seed=1)
    client = TestClient(make_app(server, ServerConfig(path="/")))

    with client.websocket_connect("/") as websocket:
        websocket.send_text(_frame("reg", {"name": "alice", "password": "pw"}))
        reply = json.loads(websocket.receive_text())
        assert reply["type"] == "reg"
        data = json.loads(reply["data"])
        assert data["name"] == "alice"
        assert data["error"] is False

        types = {json.loads(websocket.receive_text())["type"] for _ in range(2)}
        assert types == {"update_room", "update_winners"}

        websocket.send_text(_frame("create_room", ""))
        update = json.loads(websocket.receive_text())
        assert update["type"] == "update_room"
        assert len(json.loads(update["data"])) == 1

    assert len(server.hub) == 0
    assert server.rooms.rooms() == []


def test_health_reports_counts() -> None:
    server = build_server()
    client = TestClient(make_app(server))
    assert client.get("/health").json() == {"connections": 0, "players": 0, "rooms": 0}


def test_app_defaults_to_environment_config(monkeypatch) -> None:
    monkeypatch.setenv("SEABATTLE_PATH", "/ws")
    load_server_config.cache_clear()
    try:
        client = TestClient(make_app(build_server()))
        with client.websocket_connect("/ws") as websocket:
            websocket.send_text(_frame("create_room", ""))
            reply = json.loads(websocket.receive_text())
            assert json.loads(reply["data"])["errorText"] == "Not authenticated"
    finally:
        load_server_config.cache_clear()
