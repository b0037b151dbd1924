"""End-to-end tests over the HTTP and WebSocket endpoints."""

from collections.abc import Iterator
from datetime import timedelta
from typing import Any

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.services.room.registry import SessionRegistry, get_session_registry
from app.services.websocket import manager as manager_module
from app.services.websocket.manager import ConnectionManager, get_connection_manager

WS_PATH = "/api/v1/ws"


@pytest.fixture
def registry() -> SessionRegistry:
    return SessionRegistry()


@pytest.fixture
def manager() -> ConnectionManager:
    return ConnectionManager()


@pytest.fixture
def client(registry: SessionRegistry, manager: ConnectionManager) -> Iterator[TestClient]:
    """Test client wired to a fresh registry and connection manager.

    Entered as a context manager so every socket shares one event loop.
    """
    app.dependency_overrides[get_connection_manager] = lambda: manager
    app.dependency_overrides[get_session_registry] = lambda: registry
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def send(ws: Any, message_type: str, payload: dict[str, Any] | None = None) -> None:
    ws.send_json({"type": message_type, "payload": payload or {}})


def receive(ws: Any, message_type: str) -> dict[str, Any]:
    """Receive the next frame and check its type."""
    message = ws.receive_json()
    assert message["type"] == message_type, message
    return message["payload"]


class TestHttpEndpoints:
    """Tests for the plain HTTP routes."""

    def test_health(self, client: TestClient) -> None:
        """Health check answers without touching any room."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    def test_base_url(self, client: TestClient) -> None:
        """The base URL has no trailing slash."""
        response = client.get("/api/url")
        assert response.status_code == 200
        assert response.json() == {"url": "http://testserver"}

    def test_unknown_room_is_404(self, client: TestClient) -> None:
        """Room lookup for a code nobody created."""
        response = client.get("/api/v1/rooms/NOPE00")
        assert response.status_code == 404


class TestWebSocketProtocol:
    """Tests for framing errors and liveness on the WebSocket."""

    def test_invalid_json(self, client: TestClient) -> None:
        """Garbage frames get an error but keep the socket open."""
        with client.websocket_connect(WS_PATH) as ws:
            receive(ws, "connected")

            ws.send_text("not json")
            assert receive(ws, "error")["errorCode"] == "INVALID_JSON"

            send(ws, "ping")
            assert "serverTime" in receive(ws, "pong")

    def test_unknown_message_type(self, client: TestClient) -> None:
        """Types outside the protocol are rejected as invalid messages."""
        with client.websocket_connect(WS_PATH) as ws:
            receive(ws, "connected")

            send(ws, "selfDestruct")
            assert receive(ws, "error")["errorCode"] == "INVALID_MESSAGE"

    def test_game_traffic_keeps_connection_alive(
        self, client: TestClient, manager: ConnectionManager, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A player who never pings but keeps playing is not swept as stale."""
        with client.websocket_connect(WS_PATH) as ws:
            receive(ws, "connected")

            later = manager_module._now() + timedelta(seconds=500)
            monkeypatch.setattr(manager_module, "_now", lambda: later)

            send(ws, "createRoom", {"playerName": "Alice", "totalRounds": 3})
            code = receive(ws, "roomCreated")["roomCode"]

            assert client.portal.call(manager.sweep_stale) == []
            assert len(manager) == 1

            send(ws, "startFirstRound", {"roomCode": code})
            send(ws, "ping")
            assert "serverTime" in receive(ws, "pong")


class TestFullMatch:
    """A complete three-round match with a spectator watching."""

    def test_three_round_match(self, client: TestClient, registry: SessionRegistry) -> None:
        """Alice and Bob play three rounds; the spectator sees everything and the room closes."""
        with (
            client.websocket_connect(WS_PATH) as alice,
            client.websocket_connect(WS_PATH) as bob,
            client.websocket_connect(WS_PATH) as sam,
        ):
            alice_id = receive(alice, "connected")["connectionId"]
            bob_id = receive(bob, "connected")["connectionId"]
            receive(sam, "connected")

            send(alice, "createRoom", {"playerName": "Alice", "totalRounds": 3})
            created = receive(alice, "roomCreated")
            code = created["roomCode"]
            assert len(code) == 6 and code == code.upper()

            response = client.get(f"/api/v1/rooms/{code.lower()}")
            assert response.status_code == 200
            assert response.json()["phase"] == "lobby"

            send(bob, "joinRoom", {"roomCode": code, "playerName": "Bob"})
            assert receive(bob, "roomJoined") == {"roomCode": code, "playerRole": "player"}
            for ws in (alice, bob):
                assert receive(ws, "playerJoined") == {"playerName": "Bob"}
                assert receive(ws, "gameStart")["totalRounds"] == 3

            send(sam, "joinRoom", {"roomCode": code, "playerName": "Sam", "isSpectator": True})
            joined = receive(sam, "roomJoined")
            assert joined["playerRole"] == "spectator"
            assert joined["state"]["phase"] == "waiting"
            assert receive(sam, "gameState") == joined["state"]

            send(alice, "startFirstRound", {"roomCode": code})
            for ws in (alice, bob, sam):
                assert receive(ws, "newRound") == {"currentRound": 1, "totalRounds": 3}

            rounds = [
                ("rock", "scissors", alice_id, [1, 0]),
                ("paper", "paper", "draw", [1, 0]),
                ("scissors", "rock", bob_id, [1, 1]),
            ]
            for number, (alice_move, bob_move, winner, scores) in enumerate(rounds, start=1):
                send(alice, "playerChoice", {"roomCode": code, "choice": alice_move})
                send(bob, "playerChoice", {"roomCode": code, "choice": bob_move})
                for ws in (alice, bob, sam):
                    result = receive(ws, "roundResult")
                    assert result["player1"] == {"name": "Alice", "choice": alice_move}
                    assert result["player2"] == {"name": "Bob", "choice": bob_move}
                    assert result["winner"] == winner
                    assert [s["score"] for s in result["scores"]] == scores
                    assert result["currentRound"] == number

                send(alice, "nextRound", {"roomCode": code})
                if number < len(rounds):
                    for ws in (alice, bob, sam):
                        assert receive(ws, "newRound")["currentRound"] == number + 1

            for ws in (alice, bob, sam):
                game_over = receive(ws, "gameOver")
                assert game_over["winner"] == "draw"
                assert game_over["scores"] == [
                    {"name": "Alice", "score": 1},
                    {"name": "Bob", "score": 1},
                ]

            assert client.get(f"/api/v1/rooms/{code}").json()["phase"] == "finished"

            send(alice, "leaveRoom", {"roomCode": code})
            assert receive(alice, "leftRoom") == {"roomCode": code}
            for ws in (bob, sam):
                left = receive(ws, "playerLeft")
                assert left["playerName"] == "Alice"

            send(bob, "leaveRoom", {"roomCode": code})
            assert receive(bob, "leftRoom") == {"roomCode": code}
            assert receive(sam, "roomClosed") == {"roomCode": code, "reason": "no_players"}

        assert len(registry) == 0
