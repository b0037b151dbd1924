from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator

from app.schemas.game import CamelModel, Choice, PlayerRole, SessionSnapshot


class MessageType(str, Enum):
    """WebSocket message types."""

    # Core
    PING = "ping"
    PONG = "pong"
    CONNECTED = "connected"
    ERROR = "error"

    # Room lifecycle (client -> server)
    CREATE_ROOM = "createRoom"
    JOIN_ROOM = "joinRoom"
    LEAVE_ROOM = "leaveRoom"

    # Room lifecycle (server -> client)
    ROOM_CREATED = "roomCreated"
    ROOM_JOINED = "roomJoined"
    ROOM_ERROR = "roomError"
    LEFT_ROOM = "leftRoom"
    ROOM_CLOSED = "roomClosed"
    GAME_STATE = "gameState"
    PLAYER_JOINED = "playerJoined"
    PLAYER_LEFT = "playerLeft"

    # Game (client -> server)
    PLAYER_CHOICE = "playerChoice"
    START_FIRST_ROUND = "startFirstRound"
    NEXT_ROUND = "nextRound"

    # Game (server -> client)
    GAME_START = "gameStart"
    NEW_ROUND = "newRound"
    ROUND_RESULT = "roundResult"
    GAME_OVER = "gameOver"


class WSClientMessage(BaseModel):
    """Message sent from client to server."""

    type: MessageType
    request_id: str | None = None
    payload: dict[str, Any] | None = None


class WSServerMessage(BaseModel):
    """Message sent from server to client."""

    type: MessageType
    request_id: str | None = None
    payload: dict[str, Any] | None = None


# --- Payload schemas ---


class ConnectedPayload(CamelModel):
    """Payload for the 'connected' message.

    ``connection_id`` is the identity used as the round winner designator.
    """

    connection_id: str


class PongPayload(CamelModel):
    """Payload for the 'pong' message."""

    server_time: datetime = Field(default_factory=lambda: datetime.now())


class ErrorPayload(CamelModel):
    """Payload for error messages (ERROR, ROOM_ERROR)."""

    error_code: str
    message: str


class RoomCodePayload(CamelModel):
    """Payload carrying only a room code (startFirstRound, nextRound, leaveRoom)."""

    room_code: str = Field(..., min_length=1, max_length=32)

    @field_validator("room_code")
    @classmethod
    def normalize_room_code(cls, v: str) -> str:
        return v.strip().upper()


class CreateRoomPayload(CamelModel):
    """Payload for the 'createRoom' message from client."""

    player_name: str = Field(..., min_length=1, max_length=32)
    total_rounds: int = Field(..., ge=1)

    @field_validator("player_name")
    @classmethod
    def strip_player_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("playerName cannot be blank")
        return v


class JoinRoomPayload(RoomCodePayload):
    """Payload for the 'joinRoom' message from client."""

    player_name: str = Field(..., min_length=1, max_length=32)
    is_spectator: bool = False

    @field_validator("player_name")
    @classmethod
    def strip_player_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("playerName cannot be blank")
        return v


class PlayerChoicePayload(RoomCodePayload):
    """Payload for the 'playerChoice' message from client."""

    choice: Choice


class RoomCreatedPayload(CamelModel):
    room_code: str
    player_role: PlayerRole = PlayerRole.PLAYER


class RoomJoinedPayload(CamelModel):
    """Join acknowledgment; spectators also get the live session state."""

    room_code: str
    player_role: PlayerRole
    state: SessionSnapshot | None = None


class RoomClosedPayload(CamelModel):
    """Payload sent when the last player leaves a room that still has spectators."""

    room_code: str
    reason: str = "no_players"
