"""Session event types - emitted during state transitions for WebSocket broadcasts.

Each event's ``event_type`` is the outbound message type clients receive, so
the router can turn an event into a server message without a lookup table.
"""

from typing import Annotated, Literal

from pydantic import Field

from app.schemas.game import CamelModel, PlayerChoiceEntry, PlayerSnapshot, ScoreEntry


class SessionEvent(CamelModel):
    """Base class for all session events."""

    event_type: str


class PlayerJoined(SessionEvent):
    """A player took one of the two seats."""

    event_type: Literal["playerJoined"] = "playerJoined"
    player_name: str


class GameStarted(SessionEvent):
    """The second player joined and the match is on."""

    event_type: Literal["gameStart"] = "gameStart"
    players: list[PlayerSnapshot]
    current_round: int
    total_rounds: int


class RoundStarted(SessionEvent):
    """A round opened for move submission."""

    event_type: Literal["newRound"] = "newRound"
    current_round: int
    total_rounds: int


class RoundResolved(SessionEvent):
    """Both moves were in and the round was decided."""

    event_type: Literal["roundResult"] = "roundResult"
    player1: PlayerChoiceEntry
    player2: PlayerChoiceEntry
    winner: str = Field(..., description="'draw' or the winning player's connection id")
    scores: list[ScoreEntry]
    current_round: int
    total_rounds: int


class GameOver(SessionEvent):
    """The final round was played and the match ended."""

    event_type: Literal["gameOver"] = "gameOver"
    scores: list[ScoreEntry]
    winner: str = Field(..., description="'draw' or the overall winner's connection id")


class PlayerLeft(SessionEvent):
    """A player left and the session went back to the lobby."""

    event_type: Literal["playerLeft"] = "playerLeft"
    player_name: str
    players: list[PlayerSnapshot]


# Union of all event types for type checking
AnySessionEvent = Annotated[
    PlayerJoined | GameStarted | RoundStarted | RoundResolved | GameOver | PlayerLeft,
    Field(discriminator="event_type"),
]
