from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model whose wire names are camelCase (``roomCode``, ``totalRounds``)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Moves a player can submit
class Choice(str, Enum):
    ROCK = "rock"
    PAPER = "paper"
    SCISSORS = "scissors"


class PlayerRole(str, Enum):
    PLAYER = "player"
    SPECTATOR = "spectator"


# Session phases derived from the game_active / round_active flags
class SessionPhase(str, Enum):
    LOBBY = "lobby"
    WAITING = "waiting"
    ROUND_OPEN = "round_open"
    FINISHED = "finished"


class PlayerSnapshot(CamelModel):
    id: str
    name: str
    score: int
    has_chosen: bool = False


class SpectatorSnapshot(CamelModel):
    id: str
    name: str


class ScoreEntry(CamelModel):
    name: str
    score: int


class PlayerChoiceEntry(CamelModel):
    name: str
    choice: Choice


# Session state for late joiners, spectators and the REST lookup
class SessionSnapshot(CamelModel):
    """Point-in-time view of a session.

    Pending choices are never exposed, only whether a player has chosen.
    """

    room_code: str
    phase: SessionPhase
    players: list[PlayerSnapshot]
    spectators: list[SpectatorSnapshot] = []
    current_round: int
    total_rounds: int
    game_active: bool
    round_active: bool
