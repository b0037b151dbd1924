"""Per-session state machine.

Phases, derived from the two flags:

    LOBBY       game_active=False, fewer than two players
    WAITING     game_active=True,  round_active=False (between rounds)
    ROUND_OPEN  game_active=True,  round_active=True  (collecting moves)
    FINISHED    game_active=False, current_round == total_rounds + 1

Transitions are synchronous and never await, so a transition is atomic on the
event loop. Callers that await between lookup and mutation hold ``session.lock``.
"""

import asyncio
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

from app.schemas.game import (
    Choice,
    PlayerChoiceEntry,
    PlayerSnapshot,
    ScoreEntry,
    SessionPhase,
    SessionSnapshot,
    SpectatorSnapshot,
)

from .events import (
    AnySessionEvent,
    GameOver,
    GameStarted,
    PlayerJoined,
    PlayerLeft,
    RoundResolved,
    RoundStarted,
)
from .resolver import Outcome, resolve

logger = logging.getLogger(__name__)

DRAW = "draw"


@dataclass
class Participant:
    """A player occupying one of the two competitive slots."""

    identity: str
    display_name: str
    score: int = 0
    pending_choice: Choice | None = None

    def to_snapshot(self) -> PlayerSnapshot:
        return PlayerSnapshot(
            id=self.identity,
            name=self.display_name,
            score=self.score,
            has_chosen=self.pending_choice is not None,
        )

    def to_score(self) -> ScoreEntry:
        return ScoreEntry(name=self.display_name, score=self.score)


@dataclass
class Spectator:
    """An observer; holds no game state."""

    identity: str
    display_name: str


class PlayerSlots:
    """Ordered, fixed-capacity sequence of players.

    When the first player leaves, the second one moves up to ``first``.
    """

    CAPACITY = 2

    def __init__(self) -> None:
        self._players: list[Participant] = []

    def __len__(self) -> int:
        return len(self._players)

    def __iter__(self) -> Iterator[Participant]:
        return iter(self._players)

    @property
    def first(self) -> Participant | None:
        return self._players[0] if self._players else None

    @property
    def second(self) -> Participant | None:
        return self._players[1] if len(self._players) > 1 else None

    @property
    def is_full(self) -> bool:
        return len(self._players) >= self.CAPACITY

    def add(self, participant: Participant) -> None:
        if self.is_full:
            raise ValueError("Both player slots are taken")
        self._players.append(participant)

    def find(self, identity: str) -> Participant | None:
        for participant in self._players:
            if participant.identity == identity:
                return participant
        return None

    def remove(self, identity: str) -> Participant | None:
        participant = self.find(identity)
        if participant is not None:
            self._players.remove(participant)
        return participant


@dataclass
class SessionResult:
    """Result of a session transition.

    ``ignored`` marks a request dropped for being out of phase; it is still
    a success, so nothing is reported back to the client.
    """

    success: bool = True
    events: list[AnySessionEvent] = field(default_factory=list)
    ignored: bool = False
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def ok(cls, events: list[AnySessionEvent] | None = None) -> "SessionResult":
        return cls(success=True, events=events or [])

    @classmethod
    def skip(cls) -> "SessionResult":
        return cls(success=True, ignored=True)

    @classmethod
    def failure(cls, code: str, message: str) -> "SessionResult":
        return cls(success=False, error_code=code, error_message=message)


@dataclass
class LeaveResult:
    """Result of removing an identity from a session."""

    player_left: bool = False
    spectator_left: bool = False
    session_empty: bool = False
    events: list[AnySessionEvent] = field(default_factory=list)


@dataclass(eq=False)
class Session:
    """One game instance: up to two players, any number of spectators."""

    code: str
    total_rounds: int
    players: PlayerSlots = field(default_factory=PlayerSlots)
    spectators: dict[str, Spectator] = field(default_factory=dict)
    current_round: int = 1
    game_active: bool = False
    round_active: bool = False
    # Set once the registry has dropped the session
    closed: bool = False
    lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def phase(self) -> SessionPhase:
        if self.game_active:
            return SessionPhase.ROUND_OPEN if self.round_active else SessionPhase.WAITING
        if self.current_round > self.total_rounds:
            return SessionPhase.FINISHED
        return SessionPhase.LOBBY

    def contains(self, identity: str) -> bool:
        return self.players.find(identity) is not None or identity in self.spectators

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            room_code=self.code,
            phase=self.phase,
            players=[p.to_snapshot() for p in self.players],
            spectators=[
                SpectatorSnapshot(id=s.identity, name=s.display_name)
                for s in self.spectators.values()
            ],
            current_round=self.current_round,
            total_rounds=self.total_rounds,
            game_active=self.game_active,
            round_active=self.round_active,
        )

    def _scores(self) -> list[ScoreEntry]:
        return [p.to_score() for p in self.players]

    def _clear_choices(self) -> None:
        for participant in self.players:
            participant.pending_choice = None

    # --- Membership ---

    def join_as_player(self, identity: str, name: str) -> SessionResult:
        """Seat a player; the second seat taken starts the game."""
        if self.closed:
            return SessionResult.failure("ROOM_NOT_FOUND", "Room not found")
        if self.players.find(identity) is not None:
            return SessionResult.failure("ALREADY_IN_ROOM", "You are already playing in this room")
        if self.players.is_full:
            return SessionResult.failure("ROOM_FULL", "Room is full")

        self.players.add(Participant(identity=identity, display_name=name))
        # A connection holds one role per session
        self.spectators.pop(identity, None)
        events: list[AnySessionEvent] = [PlayerJoined(player_name=name)]
        logger.info(
            "Player %s (%s) joined room %s (%d/%d)",
            name,
            identity,
            self.code,
            len(self.players),
            PlayerSlots.CAPACITY,
        )

        if self.players.is_full:
            self.game_active = True
            self.round_active = False
            self._clear_choices()
            events.append(
                GameStarted(
                    players=[p.to_snapshot() for p in self.players],
                    current_round=self.current_round,
                    total_rounds=self.total_rounds,
                )
            )
            logger.info("Game started in room %s: %d rounds", self.code, self.total_rounds)

        return SessionResult.ok(events)

    def join_as_spectator(self, identity: str, name: str) -> SessionResult:
        """Add an observer. Never limited by capacity."""
        if self.closed:
            return SessionResult.failure("ROOM_NOT_FOUND", "Room not found")
        self.spectators[identity] = Spectator(identity=identity, display_name=name)
        logger.info("Spectator %s (%s) joined room %s", name, identity, self.code)
        return SessionResult.ok()

    def leave(self, identity: str) -> LeaveResult:
        """Remove ``identity`` from whichever role(s) it holds.

        A remaining player drops back to the lobby with a fresh scoreboard.
        """
        result = LeaveResult()

        participant = self.players.remove(identity)
        if participant is not None:
            result.player_left = True
            if len(self.players) == 0:
                result.session_empty = True
                logger.info("Last player %s left room %s", participant.display_name, self.code)
            else:
                self._reset_to_lobby()
                result.events.append(
                    PlayerLeft(
                        player_name=participant.display_name,
                        players=[p.to_snapshot() for p in self.players],
                    )
                )
                logger.info(
                    "Player %s left room %s, back to lobby",
                    participant.display_name,
                    self.code,
                )

        if self.spectators.pop(identity, None) is not None:
            result.spectator_left = True
            logger.info("Spectator %s left room %s", identity, self.code)

        return result

    def _reset_to_lobby(self) -> None:
        self.game_active = False
        self.round_active = False
        self.current_round = 1
        for participant in self.players:
            participant.score = 0
            participant.pending_choice = None

    # --- Rounds ---

    def submit_choice(self, identity: str, choice: Choice) -> SessionResult:
        """Record a move; the second move in resolves the round."""
        if not self.game_active or not self.round_active:
            logger.debug("Choice from %s ignored in room %s: no open round", identity, self.code)
            return SessionResult.skip()

        participant = self.players.find(identity)
        if participant is None:
            logger.debug("Choice from %s ignored in room %s: not a player", identity, self.code)
            return SessionResult.skip()

        participant.pending_choice = choice
        logger.debug("Player %s chose in room %s", participant.display_name, self.code)

        if len(self.players) == PlayerSlots.CAPACITY and all(
            p.pending_choice is not None for p in self.players
        ):
            return SessionResult.ok([self.resolve_round()])
        return SessionResult.ok()

    def resolve_round(self) -> RoundResolved:
        """Score the open round and close it. Does not advance ``current_round``."""
        first, second = self.players.first, self.players.second
        if first is None or second is None or first.pending_choice is None or second.pending_choice is None:
            raise ValueError("Both players must have chosen before a round can be resolved")

        outcome = resolve(first.pending_choice, second.pending_choice)
        if outcome == Outcome.FIRST_WINS:
            first.score += 1
            winner = first.identity
        elif outcome == Outcome.SECOND_WINS:
            second.score += 1
            winner = second.identity
        else:
            winner = DRAW

        event = RoundResolved(
            player1=PlayerChoiceEntry(name=first.display_name, choice=first.pending_choice),
            player2=PlayerChoiceEntry(name=second.display_name, choice=second.pending_choice),
            winner=winner,
            scores=self._scores(),
            current_round=self.current_round,
            total_rounds=self.total_rounds,
        )

        self._clear_choices()
        self.round_active = False

        logger.info(
            "Round %d/%d resolved in room %s: %s vs %s -> %s",
            self.current_round,
            self.total_rounds,
            self.code,
            event.player1.choice.value,
            event.player2.choice.value,
            outcome.value,
        )
        return event

    def start_first_round(self) -> SessionResult:
        """Open the current round for moves."""
        if not self.game_active or self.round_active:
            logger.debug("startFirstRound ignored in room %s (phase=%s)", self.code, self.phase.value)
            return SessionResult.skip()
        return SessionResult.ok([self._open_round()])

    def advance_round(self) -> SessionResult:
        """Move past the finished round: open the next one, or end the game."""
        if not self.game_active or self.round_active:
            logger.debug("nextRound ignored in room %s (phase=%s)", self.code, self.phase.value)
            return SessionResult.skip()

        self.current_round += 1
        if self.current_round > self.total_rounds:
            self.game_active = False
            self.round_active = False
            event = GameOver(scores=self._scores(), winner=self._overall_winner())
            logger.info("Game over in room %s: winner=%s", self.code, event.winner)
            return SessionResult.ok([event])

        return SessionResult.ok([self._open_round()])

    def _open_round(self) -> RoundStarted:
        self._clear_choices()
        self.round_active = True
        logger.info("Round %d/%d opened in room %s", self.current_round, self.total_rounds, self.code)
        return RoundStarted(current_round=self.current_round, total_rounds=self.total_rounds)

    def _overall_winner(self) -> str:
        first, second = self.players.first, self.players.second
        if first is None or second is None or first.score == second.score:
            return DRAW
        return first.identity if first.score > second.score else second.identity
