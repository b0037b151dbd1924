"""Game service module.

Provides:
- Outcome resolution (resolver.py)
- Session state machine (session.py)
- Session events for broadcasts (events.py)
"""

from .events import (
    AnySessionEvent,
    GameOver,
    GameStarted,
    PlayerJoined,
    PlayerLeft,
    RoundResolved,
    RoundStarted,
    SessionEvent,
)
from .resolver import Outcome, resolve
from .session import LeaveResult, Participant, PlayerSlots, Session, SessionResult, Spectator

__all__ = [
    # Resolver
    "Outcome",
    "resolve",
    # Session
    "Session",
    "SessionResult",
    "LeaveResult",
    "Participant",
    "PlayerSlots",
    "Spectator",
    # Events
    "SessionEvent",
    "AnySessionEvent",
    "PlayerJoined",
    "GameStarted",
    "RoundStarted",
    "RoundResolved",
    "GameOver",
    "PlayerLeft",
]
