"""Session registry: the process-wide map from room code to Session."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from app.config import get_settings
from app.services.game.session import Participant, Session

from .codes import generate_room_code

logger = logging.getLogger(__name__)


def normalize_code(code: str) -> str:
    """Room codes are matched case-insensitively and stored uppercase."""
    return code.strip().upper()


@dataclass
class CreateSessionResult:
    """Result of create operation."""

    success: bool
    code: str | None = None
    session: Session | None = None
    error_code: str | None = None
    error_message: str | None = None


class SessionRegistry:
    """Owns every live Session, keyed by room code.

    Entries live until explicitly deleted; there is no eviction. Insert,
    delete and full scans are serialized on an internal lock.
    """

    def __init__(
        self,
        code_length: int | None = None,
        max_code_attempts: int | None = None,
        code_generator: Callable[[int], str] = generate_room_code,
    ):
        settings = get_settings()
        self._code_length = code_length or settings.ROOM_CODE_LENGTH
        self._max_code_attempts = max_code_attempts or settings.ROOM_CODE_MAX_ATTEMPTS
        self._generate_code = code_generator

        self._sessions: dict[str, Session] = {}
        self._lock = asyncio.Lock()

    async def create(
        self,
        total_rounds: int,
        creator_name: str,
        creator_identity: str,
    ) -> CreateSessionResult:
        """Create a session with the creator seated as the first player.

        Args:
            total_rounds: Number of rounds in the match.
            creator_name: Display name of the creating player.
            creator_identity: Connection id of the creating player.

        Returns:
            CreateSessionResult with the new code and session, or a retry-able
            ROOM_CODES_EXHAUSTED failure when no free code was found.
        """
        async with self._lock:
            for attempt in range(1, self._max_code_attempts + 1):
                code = self._generate_code(self._code_length)
                if code not in self._sessions:
                    break
                logger.debug("Room code collision on %s (attempt %d)", code, attempt)
            else:
                logger.error(
                    "No free room code after %d attempts (%d live rooms)",
                    self._max_code_attempts,
                    len(self._sessions),
                )
                return CreateSessionResult(
                    success=False,
                    error_code="ROOM_CODES_EXHAUSTED",
                    error_message="Could not allocate a room code, please try again",
                )

            session = Session(code=code, total_rounds=total_rounds)
            session.players.add(Participant(identity=creator_identity, display_name=creator_name))
            self._sessions[code] = session

        logger.info(
            "Room %s created by %s (%s), total_rounds=%d",
            code,
            creator_name,
            creator_identity,
            total_rounds,
        )
        return CreateSessionResult(success=True, code=code, session=session)

    async def get(self, code: str) -> Session | None:
        """Look up a session. ``None`` means the room does not exist."""
        return self._sessions.get(normalize_code(code))

    async def delete(self, code: str) -> None:
        """Drop a session and mark it closed. No-op if absent."""
        code = normalize_code(code)
        async with self._lock:
            session = self._sessions.pop(code, None)
        if session is None:
            return
        session.closed = True
        logger.info("Room %s destroyed", code)

    async def find_sessions_containing(self, identity: str) -> list[Session]:
        """Every session where ``identity`` is a player or a spectator.

        Scans the whole registry; membership in a single room is not assumed.
        """
        async with self._lock:
            return [s for s in self._sessions.values() if s.contains(identity)]

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and normalize_code(code) in self._sessions


# Singleton instance
_session_registry: SessionRegistry | None = None


def get_session_registry() -> SessionRegistry:
    """Get the singleton SessionRegistry instance."""
    global _session_registry
    if _session_registry is None:
        _session_registry = SessionRegistry()
    return _session_registry
