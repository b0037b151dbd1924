"""Shared fixtures for session and handler tests."""

import pytest

from app.services.game.session import Participant, Session

# Fixed connection ids for deterministic testing
ALICE_ID = "00000000-0000-0000-0000-00000000a11c"
BOB_ID = "00000000-0000-0000-0000-000000000b0b"
CAROL_ID = "00000000-0000-0000-0000-0000000ca201"
SPECTATOR_ID = "00000000-0000-0000-0000-0000005bec7a"

ROOM_CODE = "ABC123"


def create_session(total_rounds: int = 3, code: str = ROOM_CODE) -> Session:
    """Helper to create a session with Alice seated, as the registry would."""
    session = Session(code=code, total_rounds=total_rounds)
    session.players.add(Participant(identity=ALICE_ID, display_name="Alice"))
    return session


@pytest.fixture
def lobby_session() -> Session:
    """Session with only the creator seated."""
    return create_session()


@pytest.fixture
def waiting_session() -> Session:
    """Two players seated, game active, no round open yet."""
    session = create_session()
    result = session.join_as_player(BOB_ID, "Bob")
    assert result.success
    return session


@pytest.fixture
def open_round_session(waiting_session: Session) -> Session:
    """First round open and waiting for moves."""
    result = waiting_session.start_first_round()
    assert result.success and not result.ignored
    return waiting_session
