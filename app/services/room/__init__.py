from app.services.room.codes import generate_room_code
from app.services.room.registry import CreateSessionResult, SessionRegistry, get_session_registry

__all__ = [
    "CreateSessionResult",
    "SessionRegistry",
    "generate_room_code",
    "get_session_registry",
]
