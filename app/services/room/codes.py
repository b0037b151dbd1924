"""Short, human-shareable room codes."""

import secrets
import string

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_room_code(length: int = 6) -> str:
    """Return a random uppercase base-36 code such as ``K3ZQ7A``."""
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(length))
