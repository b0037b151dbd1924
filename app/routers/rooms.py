"""REST endpoints for room inspection."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.schemas.game import SessionSnapshot
from app.services.room.registry import SessionRegistry, get_session_registry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rooms", tags=["rooms"])


@router.get(
    "/{room_code}",
    response_model=SessionSnapshot,
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
)
async def get_room(
    room_code: str,
    registry: SessionRegistry = Depends(get_session_registry),
):
    """Return the current snapshot of a room.

    Finished rooms stay readable here until their last player leaves.

    Raises:
        HTTPException 404: If the room code is not live.
    """
    logger.info("GET /rooms/%s", room_code)

    session = await registry.get(room_code)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Room {room_code.upper()} not found",
        )
    return session.snapshot()
