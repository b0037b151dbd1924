"""Handler for leaveRoom messages and transport disconnects."""

import logging
from typing import TYPE_CHECKING

from app.schemas.ws import MessageType, RoomClosedPayload, RoomCodePayload, WSServerMessage
from app.services.game.session import LeaveResult, Session

from . import handler
from .base import (
    HandlerContext,
    HandlerResult,
    event_to_message,
    room_not_found,
    validate_payload,
)

if TYPE_CHECKING:
    from app.services.room.registry import SessionRegistry
    from app.services.websocket.manager import ConnectionManager

logger = logging.getLogger(__name__)


async def remove_from_session(
    manager: "ConnectionManager",
    registry: "SessionRegistry",
    session: Session,
    connection_id: str,
) -> LeaveResult:
    """Take a connection out of a session and notify whoever is left.

    If no player remains the session is destroyed; spectators still in the
    group get roomClosed and are dropped from it. Otherwise a departing player
    is announced with playerLeft. Spectator departures are silent.
    """
    async with session.lock:
        result = session.leave(connection_id)
        await manager.leave_group(connection_id, session.code)

        if result.session_empty:
            await registry.delete(session.code)
            await manager.broadcast(
                session.code,
                WSServerMessage(
                    type=MessageType.ROOM_CLOSED,
                    payload=RoomClosedPayload(room_code=session.code).model_dump(by_alias=True),
                ),
            )
            await manager.drop_group(session.code)
        else:
            for event in result.events:
                await manager.broadcast(session.code, event_to_message(event))

    return result


@handler(MessageType.LEAVE_ROOM)
async def handle_leave_room(ctx: HandlerContext) -> HandlerResult:
    """Handle leaveRoom: reply leftRoom to the requester."""
    payload, error = validate_payload(
        ctx.message.payload,
        RoomCodePayload,
        ctx.message.request_id,
        MessageType.ROOM_ERROR,
    )
    if error:
        return error

    session = await ctx.registry.get(payload.room_code)
    if session is None:
        return room_not_found(payload.room_code, ctx.message.request_id)

    result = await remove_from_session(ctx.manager, ctx.registry, session, ctx.connection_id)

    logger.info(
        "LEAVE_ROOM: room=%s, connection=%s, player=%s, spectator=%s, room_closed=%s",
        session.code,
        ctx.connection_id,
        result.player_left,
        result.spectator_left,
        result.session_empty,
    )

    return HandlerResult(
        success=True,
        responses=[
            WSServerMessage(
                type=MessageType.LEFT_ROOM,
                request_id=ctx.message.request_id,
                payload=RoomCodePayload(room_code=session.code).model_dump(by_alias=True),
            )
        ],
    )


async def handle_disconnect(
    manager: "ConnectionManager",
    registry: "SessionRegistry",
    connection_id: str,
) -> int:
    """Apply leave to every session holding ``connection_id``.

    Never raises: one failing session does not stop cleanup of the others.

    Returns:
        Number of sessions the connection was removed from.
    """
    sessions = await registry.find_sessions_containing(connection_id)
    removed = 0
    for session in sessions:
        try:
            await remove_from_session(manager, registry, session, connection_id)
            removed += 1
        except Exception:
            logger.exception(
                "Failed to clean up connection %s from room %s",
                connection_id,
                session.code,
            )

    if removed:
        logger.info("Connection %s removed from %d room(s) on disconnect", connection_id, removed)
    return removed
