"""Handler for joinRoom messages."""

import logging

from app.schemas.game import PlayerRole
from app.schemas.ws import JoinRoomPayload, MessageType, RoomJoinedPayload, WSServerMessage

from . import handler
from .base import (
    HandlerContext,
    HandlerResult,
    deliver_now,
    error_response,
    event_to_message,
    room_not_found,
    validate_payload,
)

logger = logging.getLogger(__name__)


@handler(MessageType.JOIN_ROOM)
async def handle_join_room(ctx: HandlerContext) -> HandlerResult:
    """Handle joinRoom as a player or a spectator.

    Players: reply roomJoined, broadcast playerJoined and, on the second
    seat, gameStart. Spectators: reply roomJoined carrying the live state,
    followed by a gameState message with the same snapshot.
    """
    logger.info(
        "JOIN_ROOM request: connection=%s, payload=%s",
        ctx.connection_id,
        ctx.message.payload,
    )

    payload, error = validate_payload(
        ctx.message.payload,
        JoinRoomPayload,
        ctx.message.request_id,
        MessageType.ROOM_ERROR,
    )
    if error:
        logger.warning("Invalid joinRoom payload from connection %s", ctx.connection_id)
        return error

    session = await ctx.registry.get(payload.room_code)
    if session is None:
        logger.warning(
            "JOIN_ROOM_ERROR: room %s not found, connection=%s",
            payload.room_code,
            ctx.connection_id,
        )
        return room_not_found(payload.room_code, ctx.message.request_id)

    async with session.lock:
        if payload.is_spectator:
            result = session.join_as_spectator(ctx.connection_id, payload.player_name)
            role = PlayerRole.SPECTATOR
        else:
            result = session.join_as_player(ctx.connection_id, payload.player_name)
            role = PlayerRole.PLAYER

        if not result.success:
            logger.warning(
                "JOIN_ROOM_ERROR: error_code=%s, room=%s, connection=%s",
                result.error_code,
                session.code,
                ctx.connection_id,
            )
            return error_response(
                error_code=result.error_code or "INTERNAL_ERROR",
                message=result.error_message or "Failed to join room",
                request_id=ctx.message.request_id,
            )

        await ctx.manager.join_group(ctx.connection_id, session.code)

        if role == PlayerRole.SPECTATOR:
            snapshot = session.snapshot()
            state = snapshot.model_dump(mode="json", by_alias=True)
            spectator_result = HandlerResult(
                success=True,
                responses=[
                    WSServerMessage(
                        type=MessageType.ROOM_JOINED,
                        request_id=ctx.message.request_id,
                        payload=RoomJoinedPayload(
                            room_code=session.code,
                            player_role=role,
                            state=snapshot,
                        ).model_dump(mode="json", by_alias=True),
                    ),
                    WSServerMessage(type=MessageType.GAME_STATE, payload=state),
                ],
            )
            return await deliver_now(ctx, spectator_result)

        player_result = HandlerResult(
            success=True,
            responses=[
                WSServerMessage(
                    type=MessageType.ROOM_JOINED,
                    request_id=ctx.message.request_id,
                    payload=RoomJoinedPayload(
                        room_code=session.code,
                        player_role=role,
                    ).model_dump(mode="json", by_alias=True, exclude_none=True),
                )
            ],
            broadcasts=[event_to_message(event) for event in result.events],
            room_code=session.code,
        )
        return await deliver_now(ctx, player_result)
