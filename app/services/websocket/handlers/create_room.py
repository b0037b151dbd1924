"""Handler for createRoom messages."""

import logging

from app.config import get_settings
from app.schemas.ws import CreateRoomPayload, MessageType, RoomCreatedPayload, WSServerMessage

from . import handler
from .base import HandlerContext, HandlerResult, error_response, validate_payload

logger = logging.getLogger(__name__)


@handler(MessageType.CREATE_ROOM)
async def handle_create_room(ctx: HandlerContext) -> HandlerResult:
    """Handle createRoom: register a session with the requester as first player."""
    logger.info(
        "CREATE_ROOM request: connection=%s, payload=%s",
        ctx.connection_id,
        ctx.message.payload,
    )

    payload, error = validate_payload(
        ctx.message.payload,
        CreateRoomPayload,
        ctx.message.request_id,
        MessageType.ROOM_ERROR,
    )
    if error:
        logger.warning("Invalid createRoom payload from connection %s", ctx.connection_id)
        return error

    max_rounds = get_settings().MAX_TOTAL_ROUNDS
    if payload.total_rounds > max_rounds:
        return error_response(
            error_code="VALIDATION_ERROR",
            message=f"totalRounds must be at most {max_rounds}",
            request_id=ctx.message.request_id,
        )

    result = await ctx.registry.create(
        total_rounds=payload.total_rounds,
        creator_name=payload.player_name,
        creator_identity=ctx.connection_id,
    )

    if not result.success or result.code is None:
        logger.warning(
            "CREATE_ROOM failed: error_code=%s, message=%s, connection=%s",
            result.error_code,
            result.error_message,
            ctx.connection_id,
        )
        return error_response(
            error_code=result.error_code or "INTERNAL_ERROR",
            message=result.error_message or "Failed to create room",
            request_id=ctx.message.request_id,
        )

    await ctx.manager.join_group(ctx.connection_id, result.code)

    return HandlerResult(
        success=True,
        responses=[
            WSServerMessage(
                type=MessageType.ROOM_CREATED,
                request_id=ctx.message.request_id,
                payload=RoomCreatedPayload(room_code=result.code).model_dump(
                    mode="json", by_alias=True
                ),
            )
        ],
        room_code=result.code,
    )
