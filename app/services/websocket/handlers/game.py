"""Handlers for in-game messages: playerChoice, startFirstRound, nextRound.

Out-of-phase requests are dropped without a reply so that stale or
duplicate client messages (both clients pressing "next round") are harmless.
Broadcasts are sent before the session lock is released.
"""

import logging

from app.schemas.ws import MessageType, PlayerChoicePayload, RoomCodePayload
from app.services.game.session import Session, SessionResult

from . import handler
from .base import (
    HandlerContext,
    HandlerResult,
    deliver_now,
    event_to_message,
    room_not_found,
    validate_payload,
)

logger = logging.getLogger(__name__)


def _to_handler_result(session: Session, result: SessionResult) -> HandlerResult:
    return HandlerResult(
        success=result.success,
        broadcasts=[event_to_message(event) for event in result.events],
        room_code=session.code,
    )


@handler(MessageType.PLAYER_CHOICE)
async def handle_player_choice(ctx: HandlerContext) -> HandlerResult:
    """Record a move; broadcast roundResult once both moves are in."""
    payload, error = validate_payload(
        ctx.message.payload,
        PlayerChoicePayload,
        ctx.message.request_id,
        MessageType.ROOM_ERROR,
    )
    if error:
        logger.warning("Invalid playerChoice payload from connection %s", ctx.connection_id)
        return error

    session = await ctx.registry.get(payload.room_code)
    if session is None:
        return room_not_found(payload.room_code, ctx.message.request_id)

    async with session.lock:
        result = session.submit_choice(ctx.connection_id, payload.choice)
        if result.ignored:
            logger.debug(
                "PLAYER_CHOICE dropped: room=%s, connection=%s, phase=%s",
                session.code,
                ctx.connection_id,
                session.phase.value,
            )
        return await deliver_now(ctx, _to_handler_result(session, result))


@handler(MessageType.START_FIRST_ROUND)
async def handle_start_first_round(ctx: HandlerContext) -> HandlerResult:
    """Open the first round; broadcast newRound."""
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

    async with session.lock:
        result = session.start_first_round()
        logger.info(
            "START_FIRST_ROUND: room=%s, connection=%s, ignored=%s",
            session.code,
            ctx.connection_id,
            result.ignored,
        )
        return await deliver_now(ctx, _to_handler_result(session, result))


@handler(MessageType.NEXT_ROUND)
async def handle_next_round(ctx: HandlerContext) -> HandlerResult:
    """Advance the round; broadcast newRound, or gameOver after the last one."""
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

    async with session.lock:
        result = session.advance_round()
        logger.info(
            "NEXT_ROUND: room=%s, connection=%s, ignored=%s",
            session.code,
            ctx.connection_id,
            result.ignored,
        )
        return await deliver_now(ctx, _to_handler_result(session, result))
