"""Handler for PING messages."""

import logging

from app.schemas.ws import MessageType, PongPayload, WSServerMessage

from . import handler
from .base import HandlerContext, HandlerResult

logger = logging.getLogger(__name__)


@handler(MessageType.PING)
async def handle_ping(ctx: HandlerContext) -> HandlerResult:
    """Handle PING by marking the connection active and replying PONG."""
    await ctx.manager.touch(ctx.connection_id)

    logger.debug("Ping/pong for connection %s", ctx.connection_id)

    return HandlerResult(
        success=True,
        responses=[
            WSServerMessage(
                type=MessageType.PONG,
                request_id=ctx.message.request_id,
                payload=PongPayload().model_dump(mode="json", by_alias=True),
            )
        ],
    )
