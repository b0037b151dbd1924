import json
import logging
import time
from collections import defaultdict

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from starlette.websockets import WebSocketState

from app.config import get_settings
from app.schemas.ws import (
    ErrorPayload,
    MessageType,
    WSClientMessage,
    WSServerMessage,
)
from app.services.room.registry import SessionRegistry, get_session_registry
from app.services.websocket.handlers import (
    HandlerContext,
    deliver_result,
    dispatch,
    handle_disconnect,
)
from app.services.websocket.manager import ConnectionManager, get_connection_manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])


class RateLimiter:
    """Simple sliding-window rate limiter per connection."""

    def __init__(self, max_tokens: int, window: float = 1.0):
        self.max_tokens = max_tokens
        self.window = window
        self._tokens: dict[str, list[float]] = defaultdict(list)

    def is_allowed(self, connection_id: str) -> bool:
        """Check if a message is allowed under rate limiting."""
        now = time.time()
        cutoff = now - self.window

        # Remove expired timestamps
        self._tokens[connection_id] = [t for t in self._tokens[connection_id] if t > cutoff]

        # Check if under limit
        if len(self._tokens[connection_id]) >= self.max_tokens:
            return False

        # Record this message
        self._tokens[connection_id].append(now)
        return True

    def remove(self, connection_id: str) -> None:
        """Remove rate limit tracking for a connection."""
        self._tokens.pop(connection_id, None)


# Global rate limiter instance
_rate_limiter = RateLimiter(max_tokens=get_settings().WS_MAX_MESSAGES_PER_SECOND)


def _error_message(error_code: str, message: str) -> WSServerMessage:
    return WSServerMessage(
        type=MessageType.ERROR,
        payload=ErrorPayload(error_code=error_code, message=message).model_dump(by_alias=True),
    )


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    manager: ConnectionManager = Depends(get_connection_manager),
    registry: SessionRegistry = Depends(get_session_registry),
):
    """WebSocket endpoint for real-time game sessions.

    Clients connect with: ws://host/api/v1/ws

    On connect the server sends a 'connected' message carrying the connection
    id, which is the client's identity in rooms and round results. Frames are
    JSON objects of the form {"type": ..., "payload": {...}}.
    """
    settings = get_settings()

    await websocket.accept()
    connection = await manager.connect(websocket)
    connection_id = connection.connection_id

    try:
        while True:
            # Check if connection is still open
            if websocket.client_state != WebSocketState.CONNECTED:
                logger.debug("WebSocket no longer connected, exiting loop")
                break

            # Receive raw message with size limit check
            try:
                message_data = await websocket.receive()
            except Exception as e:
                logger.debug("Error receiving message: %s", e)
                break

            # Handle disconnect message
            if message_data.get("type") == "websocket.disconnect":
                break

            # Any inbound frame counts as liveness, not just ping
            await manager.touch(connection_id)

            raw_text = message_data.get("text")
            raw_bytes = message_data.get("bytes")

            if raw_text:
                message_size = len(raw_text.encode("utf-8"))
            elif raw_bytes:
                message_size = len(raw_bytes)
            else:
                continue

            if message_size > settings.WS_MAX_MESSAGE_SIZE:
                logger.warning(
                    "Message too large from connection %s: %d bytes (max %d)",
                    connection_id,
                    message_size,
                    settings.WS_MAX_MESSAGE_SIZE,
                )
                await manager.send(
                    connection_id,
                    _error_message(
                        "MESSAGE_TOO_LARGE",
                        f"Message exceeds maximum size of {settings.WS_MAX_MESSAGE_SIZE} bytes",
                    ),
                )
                continue

            if not _rate_limiter.is_allowed(connection_id):
                logger.warning("Rate limit exceeded for connection %s", connection_id)
                await manager.send(
                    connection_id,
                    _error_message("RATE_LIMITED", "Too many messages, please slow down"),
                )
                continue

            # Parse JSON from raw text
            if not raw_text:
                continue

            try:
                data = json.loads(raw_text)
            except json.JSONDecodeError:
                logger.warning("Invalid JSON from connection %s", connection_id)
                await manager.send(
                    connection_id,
                    _error_message("INVALID_JSON", "Invalid JSON format"),
                )
                continue

            # Parse and validate message
            try:
                message = WSClientMessage.model_validate(data)
            except ValidationError as e:
                logger.warning("Invalid message from connection %s: %s", connection_id, e)
                await manager.send(
                    connection_id,
                    _error_message("INVALID_MESSAGE", "Invalid message format"),
                )
                continue

            ctx = HandlerContext(
                connection_id=connection_id,
                message=message,
                manager=manager,
                registry=registry,
            )

            result = await dispatch(ctx)

            if result is None:
                logger.debug(
                    "Unhandled message type %s from connection %s",
                    message.type,
                    connection_id,
                )
                continue

            await deliver_result(manager, connection_id, result)

    except WebSocketDisconnect as e:
        logger.info("WS disconnected: connection %s, code %s", connection_id, e.code)
    except Exception as e:
        logger.error("WS error for connection %s: %s", connection_id, e)
    finally:
        _rate_limiter.remove(connection_id)

        # Leave every room this connection was in before forgetting it
        await handle_disconnect(manager, registry, connection_id)
        await manager.disconnect(connection_id)
