"""Base types and helpers for WebSocket message handlers."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

from pydantic import BaseModel, ValidationError

from app.schemas.ws import (
    ErrorPayload,
    MessageType,
    WSClientMessage,
    WSServerMessage,
)
from app.services.game.events import SessionEvent

if TYPE_CHECKING:
    from app.services.room.registry import SessionRegistry
    from app.services.websocket.manager import ConnectionManager


@dataclass
class HandlerContext:
    """Context passed to each message handler."""

    connection_id: str
    message: WSClientMessage
    manager: "ConnectionManager"
    registry: "SessionRegistry"


@dataclass
class HandlerResult:
    """Result returned by message handlers.

    ``responses`` go to the requester only, in order; ``broadcasts`` then go
    to every member of ``room_code``, the requester included.
    """

    success: bool
    responses: list[WSServerMessage] = field(default_factory=list)
    broadcasts: list[WSServerMessage] = field(default_factory=list)
    room_code: str | None = None


T = TypeVar("T", bound=BaseModel)


def validate_payload(
    payload: dict | None,
    schema: type[T],
    request_id: str | None,
    error_type: MessageType,
) -> tuple[T | None, HandlerResult | None]:
    """Validate payload against a Pydantic schema.

    Args:
        payload: The raw payload dict to validate.
        schema: The Pydantic model class to validate against.
        request_id: The request_id for error responses.
        error_type: The MessageType to use for error responses.

    Returns:
        Tuple of (validated_payload, error_result). One will be None.
    """
    try:
        validated = schema.model_validate(payload or {})
        return validated, None
    except ValidationError as e:
        return None, error_response(
            error_code="VALIDATION_ERROR",
            message=str(e),
            error_type=error_type,
            request_id=request_id,
        )


def error_response(
    error_code: str,
    message: str,
    error_type: MessageType = MessageType.ROOM_ERROR,
    request_id: str | None = None,
) -> HandlerResult:
    """Build an error HandlerResult."""
    return HandlerResult(
        success=False,
        responses=[
            WSServerMessage(
                type=error_type,
                request_id=request_id,
                payload=ErrorPayload(
                    error_code=error_code,
                    message=message,
                ).model_dump(by_alias=True),
            )
        ],
    )


def room_not_found(room_code: str, request_id: str | None = None) -> HandlerResult:
    return error_response(
        error_code="ROOM_NOT_FOUND",
        message=f"Room {room_code} not found",
        request_id=request_id,
    )


def event_to_message(event: SessionEvent) -> WSServerMessage:
    """Convert a session event into the server message that announces it."""
    return WSServerMessage(
        type=MessageType(event.event_type),
        payload=event.model_dump(mode="json", by_alias=True, exclude={"event_type"}),
    )


async def deliver_result(
    manager: "ConnectionManager", connection_id: str, result: HandlerResult
) -> None:
    """Send a handler's replies to the requester, then its broadcasts to the room."""
    for response in result.responses:
        await manager.send(connection_id, response)

    if result.room_code:
        for broadcast in result.broadcasts:
            await manager.broadcast(result.room_code, broadcast)


async def deliver_now(ctx: HandlerContext, result: HandlerResult) -> HandlerResult:
    """Deliver ``result`` immediately and return an empty result in its place.

    Handlers call this while still holding ``session.lock`` so that a state
    change and its broadcast reach clients before any other event for the
    same session is applied.
    """
    await deliver_result(ctx.manager, ctx.connection_id, result)
    return HandlerResult(success=result.success, room_code=result.room_code)
