from app.services.websocket.handlers import (
    HandlerContext,
    HandlerResult,
    deliver_result,
    dispatch,
    handle_disconnect,
    handler,
)
from app.services.websocket.manager import ConnectionManager, get_connection_manager

__all__ = [
    "ConnectionManager",
    "HandlerContext",
    "HandlerResult",
    "deliver_result",
    "dispatch",
    "get_connection_manager",
    "handle_disconnect",
    "handler",
]
