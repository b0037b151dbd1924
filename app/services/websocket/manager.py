"""Broadcast gateway: live sockets and the per-room groups they belong to.

A connection's id is also its identity inside sessions, so it is the value
clients see as a round or game winner.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from fastapi import WebSocket

from app.config import get_settings
from app.schemas.ws import ConnectedPayload, MessageType, WSServerMessage

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Connection:
    """An accepted WebSocket and the room groups it is subscribed to."""

    connection_id: str
    websocket: WebSocket
    connected_at: datetime = field(default_factory=_now)
    last_seen: datetime = field(default_factory=_now)
    rooms: set[str] = field(default_factory=set)


class ConnectionManager:
    """Tracks live sockets and fans messages out to room groups.

    Groups are keyed by room code and hold connection ids. A group disappears
    once its last member leaves or the room is closed.
    """

    def __init__(self, connection_timeout: int | None = None, sweep_interval: int | None = None):
        settings = get_settings()
        self._connection_timeout = connection_timeout or settings.WS_CONNECTION_TIMEOUT
        self._sweep_interval = sweep_interval or settings.WS_HEARTBEAT_INTERVAL

        self._connections: dict[str, Connection] = {}
        self._groups: dict[str, set[str]] = {}
        self._sweeper: asyncio.Task | None = None

    def __len__(self) -> int:
        return len(self._connections)

    # --- Connection lifecycle ---

    async def connect(self, websocket: WebSocket) -> Connection:
        """Register an accepted socket under a fresh id and send ``connected``."""
        connection = Connection(connection_id=str(uuid.uuid4()), websocket=websocket)
        self._connections[connection.connection_id] = connection
        logger.info("Connection %s opened (%d live)", connection.connection_id, len(self))

        await self.send(
            connection.connection_id,
            WSServerMessage(
                type=MessageType.CONNECTED,
                payload=ConnectedPayload(connection_id=connection.connection_id).model_dump(
                    by_alias=True
                ),
            ),
        )
        return connection

    async def disconnect(self, connection_id: str) -> None:
        """Forget a connection and pull it out of every group. No-op if unknown."""
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return

        for room_code in connection.rooms:
            self._discard_member(room_code, connection_id)
        connection.rooms.clear()
        logger.info("Connection %s closed (%d live)", connection_id, len(self))

    async def touch(self, connection_id: str) -> None:
        """Record activity so the sweeper leaves the connection alone."""
        connection = self._connections.get(connection_id)
        if connection is not None:
            connection.last_seen = _now()

    async def close_all(self) -> None:
        """Close every socket with 1001 (going away), used on shutdown."""
        logger.info("Closing %d connections", len(self))
        for connection_id in list(self._connections):
            await self._close(connection_id)

    async def _close(self, connection_id: str) -> None:
        connection = self._connections.get(connection_id)
        if connection is not None:
            try:
                await connection.websocket.close(code=1001)
            except Exception as e:
                logger.debug("Error closing websocket %s: %s", connection_id, e)
        await self.disconnect(connection_id)

    # --- Liveness sweep ---

    async def sweep_stale(self) -> list[str]:
        """Close connections silent for longer than the timeout.

        Closing the socket ends its receive loop, which then runs the usual
        session cleanup for that connection.

        Returns:
            Ids of the connections that were closed.
        """
        now = _now()
        stale = [
            connection_id
            for connection_id, connection in list(self._connections.items())
            if (now - connection.last_seen).total_seconds() > self._connection_timeout
        ]
        for connection_id in stale:
            logger.warning("Connection %s silent for over %ds, closing", connection_id, self._connection_timeout)
            await self._close(connection_id)
        return stale

    async def start_sweeper(self) -> None:
        if self._sweeper is not None:
            logger.warning("Stale-connection sweeper already running")
            return

        async def sweep_forever():
            logger.info("Sweeping stale connections every %ds", self._sweep_interval)
            while True:
                await asyncio.sleep(self._sweep_interval)
                try:
                    await self.sweep_stale()
                except Exception as e:
                    logger.error("Error sweeping stale connections: %s", e)

        self._sweeper = asyncio.create_task(sweep_forever())

    async def stop_sweeper(self) -> None:
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
        logger.info("Stale-connection sweeper stopped")

    # --- Sending ---

    async def send(self, connection_id: str, message: WSServerMessage) -> bool:
        """Send one message to one connection.

        A failed send drops the connection. Returns whether the message went out.
        """
        connection = self._connections.get(connection_id)
        if connection is None:
            logger.debug("Connection %s gone, %s not sent", connection_id, message.type.value)
            return False

        try:
            await connection.websocket.send_json(message.model_dump(mode="json", exclude_none=True))
            return True
        except Exception as e:
            logger.warning("Failed to send to connection %s: %s", connection_id, e)
            await self.disconnect(connection_id)
            return False

    async def broadcast(self, room_code: str, message: WSServerMessage) -> int:
        """Send a message to every member of a room group. Returns the delivery count."""
        sent = 0
        for connection_id in self.group_members(room_code):
            if await self.send(connection_id, message):
                sent += 1
        logger.debug("Broadcast %s to room %s (%d delivered)", message.type.value, room_code, sent)
        return sent

    # --- Room groups ---

    async def join_group(self, connection_id: str, room_code: str) -> None:
        connection = self._connections.get(connection_id)
        if connection is None:
            logger.warning("Connection %s gone, not added to room %s", connection_id, room_code)
            return
        connection.rooms.add(room_code)
        self._groups.setdefault(room_code, set()).add(connection_id)
        logger.debug("Connection %s joined group %s", connection_id, room_code)

    async def leave_group(self, connection_id: str, room_code: str) -> None:
        connection = self._connections.get(connection_id)
        if connection is not None:
            connection.rooms.discard(room_code)
        self._discard_member(room_code, connection_id)

    async def drop_group(self, room_code: str) -> None:
        """Remove a room's group entirely, unsubscribing whoever is still in it."""
        members = self._groups.pop(room_code, set())
        for connection_id in members:
            connection = self._connections.get(connection_id)
            if connection is not None:
                connection.rooms.discard(room_code)
        logger.debug("Group %s dropped (%d members)", room_code, len(members))

    def group_members(self, room_code: str) -> set[str]:
        return set(self._groups.get(room_code, ()))

    def _discard_member(self, room_code: str, connection_id: str) -> None:
        members = self._groups.get(room_code)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self._groups[room_code]


# Process-wide instance, shared by the lifespan and the WebSocket route
_connection_manager: ConnectionManager | None = None


def get_connection_manager() -> ConnectionManager:
    """Get the global ConnectionManager instance."""
    global _connection_manager
    if _connection_manager is None:
        _connection_manager = ConnectionManager()
    return _connection_manager
