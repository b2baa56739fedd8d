"""WebSocket room hub for sanctuary audio rooms.

The hub owns room membership: which sockets are subscribed to which room
key. Everything else talks to it only through ``publish(room_key, message)``.

Thread Safety:
    Designed for a single asyncio event loop. Not thread-safe.

Performance Notes:
    - Publishing uses asyncio.gather() for concurrent delivery
    - Sockets that fail a send are dropped from the room during publish
"""
import asyncio
import logging
from typing import Dict, List, Protocol

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class RoomPublisher(Protocol):
    """Publish capability the relay depends on."""

    async def publish(self, room_key: str, message: dict) -> int:
        """Send *message* to every subscriber of *room_key*.

        Returns:
            Number of subscribers a send was attempted to.
        """
        ...


class RoomHub:
    """Tracks subscribed WebSockets per room key and fans messages out."""

    def __init__(self) -> None:
        # room_key -> list of active WebSocket connections
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, room_key: str) -> None:
        """Accept a WebSocket and subscribe it to *room_key*."""
        await websocket.accept()
        self.active_connections.setdefault(room_key, []).append(websocket)
        logger.info("[Hub] Socket joined %s (%d in room)", room_key, self.get_room_size(room_key))

    def disconnect(self, websocket: WebSocket, room_key: str) -> None:
        connections = self.active_connections.get(room_key)
        if connections and websocket in connections:
            connections.remove(websocket)
        if connections is not None and not connections:
            del self.active_connections[room_key]

    async def publish(self, room_key: str, message: dict) -> int:
        """Broadcast to every socket in the room concurrently.

        Delivery is best-effort: failed sockets are removed, nothing is
        retried and no per-socket acknowledgement is awaited beyond the send.
        """
        connections = list(self.active_connections.get(room_key, []))
        if not connections:
            return 0

        results = await asyncio.gather(
            *[self._safe_send(conn, message) for conn in connections],
            return_exceptions=True,
        )

        failed_connections = [
            conn for conn, ok in zip(connections, results)
            if ok is not True
        ]
        for conn in failed_connections:
            self.disconnect(conn, room_key)
            logger.debug("[Hub] Removed dead connection from %s", room_key)

        return len(connections)

    async def _safe_send(self, connection: WebSocket, message: dict) -> bool:
        try:
            await connection.send_json(message)
            return True
        except Exception as e:
            logger.debug("[Hub] Send failed: %s", e)
            return False

    def get_room_size(self, room_key: str) -> int:
        return len(self.active_connections.get(room_key, []))

    def clear_room(self, room_key: str) -> None:
        self.active_connections.pop(room_key, None)


# Process-wide transport instance; handlers receive it through dependencies.
hub = RoomHub()
