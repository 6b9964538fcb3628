from fastapi import WebSocket
import json
import asyncio
from typing import Dict, Iterable, Set, Optional
from logging_config import get_logger

logger = get_logger(__name__)


class ConnectionRegistry:
    """Transport-level bookkeeping: live websockets and per-room broadcast groups.

    Sends are fire-and-forget. A send to an unknown or closed connection is
    logged and dropped, never raised to the caller.

    Sends to one connection go out one at a time, in the order they were
    issued; a slow client only holds up its own frames.
    """

    def __init__(self):
        # Format: {connection_id: websocket}
        self.connections: Dict[str, WebSocket] = {}
        # Format: {room_id: {connection_id, ...}}
        self.groups: Dict[str, Set[str]] = {}
        # Format: {connection_id: lock}, serializes frames per connection
        self.send_locks: Dict[str, asyncio.Lock] = {}

    def register(self, connection_id: str, websocket: WebSocket):
        self.connections[connection_id] = websocket
        self.send_locks[connection_id] = asyncio.Lock()
        logger.debug(f"Registered connection {connection_id} (live connections: {len(self.connections)})")

    def unregister(self, connection_id: str):
        self.connections.pop(connection_id, None)
        self.send_locks.pop(connection_id, None)
        for room_id in list(self.groups):
            self.unsubscribe(connection_id, room_id)
        logger.debug(f"Unregistered connection {connection_id} (live connections: {len(self.connections)})")

    def subscribe(self, connection_id: str, room_id: str):
        self.groups.setdefault(room_id, set()).add(connection_id)
        logger.debug(f"Connection {connection_id} subscribed to room group {room_id}")

    def unsubscribe(self, connection_id: str, room_id: str):
        group = self.groups.get(room_id)
        if group is None:
            return
        group.discard(connection_id)
        if not group:
            del self.groups[room_id]

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self.connections

    async def send_to(self, connection_id: str, message: dict):
        websocket = self.connections.get(connection_id)
        send_lock = self.send_locks.get(connection_id)
        if websocket is None or send_lock is None:
            logger.debug(f"Dropping {message.get('type')} for unknown connection {connection_id}")
            return
        try:
            async with send_lock:
                await websocket.send_text(json.dumps(message))
        except Exception as e:
            # Connection might be closing, the disconnect path will clean it up
            logger.warning(f"Error sending {message.get('type')} to connection {connection_id}: {e}")

    async def send_to_many(self, connection_ids: Iterable[str], message: dict):
        # Send to all connections concurrently
        send_tasks = [self.send_to(conn_id, message) for conn_id in connection_ids]
        if send_tasks:
            await asyncio.gather(*send_tasks, return_exceptions=True)

    async def broadcast_to_room(self, room_id: str, message: dict, exclude: Optional[str] = None):
        targets = [conn_id for conn_id in self.groups.get(room_id, ()) if conn_id != exclude]
        if not targets:
            logger.debug(f"No recipients for {message.get('type')} in room {room_id}")
            return
        await self.send_to_many(targets, message)
        logger.debug(f"Broadcasted {message.get('type')} to {len(targets)} connections in room {room_id}")


connection_registry = ConnectionRegistry()
