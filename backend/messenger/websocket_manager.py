import logging
import uuid
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class Connection:
    """A live push-channel client and the rooms it has joined."""

    def __init__(self, websocket: WebSocket):
        self.id = uuid.uuid4().hex[:12]
        self.websocket = websocket
        self.rooms: Set[str] = set()

    def __repr__(self):
        return f"<Connection(id={self.id}, rooms={sorted(self.rooms)})>"


class ConnectionManager:
    def __init__(self):
        # room id -> connections subscribed to it
        self.rooms: Dict[str, Set[Connection]] = {}
        self.active_connections: Set[Connection] = set()

    async def connect(self, websocket: WebSocket) -> Connection:
        await websocket.accept()
        connection = Connection(websocket)
        self.active_connections.add(connection)
        logger.info(f"Client connected: {connection.id}")
        return connection

    def disconnect(self, connection: Connection):
        if connection not in self.active_connections:
            return
        self.active_connections.discard(connection)
        for room_id in connection.rooms:
            members = self.rooms.get(room_id)
            if members is None:
                continue
            members.discard(connection)
            if not members:
                del self.rooms[room_id]
        connection.rooms.clear()
        logger.info(f"Client disconnected: {connection.id}")

    def join(self, connection: Connection, room_id: str):
        self.rooms.setdefault(room_id, set()).add(connection)
        connection.rooms.add(room_id)
        logger.info(f"{connection.id} joined chat {room_id}")

    def members(self, room_id: str) -> Set[Connection]:
        return set(self.rooms.get(room_id, ()))

    async def send(self, connection: Connection, event: str, data: Any = None):
        await connection.websocket.send_json({"event": event, "data": data})

    async def broadcast(self, room_id: str, event: str, data: Any = None,
                        exclude: Optional[Connection] = None):
        """Send an event to every member of a room, optionally skipping one."""
        dropped = []
        for connection in self.members(room_id):
            if connection is exclude:
                continue
            try:
                await self.send(connection, event, data)
            except Exception as e:
                # A failed send means the socket is gone
                logger.warning(f"Failed to send {event} to {connection.id}: {e}")
                dropped.append(connection)

        for connection in dropped:
            self.disconnect(connection)
