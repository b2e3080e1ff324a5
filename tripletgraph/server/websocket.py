"""WebSocket connection manager for live graph and layout updates."""

import logging
import uuid

from fastapi import WebSocket

logger = logging.getLogger(__name__)

CONNECTION_ID_LENGTH = 8


class ConnectionManager:
    """Manages WebSocket connections and broadcasts."""

    def __init__(self):
        # Map: connection_id -> WebSocket
        self.active_connections: dict[str, WebSocket] = {}

    async def connect(self, websocket: WebSocket) -> str:
        """Accept and register a WebSocket connection. Returns its id."""
        await websocket.accept()
        connection_id = uuid.uuid4().hex[:CONNECTION_ID_LENGTH]
        self.active_connections[connection_id] = websocket
        logger.info(f"WebSocket connected: {connection_id}")
        return connection_id

    def disconnect(self, connection_id: str):
        """Remove a WebSocket connection."""
        if connection_id in self.active_connections:
            del self.active_connections[connection_id]
            logger.info(f"WebSocket disconnected: {connection_id}")

    async def send_personal(self, connection_id: str, message: dict):
        """Send message to a specific connection."""
        if connection_id in self.active_connections:
            try:
                await self.active_connections[connection_id].send_json(message)
            except Exception as e:
                logger.error(f"Error sending to {connection_id}: {e}")
                self.disconnect(connection_id)

    async def broadcast_all(self, message: dict):
        """Broadcast message to all connections."""
        disconnected = []

        for connection_id, connection in list(self.active_connections.items()):
            try:
                await connection.send_json(message)
            except Exception as e:
                logger.error(f"Error broadcasting to {connection_id}: {e}")
                disconnected.append(connection_id)

        for connection_id in disconnected:
            self.disconnect(connection_id)

        if self.active_connections:
            logger.debug(f"Broadcast to {len(self.active_connections)} connections: {message.get('type')}")

    def count(self) -> int:
        """Return number of active connections."""
        return len(self.active_connections)
