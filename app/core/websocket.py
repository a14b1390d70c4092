"""WebSocket connection manager"""

from typing import Dict, List
from fastapi import WebSocket
from datetime import datetime, timezone
import logging

logger = logging.getLogger(__name__)

class ConnectionManager:
    """Manages WebSocket connections per user"""

    def __init__(self):
        # Active connections: {user_id: [websocket1, websocket2]}
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, user_id: str):
        """Accept new connection"""
        await websocket.accept()

        self.active_connections.setdefault(user_id, []).append(websocket)

        logger.info(f"User {user_id} connected via WebSocket")

        await websocket.send_json({
            "type": "connection",
            "status": "connected",
            "timestamp": datetime.now(timezone.utc).isoformat()
        })

    def disconnect(self, websocket: WebSocket, user_id: str):
        """Remove connection"""
        connections = self.active_connections.get(user_id, [])
        if websocket in connections:
            connections.remove(websocket)
        if not connections:
            self.active_connections.pop(user_id, None)

        logger.info(f"User {user_id} disconnected from WebSocket")

    async def send_personal_message(self, user_id: str, message: dict) -> int:
        """Send message to every socket of a user; returns sockets reached"""
        delivered = 0
        disconnected = []
        for connection in list(self.active_connections.get(user_id, [])):
            try:
                await connection.send_json(message)
                delivered += 1
            except Exception as e:
                logger.debug(f"Dropping dead socket for user {user_id}: {e}")
                disconnected.append(connection)

        # Clean up disconnected sockets
        for conn in disconnected:
            self.disconnect(conn, user_id)

        return delivered

manager = ConnectionManager()
