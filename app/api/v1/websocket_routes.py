"""WebSocket route handlers"""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Query
from typing import Optional
import logging

from app.core.exceptions import UnauthorizedException
from app.core.security import SecurityUtils
from app.core.websocket import manager

router = APIRouter()
logger = logging.getLogger(__name__)

async def get_current_user_ws(websocket: WebSocket, token: Optional[str]) -> Optional[str]:
    """User id from the ?token= query parameter; closes the socket when invalid"""
    if not token:
        await websocket.close(code=1008, reason="Missing token")
        return None
    try:
        return str(SecurityUtils.user_from_token(token)["id"])
    except UnauthorizedException:
        await websocket.close(code=1008, reason="Invalid token")
        return None

@router.websocket("/ws/notifications")
async def notifications_websocket(
    websocket: WebSocket,
    token: Optional[str] = Query(None)
):
    """Stream the caller's notification change events"""
    user_id = await get_current_user_ws(websocket, token)
    if not user_id:
        return

    await manager.connect(websocket, user_id)

    try:
        while True:
            data = await websocket.receive_json()
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")

            if data.get("type") == "ping":
                await websocket.send_json({"type": "pong"})

    except WebSocketDisconnect:
        pass
    except ValueError as e:
        logger.warning(f"Closing notification socket of user {user_id}: malformed message ({e})")
        await websocket.close(code=1003)
    finally:
        manager.disconnect(websocket, user_id)
