from fastapi import WebSocketDisconnect

from app.api.v1 import websocket_routes
from app.core.security import SecurityUtils
from app.core.websocket import ConnectionManager

class ScriptedSocket:
    """Replays queued client messages; an exception in the script is raised instead"""

    def __init__(self, *incoming):
        self.incoming = list(incoming)
        self.sent = []
        self.closed_with = None

    async def accept(self):
        pass

    async def send_json(self, message):
        self.sent.append(message)

    async def receive_json(self):
        if not self.incoming:
            raise WebSocketDisconnect(code=1000)
        message = self.incoming.pop(0)
        if isinstance(message, Exception):
            raise message
        return message

    async def close(self, code=1000, reason=None):
        self.closed_with = code

def _token(user_id="user-1"):
    return SecurityUtils.create_access_token({"sub": user_id, "role": "CUSTOMER"})

async def test_ping_gets_pong_and_disconnect_unregisters(monkeypatch):
    manager = ConnectionManager()
    monkeypatch.setattr(websocket_routes, "manager", manager)
    socket = ScriptedSocket({"type": "ping"})

    await websocket_routes.notifications_websocket(socket, token=_token())

    assert {"type": "pong"} in socket.sent
    assert manager.active_connections == {}

async def test_non_object_message_closes_and_unregisters(monkeypatch):
    manager = ConnectionManager()
    monkeypatch.setattr(websocket_routes, "manager", manager)
    socket = ScriptedSocket(["not", "an", "object"], {"type": "ping"})

    await websocket_routes.notifications_websocket(socket, token=_token())

    assert socket.closed_with == 1003
    assert {"type": "pong"} not in socket.sent
    assert manager.active_connections == {}

async def test_undecodable_message_closes_and_unregisters(monkeypatch):
    manager = ConnectionManager()
    monkeypatch.setattr(websocket_routes, "manager", manager)
    socket = ScriptedSocket(ValueError("Expecting value"))

    await websocket_routes.notifications_websocket(socket, token=_token())

    assert socket.closed_with == 1003
    assert manager.active_connections == {}

async def test_missing_token_is_rejected_before_connecting(monkeypatch):
    manager = ConnectionManager()
    monkeypatch.setattr(websocket_routes, "manager", manager)
    socket = ScriptedSocket()

    await websocket_routes.notifications_websocket(socket, token=None)

    assert socket.closed_with == 1008
    assert socket.sent == []
