from __future__ import annotations

from typing import Any

from fastapi import WebSocket


class WebSocketTransport:
    def __init__(self) -> None:
        self.connections: dict[str, WebSocket] = {}

    def register(self, connection_id: str, websocket: WebSocket) -> None:
        self.connections[connection_id] = websocket

    def unregister(self, connection_id: str) -> None:
        self.connections.pop(connection_id, None)

    async def send(self, connection_id: str, message: dict[str, Any]) -> None:
        websocket = self.connections.get(connection_id)
        if websocket is None:
            return
        await websocket.send_json(message)
