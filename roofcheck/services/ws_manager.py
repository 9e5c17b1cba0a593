"""WebSocket connection manager for toast notifications and sync updates."""

from __future__ import annotations

import logging

from fastapi import WebSocket

from roofcheck.schemas import WSMessage

logger = logging.getLogger(__name__)

INSPECTIONS_CHANNEL = "inspections"


class ConnectionManager:
    def __init__(self):
        self._connections: dict[str, list[WebSocket]] = {}

    async def connect(self, channel: str, websocket: WebSocket):
        await websocket.accept()
        self._connections.setdefault(channel, []).append(websocket)

    def disconnect(self, channel: str, websocket: WebSocket):
        conns = self._connections.get(channel, [])
        if websocket in conns:
            conns.remove(websocket)

    def connection_count(self, channel: str) -> int:
        return len(self._connections.get(channel, []))

    async def broadcast(self, channel: str, message: WSMessage):
        """Send a message to all clients on a channel, dropping dead sockets."""
        conns = self._connections.get(channel, [])
        text = message.model_dump_json()
        dead = []
        for ws in conns:
            try:
                await ws.send_text(text)
            except Exception:
                dead.append(ws)
        for ws in dead:
            conns.remove(ws)
        if dead:
            logger.info("Dropped %d dead websocket(s) on %s", len(dead), channel)

    async def toast(self, title: str, description: str = "", variant: str = "default",
                    channel: str = INSPECTIONS_CHANNEL):
        """User-facing notification, rendered as a toast by the dashboard."""
        await self.broadcast(channel, WSMessage(
            event="toast", title=title, description=description, variant=variant,
        ))


ws_manager = ConnectionManager()
