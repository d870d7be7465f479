"""In-process WebSocket connection manager."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

from fastapi import WebSocket

from idea_pilot.infrastructure.ws.protocol import WsOutbound
from idea_pilot.realtime.session import ChatSession

logger = logging.getLogger(__name__)


@dataclass
class _Connection:
    principal_key: str
    send_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    sessions: dict[str, ChatSession] = field(default_factory=dict)


class ConnectionManager:
    """Tracks open sockets and the chat sessions each one owns."""

    def __init__(self) -> None:
        self._connections: dict[WebSocket, _Connection] = {}

    def __len__(self) -> int:
        return len(self._connections)

    async def connect(self, ws: WebSocket, principal_key: str) -> None:
        await ws.accept()
        self._connections[ws] = _Connection(principal_key=principal_key)
        logger.debug("WS connected: %s (total=%d)", principal_key, len(self._connections))

    async def disconnect(self, ws: WebSocket) -> None:
        conn = self._connections.pop(ws, None)
        if conn is None:
            return
        for session in list(conn.sessions.values()):
            await session.close()
        logger.debug("WS disconnected: %s", conn.principal_key)

    def session(self, ws: WebSocket, scope_key: str) -> ChatSession | None:
        conn = self._connections.get(ws)
        return conn.sessions.get(scope_key) if conn else None

    def add_session(self, ws: WebSocket, session: ChatSession) -> None:
        self._connections[ws].sessions[session.scope.key] = session

    async def remove_session(self, ws: WebSocket, scope_key: str) -> bool:
        conn = self._connections.get(ws)
        session = conn.sessions.pop(scope_key, None) if conn else None
        if session is None:
            return False
        await session.close()
        return True

    async def send(self, ws: WebSocket, event_type: str, data: dict[str, Any]) -> bool:
        """Send one envelope; returns False when the socket is gone."""
        conn = self._connections.get(ws)
        if conn is None:
            return False
        raw = WsOutbound(type=event_type, data=data).model_dump_json()
        try:
            async with conn.send_lock:
                await ws.send_text(raw)
        except Exception:
            logger.debug("WS send to %s failed", conn.principal_key, exc_info=True)
            return False
        return True

    async def close_all(self) -> None:
        for ws in list(self._connections):
            await self.disconnect(ws)
