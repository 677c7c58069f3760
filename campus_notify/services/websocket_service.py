"""
Registry of live push sockets, keyed by user id.
A user may hold several sockets at once (phone, laptop, a second tab).
"""
from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    def __init__(self) -> None:
        self._sockets: dict[str, set[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, user_id: str) -> None:
        await websocket.accept()
        self._sockets.setdefault(user_id, set()).add(websocket)
        logger.info(
            "Push socket opened: user_id=%s (%d open)", user_id, len(self._sockets[user_id])
        )

    def disconnect(self, websocket: WebSocket, user_id: str) -> None:
        sockets = self._sockets.get(user_id)
        if sockets is None:
            return
        sockets.discard(websocket)
        if not sockets:
            del self._sockets[user_id]
        logger.info("Push socket closed: user_id=%s", user_id)

    def is_connected(self, user_id: str) -> bool:
        return user_id in self._sockets

    async def send_personal_message(self, user_id: str, data: dict[str, Any]) -> int:
        """
        Write one JSON text frame to each of the user's sockets.

        A socket whose send fails is unregistered. Returns how many sockets
        accepted the frame (0 when the user is offline).
        """
        sockets = tuple(self._sockets.get(user_id, ()))
        if not sockets:
            return 0
        frame = json.dumps(data, default=str)
        delivered = 0
        for ws in sockets:
            try:
                await ws.send_text(frame)
            except Exception as exc:
                logger.debug("Unregistering dead socket for user_id=%s: %s", user_id, exc)
                self.disconnect(ws, user_id)
            else:
                delivered += 1
        return delivered

    @property
    def connected_user_count(self) -> int:
        return len(self._sockets)


# Shared by the WebSocket route and WebSocketNotifier
ws_manager = ConnectionManager()
