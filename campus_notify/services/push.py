"""
Real-time push gateway.

Services talk to a Notifier; the default one writes frames to the user's live
WebSocket connections. Pushing is a convenience on top of persisted state, so
push_event never lets a delivery problem reach the caller.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from campus_notify.core.config import settings
from campus_notify.services.websocket_service import ConnectionManager, ws_manager

logger = logging.getLogger(__name__)

EVENT_RECEIVE_NOTIFICATION = "ReceiveNotification"
EVENT_NOTIFICATION_READ = "NotificationRead"
EVENT_ALL_NOTIFICATIONS_READ = "AllNotificationsRead"


class Notifier(Protocol):
    async def notify_user(self, user_id: str, event: str, payload: dict[str, Any]) -> None:
        ...


class WebSocketNotifier:
    """Delivers {"type": event, "data": payload} to every live socket of the user."""

    def __init__(self, manager: ConnectionManager | None = None) -> None:
        self.manager = manager or ws_manager

    async def notify_user(self, user_id: str, event: str, payload: dict[str, Any]) -> None:
        if not self.manager.is_connected(user_id):
            logger.debug("No live connection for user_id=%s, skipping %s", user_id, event)
            return
        delivered = await self.manager.send_personal_message(
            user_id, {"type": event, "data": payload}
        )
        logger.debug("Pushed %s to user_id=%s on %d socket(s)", event, user_id, delivered)


async def push_event(
    notifier: Notifier,
    user_id: str,
    event: str,
    payload: dict[str, Any] | None = None,
    *,
    timeout: float | None = None,
) -> bool:
    """Best-effort push. Returns False (and logs) on any failure or timeout."""
    limit = settings.PUSH_TIMEOUT_SECONDS if timeout is None else timeout
    try:
        await asyncio.wait_for(
            notifier.notify_user(user_id, event, payload or {}), timeout=limit
        )
    except asyncio.TimeoutError:
        logger.warning("Push of %s to user_id=%s timed out after %ss", event, user_id, limit)
        return False
    except Exception as exc:
        logger.warning("Push of %s to user_id=%s failed: %s", event, user_id, exc)
        return False
    return True


websocket_notifier = WebSocketNotifier()
