"""
Live push channel.

A client opens /ws/{user_id}?token=<access token> and, once admitted, receives
ReceiveNotification, NotificationRead and AllNotificationsRead frames for that
user. The server pings every WS_HEARTBEAT_SECONDS; clients answer with a pong.
"""
from __future__ import annotations

import asyncio
import contextlib
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState
from jose import JWTError

from campus_notify.core.config import settings
from campus_notify.core.security import user_id_from_token
from campus_notify.services.websocket_service import ws_manager

logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebSocket"])

CLOSE_UNAUTHENTICATED = 4001
CLOSE_FORBIDDEN = 4003


def _rejection(token: str | None, user_id: str) -> tuple[int, str] | None:
    """Close code and reason when the handshake must be refused, else None."""
    if not token:
        return CLOSE_UNAUTHENTICATED, "Missing authentication token"
    try:
        subject = user_id_from_token(token)
    except JWTError:
        return CLOSE_UNAUTHENTICATED, "Invalid or expired token"
    if subject != user_id:
        return CLOSE_FORBIDDEN, "Token user mismatch"
    return None


@router.websocket("/ws/{user_id}")
async def websocket_endpoint(websocket: WebSocket, user_id: str) -> None:
    rejection = _rejection(websocket.query_params.get("token"), user_id)
    if rejection is not None:
        code, reason = rejection
        logger.info("Refused push channel for user_id=%s: %s", user_id, reason)
        await websocket.close(code=code, reason=reason)
        return

    await ws_manager.connect(websocket, user_id)
    pinger = asyncio.create_task(_ping_forever(websocket, settings.WS_HEARTBEAT_SECONDS))
    try:
        await websocket.send_json({"type": "connected", "userId": user_id})
        await _drain_client_frames(websocket, user_id)
    except WebSocketDisconnect:
        logger.info("Push channel closed by client: user_id=%s", user_id)
    except Exception as exc:
        logger.error("Push channel failed for user_id=%s: %s", user_id, exc)
    finally:
        ws_manager.disconnect(websocket, user_id)
        pinger.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await pinger


async def _drain_client_frames(websocket: WebSocket, user_id: str) -> None:
    # Clients only ever send pongs; anything else (binary, malformed JSON) is skipped.
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(message.get("code", 1000))
        text = message.get("text")
        if text is None:
            continue
        try:
            frame = json.loads(text)
        except ValueError:
            logger.debug("Skipping non-JSON frame from user_id=%s", user_id)
            continue
        if isinstance(frame, dict) and frame.get("type") == "pong":
            logger.debug("pong from user_id=%s", user_id)


async def _ping_forever(websocket: WebSocket, interval: float) -> None:
    while True:
        await asyncio.sleep(interval)
        if websocket.client_state != WebSocketState.CONNECTED:
            return
        try:
            await websocket.send_json({"type": "ping"})
        except Exception as exc:
            logger.debug("Ping failed, stopping heartbeat: %s", exc)
            return
