"""
WebSocket endpoint tests: token checks and the connection handshake.
"""
from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from campus_notify.core.security import create_access_token
from campus_notify.main import app
from campus_notify.services.websocket_service import ws_manager

WS = "/api/v1/ws"


def test_connect_with_matching_token() -> None:
    client = TestClient(app)
    token = create_access_token("alice")
    with client.websocket_connect(f"{WS}/alice?token={token}") as websocket:
        assert websocket.receive_json() == {"type": "connected", "userId": "alice"}


def test_missing_token_is_rejected() -> None:
    client = TestClient(app)
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"{WS}/alice"):
            pass
    assert exc_info.value.code == 4001


def test_token_for_another_user_is_rejected() -> None:
    client = TestClient(app)
    token = create_access_token("bob")
    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect(f"{WS}/alice?token={token}"):
            pass
    assert exc_info.value.code == 4003


def test_garbage_frames_do_not_drop_the_channel() -> None:
    client = TestClient(app)
    token = create_access_token("alice")
    with client.websocket_connect(f"{WS}/alice?token={token}") as websocket:
        websocket.receive_json()
        websocket.send_text("hello")
        websocket.send_bytes(b"\x00\x01")
        # Let the server loop consume both frames before pushing.
        websocket.portal.call(asyncio.sleep, 0.2)

        delivered = websocket.portal.call(
            ws_manager.send_personal_message,
            "alice",
            {"type": "ReceiveNotification", "data": {"title": "Hi"}},
        )

        assert delivered == 1
        assert websocket.receive_json() == {
            "type": "ReceiveNotification",
            "data": {"title": "Hi"},
        }
