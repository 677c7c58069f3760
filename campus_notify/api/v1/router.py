"""
Aggregates all v1 API routers into a single APIRouter.
"""
from __future__ import annotations

from fastapi import APIRouter

from campus_notify.api.v1 import events, notifications, websocket

api_router = APIRouter()

api_router.include_router(notifications.router)
api_router.include_router(events.router)
api_router.include_router(websocket.router)
