"""
Notification Pydantic schemas.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import Field

from campus_notify.schemas.common import CamelModel


class NotificationRead(CamelModel):
    id: uuid.UUID
    user_id: str
    is_read: bool
    title: str
    message: str | None = None
    type: str | None = None
    category: str | None = None
    reference_id: str | None = None
    from_user_id: str | None = None
    organizer_id: str | None = None
    organizer_name: str | None = None
    organizer_avatar_url: str | None = None
    author_name: str | None = None
    author_avatar_url: str | None = None
    post_image_url: str | None = None
    action_url: str | None = None
    content: str | None = None
    created_at: datetime
    updated_at: datetime


class NotificationPush(CamelModel):
    """Payload of the ReceiveNotification real-time event."""

    id: uuid.UUID
    title: str
    message: str | None = None
    type: str | None = None
    reference_id: str | None = None
    created_at: datetime
    action_url: str | None = None


class SendNotificationRequest(CamelModel):
    user_id: str = Field(min_length=1, max_length=64)
    title: str = Field(min_length=1, max_length=200)
    message: str | None = Field(default=None, max_length=1000)
    type: str | None = Field(default="info", max_length=50)
    reference_id: str | None = Field(default=None, max_length=64)
    organizer_id: str | None = Field(default=None, max_length=64)
    category: str | None = Field(default=None, max_length=50)


class UnreadCount(CamelModel):
    count: int


class MarkAllReadResult(CamelModel):
    count: int
