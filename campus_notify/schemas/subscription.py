"""
Subscription Pydantic schemas.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import Field

from campus_notify.schemas.common import CamelModel


class SubscribeRequest(CamelModel):
    organizer_id: str = Field(min_length=1, max_length=64)
    post_id: str | None = Field(default=None, max_length=64)
    title: str | None = Field(default=None, max_length=200)
    category: str | None = Field(default=None, max_length=50)


class UnsubscribeTitleRequest(CamelModel):
    organizer_id: str = Field(min_length=1, max_length=64)
    title: str = Field(min_length=1, max_length=200)


class SubscriptionRead(CamelModel):
    id: uuid.UUID
    user_id: str
    organizer_id: str
    post_id: str | None = None
    title: str | None = None
    category: str | None = None
    scope: str
    is_active: bool
    created_at: datetime
    updated_at: datetime | None = None


class TitleConfigured(CamelModel):
    is_configured: bool


class UnsubscribeAllResult(CamelModel):
    count: int
