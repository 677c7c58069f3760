"""
Schemas for the event-producer hooks that trigger notification fan-out.
"""
from __future__ import annotations

from pydantic import Field

from campus_notify.schemas.common import CamelModel


class NewPostEvent(CamelModel):
    post_id: str = Field(min_length=1, max_length=64)
    organizer_id: str = Field(min_length=1, max_length=64)
    title: str = Field(min_length=1, max_length=200)
    message: str | None = Field(default=None, max_length=1000)


class LikeEvent(CamelModel):
    post_id: str = Field(min_length=1, max_length=64)


class CommentEvent(CamelModel):
    post_id: str = Field(min_length=1, max_length=64)
    comment: str = Field(min_length=1)


class MessageEvent(CamelModel):
    receiver_id: str = Field(min_length=1, max_length=64)
    content: str | None = None
    message_id: str | None = Field(default=None, max_length=64)


class FanoutSummary(CamelModel):
    recipients: int
    created: int
    failed: int
