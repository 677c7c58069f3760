"""
Subscription ORM model.
A user's standing interest in an organizer's future posts, scoped organizer-wide,
to a title series, or to a single post. Deactivation is a soft delete.
"""
from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Index, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from campus_notify.db.base import Base, utcnow

SCOPE_ORGANIZER = "organizer"
SCOPE_TITLE = "title"
SCOPE_POST = "post"


def build_scope_key(post_id: str | None = None, title: str | None = None) -> str:
    """
    Storage key that makes (user_id, organizer_id, scope_key) unique.
    A post id wins over a title, matching how subscriptions are dispatched.
    """
    if post_id:
        return f"{SCOPE_POST}:{post_id}"
    if title:
        return f"{SCOPE_TITLE}:{title}"
    return SCOPE_ORGANIZER


class Subscription(Base):
    __tablename__ = "subscriptions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    organizer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    post_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    title: Mapped[str | None] = mapped_column(String(200), nullable=True)
    category: Mapped[str | None] = mapped_column(String(50), nullable=True)
    scope_key: Mapped[str] = mapped_column(String(300), nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id", "organizer_id", "scope_key",
            name="uq_subscriptions_user_organizer_scope",
        ),
        Index("ix_subscriptions_user_id", "user_id"),
        Index("ix_subscriptions_organizer_post", "organizer_id", "post_id"),
        Index("ix_subscriptions_title", "title"),
        Index("ix_subscriptions_post_id", "post_id"),
    )

    @property
    def scope(self) -> str:
        if self.post_id:
            return SCOPE_POST
        if self.title:
            return SCOPE_TITLE
        return SCOPE_ORGANIZER

    def __repr__(self) -> str:
        return (
            f"<Subscription id={self.id} user_id={self.user_id} "
            f"organizer_id={self.organizer_id} scope={self.scope} active={self.is_active}>"
        )
