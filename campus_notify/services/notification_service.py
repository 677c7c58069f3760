"""
Notification fan-out service.

Turns post/like/comment/message events into per-recipient notification rows,
enriches them with display metadata, persists them, and pushes a live event
to connected clients. Persisted state is authoritative; enrichment and push
are best-effort and never abort a write.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from campus_notify.core.config import settings
from campus_notify.core.exceptions import NotFoundException, require
from campus_notify.crud.base import parse_uuid
from campus_notify.crud.notification import crud_notification
from campus_notify.crud.subscription import crud_subscription
from campus_notify.db.base import utcnow
from campus_notify.models.notification import Notification
from campus_notify.schemas.notification import NotificationPush
from campus_notify.services.enrichment import MetadataEnricher, metadata_enricher
from campus_notify.services.matching import merge_recipients, strategies_for_new_post
from campus_notify.services.push import (
    EVENT_ALL_NOTIFICATIONS_READ,
    EVENT_NOTIFICATION_READ,
    EVENT_RECEIVE_NOTIFICATION,
    Notifier,
    push_event,
)

logger = logging.getLogger(__name__)

DEFAULT_TYPE = "info"


@dataclass
class FanoutResult:
    post_id: str
    recipients: list[str] = field(default_factory=list)
    created: list[Notification] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)


def push_payload(notification: Notification) -> dict[str, Any]:
    return NotificationPush.model_validate(notification).model_dump(by_alias=True, mode="json")


class NotificationService:

    def __init__(
        self,
        notifier: Notifier,
        *,
        enricher: MetadataEnricher | None = None,
    ) -> None:
        self.notifier = notifier
        self.enricher = enricher or metadata_enricher

    # ── Notification store ────────────────────────────────────────────────────

    async def get_by_user(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        limit: int = 0,
        unread_only: bool = False,
    ) -> list[Notification]:
        """Newest first. limit=0 means no limit."""
        user_id = require(user_id, "user_id")
        return await crud_notification.list_by_user(
            db, user_id=user_id, limit=max(limit, 0), unread_only=unread_only
        )

    async def list_enriched(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        limit: int = 0,
        unread_only: bool = False,
    ) -> list[Notification]:
        """
        get_by_user plus read-time enrichment of rows created before the
        enrichment fields existed. Newly found fields are persisted.
        """
        notifications = await self.get_by_user(
            db, user_id=user_id, limit=limit, unread_only=unread_only
        )
        enriched = 0
        for notification in notifications:
            if not self.enricher.needs_enrichment(notification):
                continue
            await self.enricher.enrich(db, notification)
            enriched += 1
        if enriched:
            await db.flush()
            logger.debug("Read-time enrichment touched %d notification(s) for user %s", enriched, user_id)
        return notifications

    async def get_by_id(
        self, db: AsyncSession, notification_id: str | uuid.UUID
    ) -> Notification | None:
        if isinstance(notification_id, str):
            require(notification_id, "notification_id")
        parsed = parse_uuid(notification_id)
        if parsed is None:
            logger.debug("Notification id %r is not a valid id", notification_id)
            return None
        return await crud_notification.get(db, parsed)

    async def count_unread(self, db: AsyncSession, *, user_id: str) -> int:
        user_id = require(user_id, "user_id")
        return await crud_notification.count_unread(db, user_id=user_id)

    async def mark_as_read(
        self, db: AsyncSession, notification_id: str | uuid.UUID
    ) -> Notification:
        """Idempotent. Raises NotFoundException when the notification does not exist."""
        if isinstance(notification_id, str):
            require(notification_id, "notification_id")
        parsed = parse_uuid(notification_id)
        notification = (
            await crud_notification.mark_as_read(db, notification_id=parsed)
            if parsed is not None
            else None
        )
        if notification is None:
            logger.warning("Notification with ID %s not found", notification_id)
            raise NotFoundException("Notification", str(notification_id))

        logger.debug("Marked notification %s as read", notification.id)
        await push_event(
            self.notifier,
            notification.user_id,
            EVENT_NOTIFICATION_READ,
            {"id": str(notification.id)},
        )
        return notification

    async def mark_all_as_read(self, db: AsyncSession, *, user_id: str) -> int:
        user_id = require(user_id, "user_id")
        count = await crud_notification.mark_all_read(db, user_id=user_id)
        logger.info("Marked %d notifications as read for user %s", count, user_id)
        await push_event(self.notifier, user_id, EVENT_ALL_NOTIFICATIONS_READ, {"count": count})
        return count

    # ── Creation ──────────────────────────────────────────────────────────────

    async def _build(self, db: AsyncSession, fields: dict[str, Any]) -> Notification:
        notification = Notification(**fields)
        notification.type = notification.type or DEFAULT_TYPE
        notification.is_read = False
        await self.enricher.enrich(db, notification)
        return notification

    async def _persist(self, db: AsyncSession, notification: Notification) -> Notification:
        now = utcnow()
        notification.created_at = now
        notification.updated_at = now
        async with db.begin_nested():
            db.add(notification)
            await db.flush()
        await db.refresh(notification)
        return notification

    async def _persist_within_limit(
        self, db: AsyncSession, notification: Notification
    ) -> Notification:
        return await asyncio.wait_for(
            self._persist(db, notification), timeout=settings.STORE_TIMEOUT_SECONDS
        )

    async def _deliver(self, db: AsyncSession, fields: dict[str, Any]) -> Notification:
        """Build, enrich, persist, then push to the recipient's live connections."""
        notification = await self._persist_within_limit(db, await self._build(db, fields))
        await push_event(
            self.notifier,
            notification.user_id,
            EVENT_RECEIVE_NOTIFICATION,
            push_payload(notification),
        )
        return notification

    async def create_notification(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        title: str,
        organizer_id: str | None = None,
        category: str | None = None,
        message: str | None = None,
        type: str | None = None,
        reference_id: str | None = None,
        from_user_id: str | None = None,
    ) -> Notification:
        """Generic single notification: enrich then persist. Does not push."""
        user_id = require(user_id, "user_id")
        title = require(title, "title")
        logger.info("Creating notification for user %s with title: %s", user_id, title)
        logger.debug(
            "Notification details - organizer_id: %s, category: %s, type: %s",
            organizer_id,
            category,
            type,
        )
        notification = await self._persist_within_limit(
            db,
            await self._build(
                db,
                {
                    "user_id": user_id,
                    "organizer_id": organizer_id,
                    "category": category,
                    "title": title,
                    "message": message,
                    "type": type or DEFAULT_TYPE,
                    "reference_id": reference_id,
                    "from_user_id": from_user_id,
                },
            ),
        )
        logger.info(
            "Created notification %s for user %s", notification.id, notification.user_id
        )
        return notification

    async def send_notification(self, db: AsyncSession, **kwargs: Any) -> Notification:
        """create_notification followed by a ReceiveNotification push."""
        notification = await self.create_notification(db, **kwargs)
        await push_event(
            self.notifier,
            notification.user_id,
            EVENT_RECEIVE_NOTIFICATION,
            push_payload(notification),
        )
        return notification

    # ── Fan-out ───────────────────────────────────────────────────────────────

    async def send_notifications_for_new_post(
        self,
        db: AsyncSession,
        *,
        post_id: str,
        organizer_id: str,
        title: str,
        message: str | None = None,
        from_user_id: str | None = None,
    ) -> FanoutResult:
        """
        Notify every user whose active subscription matches the new post by
        exact post, title series, or organizer-wide scope. Each user receives
        exactly one notification however many scopes matched. A failed or timed-out
        write for one recipient is logged and does not stop the others.
        """
        post_id = require(post_id, "post_id")
        organizer_id = require(organizer_id, "organizer_id")
        title = require(title, "title")

        strategies = strategies_for_new_post(
            post_id=post_id, organizer_id=organizer_id, title=title
        )
        subscriptions = await asyncio.wait_for(
            crud_subscription.list_matching(db, clauses=[s.clause() for s in strategies]),
            timeout=settings.STORE_TIMEOUT_SECONDS,
        )
        recipients = merge_recipients(subscriptions, strategies)

        result = FanoutResult(post_id=post_id)
        for recipient in recipients:
            result.recipients.append(recipient.user_id)
            try:
                notification = await self._deliver(
                    db,
                    {
                        "user_id": recipient.user_id,
                        "organizer_id": organizer_id,
                        "category": recipient.category,
                        "title": title,
                        "message": message,
                        "reference_id": post_id,
                        "from_user_id": from_user_id,
                        "type": "post",
                    },
                )
            except (SQLAlchemyError, asyncio.TimeoutError) as exc:
                logger.error(
                    "Failed to store post notification for user %s (post %s): %r",
                    recipient.user_id,
                    post_id,
                    exc,
                )
                result.failed.append(recipient.user_id)
                continue
            result.created.append(notification)

        logger.info(
            "Sent notifications for new post %s to %d users (%d failed)",
            post_id,
            len(result.created),
            len(result.failed),
        )
        return result

    async def send_like_notification(
        self,
        db: AsyncSession,
        *,
        post_owner_id: str,
        liker_user_id: str,
        post_id: str,
        post_title: str,
    ) -> Notification | None:
        post_owner_id = require(post_owner_id, "post_owner_id")
        liker_user_id = require(liker_user_id, "liker_user_id")
        post_id = require(post_id, "post_id")
        if post_owner_id == liker_user_id:
            logger.debug("Skipping like notification for own post %s", post_id)
            return None

        notification = await self._deliver(
            db,
            {
                "user_id": post_owner_id,
                "title": "New Like",
                "message": f"Someone liked your post: {post_title}",
                "type": "like",
                "reference_id": post_id,
                "from_user_id": liker_user_id,
            },
        )
        logger.info("Sent like notification for post %s", post_id)
        return notification

    async def send_comment_notification(
        self,
        db: AsyncSession,
        *,
        post_owner_id: str,
        commenter_user_id: str,
        post_id: str,
        post_title: str,
        comment: str,
    ) -> Notification | None:
        post_owner_id = require(post_owner_id, "post_owner_id")
        commenter_user_id = require(commenter_user_id, "commenter_user_id")
        post_id = require(post_id, "post_id")
        if post_owner_id == commenter_user_id:
            logger.debug("Skipping comment notification for own post %s", post_id)
            return None

        notification = await self._deliver(
            db,
            {
                "user_id": post_owner_id,
                "title": "New Comment",
                "message": f"Someone commented on your post: {post_title}",
                "type": "comment",
                "reference_id": post_id,
                "from_user_id": commenter_user_id,
                "content": comment,
            },
        )
        logger.info("Sent comment notification for post %s", post_id)
        return notification

    async def send_message_notification(
        self,
        db: AsyncSession,
        *,
        receiver_id: str,
        sender_id: str,
        message_content: str | None = None,
        message_id: str | None = None,
    ) -> Notification:
        receiver_id = require(receiver_id, "receiver_id")
        sender_id = require(sender_id, "sender_id")

        notification = await self._deliver(
            db,
            {
                "user_id": receiver_id,
                "title": "New Message",
                "message": "You have received a new message",
                "type": "message",
                "reference_id": message_id,
                "from_user_id": sender_id,
                "content": message_content,
            },
        )
        logger.info("Sent message notification to user %s", receiver_id)
        return notification
