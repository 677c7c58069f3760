"""
Notification store tests.
Covers: read-state transitions, mark-all, listing order and filters,
read-time enrichment of old rows, and the direct like/comment/message senders.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from campus_notify.core.exceptions import InvalidArgumentException, NotFoundException
from campus_notify.models.notification import Notification
from campus_notify.models.post import Post
from campus_notify.models.user import User
from campus_notify.services.enrichment import MetadataEnricher
from campus_notify.services.notification_service import NotificationService
from campus_notify.services.push import (
    EVENT_ALL_NOTIFICATIONS_READ,
    EVENT_NOTIFICATION_READ,
    EVENT_RECEIVE_NOTIFICATION,
)
from tests.conftest import (
    ORGANIZER_ID,
    OTHER_ORGANIZER_ID,
    POST_ID,
    POST_TITLE,
    RecordingNotifier,
)

pytestmark = pytest.mark.asyncio


async def _insert_raw(db: AsyncSession, **fields: Any) -> Notification:
    """Write a row directly, as older releases did before enrichment existed."""
    now = datetime.now(timezone.utc)
    values: dict[str, Any] = {
        "title": "Old notification",
        "type": "info",
        "is_read": False,
        "created_at": now,
        "updated_at": now,
    }
    values.update(fields)
    notification = Notification(**values)
    db.add(notification)
    await db.flush()
    return notification


class CountingEnricher(MetadataEnricher):
    def __init__(self) -> None:
        super().__init__()
        self.lookups: list[tuple[str, str]] = []

    async def _fetch_user(self, db: AsyncSession, user_id: str) -> User | None:
        self.lookups.append(("user", user_id))
        return await super()._fetch_user(db, user_id)

    async def _fetch_post(self, db: AsyncSession, post_id: str) -> Post | None:
        self.lookups.append(("post", post_id))
        return await super()._fetch_post(db, post_id)


class TestCreate:
    async def test_create_does_not_push(
        self, db: AsyncSession, service: NotificationService, notifier: RecordingNotifier
    ) -> None:
        notification = await service.create_notification(
            db, user_id="alice", title="Welcome", message="Hello"
        )
        assert notification.type == "info"
        assert notification.is_read is False
        assert notification.created_at is not None
        assert notifier.events == []

    async def test_send_pushes_receive_notification(
        self, db: AsyncSession, service: NotificationService, notifier: RecordingNotifier
    ) -> None:
        notification = await service.send_notification(
            db, user_id="alice", title="Reminder", type="post", reference_id="p9"
        )
        [(event, payload)] = notifier.for_user("alice")
        assert event == EVENT_RECEIVE_NOTIFICATION
        assert payload["id"] == str(notification.id)
        assert payload["actionUrl"] == "/posts/p9"

    async def test_required_fields(self, db: AsyncSession, service: NotificationService) -> None:
        with pytest.raises(InvalidArgumentException):
            await service.create_notification(db, user_id="", title="Hi")
        with pytest.raises(InvalidArgumentException):
            await service.create_notification(db, user_id="alice", title="  ")


class TestReadState:
    async def test_mark_as_read_is_idempotent(
        self, db: AsyncSession, service: NotificationService, notifier: RecordingNotifier
    ) -> None:
        notification = await service.create_notification(db, user_id="alice", title="Hi")

        first = await service.mark_as_read(db, str(notification.id))
        second = await service.mark_as_read(db, str(notification.id))

        assert first.is_read is True
        assert second.is_read is True
        assert await service.count_unread(db, user_id="alice") == 0
        assert notifier.named(EVENT_NOTIFICATION_READ) == [
            ("alice", {"id": str(notification.id)}),
            ("alice", {"id": str(notification.id)}),
        ]

    async def test_mark_as_read_unknown_id(
        self, db: AsyncSession, service: NotificationService, notifier: RecordingNotifier
    ) -> None:
        with pytest.raises(NotFoundException):
            await service.mark_as_read(db, str(uuid.uuid4()))
        with pytest.raises(NotFoundException):
            await service.mark_as_read(db, "not-a-notification-id")
        assert notifier.events == []

    async def test_mark_all_as_read(
        self, db: AsyncSession, service: NotificationService, notifier: RecordingNotifier
    ) -> None:
        for title in ("one", "two", "three"):
            await service.create_notification(db, user_id="alice", title=title)
        await service.create_notification(db, user_id="bob", title="other")

        assert await service.mark_all_as_read(db, user_id="alice") == 3
        assert await service.count_unread(db, user_id="alice") == 0
        assert await service.count_unread(db, user_id="bob") == 1
        assert await service.mark_all_as_read(db, user_id="alice") == 0
        assert notifier.named(EVENT_ALL_NOTIFICATIONS_READ) == [
            ("alice", {"count": 3}),
            ("alice", {"count": 0}),
        ]

    async def test_get_by_id_normalizes_ids(
        self, db: AsyncSession, service: NotificationService
    ) -> None:
        notification = await service.create_notification(db, user_id="alice", title="Hi")
        found = await service.get_by_id(db, f" {str(notification.id).upper()} ")
        assert found is not None and found.id == notification.id
        assert await service.get_by_id(db, "garbage") is None


class TestListing:
    async def test_newest_first_with_limit_and_unread_filter(
        self, db: AsyncSession, service: NotificationService
    ) -> None:
        base = datetime(2026, 1, 1, tzinfo=timezone.utc)
        for i in range(4):
            at = base + timedelta(minutes=i)
            await _insert_raw(
                db,
                user_id="alice",
                title=f"n{i}",
                is_read=(i == 3),
                created_at=at,
                updated_at=at,
            )

        titles = [n.title for n in await service.get_by_user(db, user_id="alice")]
        assert titles == ["n3", "n2", "n1", "n0"]

        limited = await service.get_by_user(db, user_id="alice", limit=2)
        assert [n.title for n in limited] == ["n3", "n2"]

        unread = await service.get_by_user(db, user_id="alice", unread_only=True)
        assert [n.title for n in unread] == ["n2", "n1", "n0"]

    async def test_read_time_enrichment_fills_old_rows(
        self, db: AsyncSession, service: NotificationService, seeded: dict[str, Any]
    ) -> None:
        old = await _insert_raw(
            db, user_id="alice", type="post", reference_id=POST_ID, title=POST_TITLE
        )

        [listed] = await service.list_enriched(db, user_id="alice")

        assert listed.id == old.id
        # organizer falls back to the referenced post's owner
        assert listed.organizer_id == ORGANIZER_ID
        assert listed.organizer_name == "roboticsclub"
        assert listed.post_image_url == "/media/posts/p1.png"
        assert listed.action_url == f"/posts/{POST_ID}"

    async def test_read_time_enrichment_keeps_existing_values(
        self, db: AsyncSession, service: NotificationService, seeded: dict[str, Any]
    ) -> None:
        await _insert_raw(
            db,
            user_id="alice",
            type="post",
            reference_id=POST_ID,
            organizer_id=ORGANIZER_ID,
            organizer_name="Robotics Club (renamed)",
        )
        [listed] = await service.list_enriched(db, user_id="alice")
        assert listed.organizer_name == "Robotics Club (renamed)"
        assert listed.organizer_avatar_url == "/media/avatars/org1.png"

    async def test_named_rows_without_images_are_not_looked_up_again(
        self, db: AsyncSession, notifier: RecordingNotifier, seeded: dict[str, Any]
    ) -> None:
        enricher = CountingEnricher()
        service = NotificationService(notifier, enricher=enricher)
        # org-2 has an avatar but post-2 has no image; bob has no avatar at all.
        await _insert_raw(
            db,
            user_id="alice",
            type="like",
            reference_id="post-2",
            organizer_id=OTHER_ORGANIZER_ID,
            organizer_name="Ada Lovelace",
            from_user_id="bob",
            author_name="bob",
            action_url="/posts/post-2?highlight=likes",
        )

        await service.list_enriched(db, user_id="alice")
        await service.list_enriched(db, user_id="alice")

        assert enricher.lookups == []

    async def test_rows_missing_a_name_are_looked_up(
        self, db: AsyncSession, notifier: RecordingNotifier, seeded: dict[str, Any]
    ) -> None:
        enricher = CountingEnricher()
        service = NotificationService(notifier, enricher=enricher)
        await _insert_raw(
            db,
            user_id="alice",
            type="post",
            reference_id=POST_ID,
            organizer_id=ORGANIZER_ID,
            action_url=f"/posts/{POST_ID}",
        )

        [listed] = await service.list_enriched(db, user_id="alice")

        assert ("user", ORGANIZER_ID) in enricher.lookups
        assert listed.organizer_name == "roboticsclub"


class TestDirectSenders:
    async def test_like_notifies_post_owner(
        self,
        db: AsyncSession,
        service: NotificationService,
        notifier: RecordingNotifier,
        seeded: dict[str, Any],
    ) -> None:
        notification = await service.send_like_notification(
            db,
            post_owner_id=ORGANIZER_ID,
            liker_user_id="alice",
            post_id=POST_ID,
            post_title=POST_TITLE,
        )
        assert notification is not None
        assert notification.user_id == ORGANIZER_ID
        assert notification.type == "like"
        assert notification.message == f"Someone liked your post: {POST_TITLE}"
        assert notification.action_url == f"/posts/{POST_ID}?highlight=likes"
        assert notification.author_name == "alice"
        assert notification.author_avatar_url == "/media/avatars/alice.png"
        assert [e for e, _ in notifier.for_user(ORGANIZER_ID)] == [EVENT_RECEIVE_NOTIFICATION]

    async def test_liking_own_post_is_silent(
        self, db: AsyncSession, service: NotificationService, notifier: RecordingNotifier
    ) -> None:
        result = await service.send_like_notification(
            db,
            post_owner_id=ORGANIZER_ID,
            liker_user_id=ORGANIZER_ID,
            post_id=POST_ID,
            post_title=POST_TITLE,
        )
        assert result is None
        assert notifier.events == []

    async def test_comment_keeps_comment_text(
        self, db: AsyncSession, service: NotificationService, seeded: dict[str, Any]
    ) -> None:
        notification = await service.send_comment_notification(
            db,
            post_owner_id=ORGANIZER_ID,
            commenter_user_id="bob",
            post_id=POST_ID,
            post_title=POST_TITLE,
            comment="Count me in!",
        )
        assert notification is not None
        assert notification.content == "Count me in!"
        assert notification.action_url == f"/posts/{POST_ID}?highlight=comments"

    async def test_message_links_to_inbox(
        self, db: AsyncSession, service: NotificationService, seeded: dict[str, Any]
    ) -> None:
        notification = await service.send_message_notification(
            db,
            receiver_id="bob",
            sender_id="alice",
            message_content="Are you going?",
            message_id="m-1",
        )
        assert notification.type == "message"
        assert notification.action_url == "/messages"
        assert notification.content == "Are you going?"
        assert notification.author_name == "alice"
