"""
Subscription business logic.
Validates arguments, keeps subscribe calls idempotent, and soft-deletes on unsubscribe.
"""
from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from campus_notify.core.exceptions import require
from campus_notify.crud.base import parse_uuid
from campus_notify.crud.subscription import crud_subscription
from campus_notify.models.subscription import Subscription

logger = logging.getLogger(__name__)


class SubscriptionService:

    async def subscribe_to_organizer(
        self, db: AsyncSession, *, user_id: str, organizer_id: str
    ) -> Subscription:
        """Organizer-wide subscription. Reactivates a previous one instead of duplicating."""
        user_id = require(user_id, "user_id")
        organizer_id = require(organizer_id, "organizer_id")

        existing = await crud_subscription.get_by_scope(
            db, user_id=user_id, organizer_id=organizer_id
        )
        if existing is not None:
            if not existing.is_active:
                existing = await crud_subscription.set_active(
                    db, subscription=existing, is_active=True
                )
                logger.info(
                    "Reactivated subscription for user %s to organizer %s",
                    user_id,
                    organizer_id,
                )
            return existing

        subscription, created = await crud_subscription.create_subscription(
            db, user_id=user_id, organizer_id=organizer_id
        )
        if created:
            logger.info("User %s subscribed to organizer %s", user_id, organizer_id)
        return subscription

    async def subscribe_to_post(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        post_id: str,
        title: str,
        organizer_id: str,
        category: str | None = None,
    ) -> Subscription:
        user_id = require(user_id, "user_id")
        post_id = require(post_id, "post_id")
        title = require(title, "title")
        organizer_id = require(organizer_id, "organizer_id")

        existing = await crud_subscription.get_for_user_post(
            db, user_id=user_id, post_id=post_id
        )
        if existing is not None:
            if existing.is_active:
                logger.debug("User %s is already subscribed to post %s", user_id, post_id)
                return existing
            logger.info("Reactivated subscription for user %s to post %s", user_id, post_id)
            return await crud_subscription.set_active(
                db, subscription=existing, is_active=True, category=category
            )

        subscription, created = await crud_subscription.create_subscription(
            db,
            user_id=user_id,
            organizer_id=organizer_id,
            post_id=post_id,
            title=title,
            category=category,
        )
        if created:
            logger.info("User %s subscribed to post %s", user_id, post_id)
        return subscription

    async def subscribe_to_title(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        title: str,
        organizer_id: str,
        category: str | None = None,
    ) -> Subscription:
        """Future posts from organizer_id whose title equals title exactly."""
        user_id = require(user_id, "user_id")
        title = require(title, "title")
        organizer_id = require(organizer_id, "organizer_id")

        existing = await crud_subscription.get_by_scope(
            db, user_id=user_id, organizer_id=organizer_id, title=title
        )
        if existing is not None:
            if existing.is_active:
                return existing
            logger.info(
                "Reactivated title subscription %r for user %s to organizer %s",
                title,
                user_id,
                organizer_id,
            )
            return await crud_subscription.set_active(
                db, subscription=existing, is_active=True, category=category
            )

        subscription, created = await crud_subscription.create_subscription(
            db,
            user_id=user_id,
            organizer_id=organizer_id,
            title=title,
            category=category,
        )
        if created:
            logger.info(
                "User %s configured title %r notifications for organizer %s",
                user_id,
                title,
                organizer_id,
            )
        return subscription

    async def unsubscribe_title(
        self, db: AsyncSession, *, user_id: str, title: str, organizer_id: str
    ) -> bool:
        user_id = require(user_id, "user_id")
        title = require(title, "title")
        organizer_id = require(organizer_id, "organizer_id")

        changed = await crud_subscription.deactivate_titles(
            db, user_id=user_id, organizer_id=organizer_id, title=title
        )
        logger.info(
            "Disabled %d title subscription(s) %r for user %s on organizer %s",
            changed,
            title,
            user_id,
            organizer_id,
        )
        return changed > 0

    async def is_title_subscribed(
        self, db: AsyncSession, *, user_id: str, organizer_id: str, title: str
    ) -> bool:
        user_id = require(user_id, "user_id")
        organizer_id = require(organizer_id, "organizer_id")
        title = require(title, "title")
        return await crud_subscription.title_subscription_exists(
            db, user_id=user_id, organizer_id=organizer_id, title=title
        )

    async def get_subscription(
        self, db: AsyncSession, *, subscription_id: str | uuid.UUID
    ) -> Subscription | None:
        parsed = parse_uuid(subscription_id)
        if parsed is None:
            return None
        return await crud_subscription.get(db, parsed)

    async def unsubscribe(self, db: AsyncSession, *, subscription_id: str | uuid.UUID) -> bool:
        """Soft-delete by id. False when no such subscription exists."""
        if isinstance(subscription_id, str):
            require(subscription_id, "subscription_id")
        parsed = parse_uuid(subscription_id)
        if parsed is None or not await crud_subscription.deactivate_by_id(
            db, subscription_id=parsed
        ):
            logger.warning("Subscription with ID %s not found", subscription_id)
            return False
        logger.info("Unsubscribed from subscription %s", subscription_id)
        return True

    async def unsubscribe_all_for_user(self, db: AsyncSession, *, user_id: str) -> int:
        user_id = require(user_id, "user_id")
        count = await crud_subscription.deactivate_all_for_user(db, user_id=user_id)
        logger.info("Disabled %d active subscription(s) for user %s", count, user_id)
        return count

    async def get_subscriptions_for_organizer(
        self, db: AsyncSession, *, organizer_id: str, category: str | None = None
    ) -> list[Subscription]:
        organizer_id = require(organizer_id, "organizer_id")
        subscriptions = await crud_subscription.list_for_organizer(
            db, organizer_id=organizer_id, category=category
        )
        logger.debug(
            "Found %d subscriptions for organizer %s", len(subscriptions), organizer_id
        )
        return subscriptions

    async def get_user_subscriptions(
        self, db: AsyncSession, *, user_id: str, include_inactive: bool = False
    ) -> list[Subscription]:
        user_id = require(user_id, "user_id")
        return await crud_subscription.list_for_user(
            db, user_id=user_id, include_inactive=include_inactive
        )


subscription_service = SubscriptionService()
