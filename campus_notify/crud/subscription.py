"""
Subscription CRUD operations.
Inserts run inside a SAVEPOINT so a concurrent duplicate subscribe loses
cleanly to the uniqueness constraint instead of poisoning the session.
"""
from __future__ import annotations

import uuid
from collections.abc import Sequence

from sqlalchemy import ColumnElement, and_, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from campus_notify.crud.base import CRUDBase
from campus_notify.db.base import utcnow
from campus_notify.models.subscription import Subscription, build_scope_key


class CRUDSubscription(CRUDBase[Subscription]):

    async def get_by_scope(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        organizer_id: str,
        post_id: str | None = None,
        title: str | None = None,
    ) -> Subscription | None:
        result = await db.execute(
            select(Subscription).where(
                Subscription.user_id == user_id,
                Subscription.organizer_id == organizer_id,
                Subscription.scope_key == build_scope_key(post_id, title),
            )
        )
        return result.scalar_one_or_none()

    async def get_for_user_post(
        self, db: AsyncSession, *, user_id: str, post_id: str
    ) -> Subscription | None:
        """Post subscriptions are looked up by (user, post) regardless of organizer."""
        result = await db.execute(
            select(Subscription)
            .where(Subscription.user_id == user_id, Subscription.post_id == post_id)
            .order_by(Subscription.is_active.desc(), Subscription.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create_subscription(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        organizer_id: str,
        post_id: str | None = None,
        title: str | None = None,
        category: str | None = None,
    ) -> tuple[Subscription, bool]:
        """
        Insert a subscription. Returns (subscription, created).
        If another writer already holds the same scope, the existing row is
        returned with created=False.
        """
        subscription = Subscription(
            user_id=user_id,
            organizer_id=organizer_id,
            post_id=post_id,
            title=title,
            category=category,
            scope_key=build_scope_key(post_id, title),
            is_active=True,
            created_at=utcnow(),
        )
        try:
            async with db.begin_nested():
                db.add(subscription)
                await db.flush()
        except IntegrityError:
            existing = await self.get_by_scope(
                db,
                user_id=user_id,
                organizer_id=organizer_id,
                post_id=post_id,
                title=title,
            )
            if existing is None:
                raise
            return existing, False
        await db.refresh(subscription)
        return subscription, True

    async def set_active(
        self,
        db: AsyncSession,
        *,
        subscription: Subscription,
        is_active: bool,
        category: str | None = None,
    ) -> Subscription:
        subscription.is_active = is_active
        subscription.updated_at = utcnow()
        if category is not None:
            subscription.category = category
        db.add(subscription)
        await db.flush()
        await db.refresh(subscription)
        return subscription

    async def deactivate_by_id(self, db: AsyncSession, *, subscription_id: uuid.UUID) -> bool:
        """Soft-delete one subscription. Returns False if no row matched."""
        result = await db.execute(
            update(Subscription)
            .where(Subscription.id == subscription_id)
            .values(is_active=False, updated_at=utcnow())
        )
        return (result.rowcount or 0) > 0

    async def deactivate_titles(
        self, db: AsyncSession, *, user_id: str, organizer_id: str, title: str
    ) -> int:
        result = await db.execute(
            update(Subscription)
            .where(
                Subscription.user_id == user_id,
                Subscription.organizer_id == organizer_id,
                Subscription.title == title,
                Subscription.post_id.is_(None),
                Subscription.is_active.is_(True),
            )
            .values(is_active=False, updated_at=utcnow())
        )
        return result.rowcount or 0

    async def deactivate_all_for_user(self, db: AsyncSession, *, user_id: str) -> int:
        result = await db.execute(
            update(Subscription)
            .where(Subscription.user_id == user_id, Subscription.is_active.is_(True))
            .values(is_active=False, updated_at=utcnow())
        )
        return result.rowcount or 0

    async def title_subscription_exists(
        self, db: AsyncSession, *, user_id: str, organizer_id: str, title: str
    ) -> bool:
        result = await db.execute(
            select(Subscription.id)
            .where(
                Subscription.user_id == user_id,
                Subscription.organizer_id == organizer_id,
                Subscription.title == title,
                Subscription.post_id.is_(None),
                Subscription.is_active.is_(True),
            )
            .limit(1)
        )
        return result.first() is not None

    async def list_for_organizer(
        self, db: AsyncSession, *, organizer_id: str, category: str | None = None
    ) -> list[Subscription]:
        query = select(Subscription).where(
            Subscription.organizer_id == organizer_id,
            Subscription.is_active.is_(True),
        )
        if category:
            query = query.where(Subscription.category == category)
        result = await db.execute(query.order_by(Subscription.created_at.asc()))
        return list(result.scalars().all())

    async def list_for_user(
        self, db: AsyncSession, *, user_id: str, include_inactive: bool = False
    ) -> list[Subscription]:
        query = select(Subscription).where(Subscription.user_id == user_id)
        if not include_inactive:
            query = query.where(Subscription.is_active.is_(True))
        result = await db.execute(query.order_by(Subscription.created_at.desc()))
        return list(result.scalars().all())

    async def list_matching(
        self, db: AsyncSession, *, clauses: Sequence[ColumnElement[bool]]
    ) -> list[Subscription]:
        """Active subscriptions matching any of the given clauses, oldest first."""
        if not clauses:
            return []
        result = await db.execute(
            select(Subscription)
            .where(and_(or_(*clauses), Subscription.is_active.is_(True)))
            .order_by(Subscription.created_at.asc())
        )
        return list(result.scalars().all())


crud_subscription = CRUDSubscription(Subscription)
