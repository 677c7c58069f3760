"""
Notification CRUD operations.
"""
from __future__ import annotations

import uuid

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from campus_notify.crud.base import CRUDBase
from campus_notify.db.base import utcnow
from campus_notify.models.notification import Notification


class CRUDNotification(CRUDBase[Notification]):

    async def list_by_user(
        self,
        db: AsyncSession,
        *,
        user_id: str,
        limit: int = 0,
        unread_only: bool = False,
    ) -> list[Notification]:
        query = select(Notification).where(Notification.user_id == user_id)

        if unread_only:
            query = query.where(Notification.is_read.is_(False))

        query = query.order_by(Notification.created_at.desc())
        if limit > 0:
            query = query.limit(limit)

        result = await db.execute(query)
        return list(result.scalars().all())

    async def mark_as_read(
        self, db: AsyncSession, *, notification_id: uuid.UUID
    ) -> Notification | None:
        obj = await self.get(db, notification_id)
        if obj is None:
            return None
        obj.is_read = True
        obj.updated_at = utcnow()
        db.add(obj)
        await db.flush()
        await db.refresh(obj)
        return obj

    async def mark_all_read(self, db: AsyncSession, *, user_id: str) -> int:
        """Mark all unread notifications for a user as read. Returns count updated."""
        result = await db.execute(
            update(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
            .values(is_read=True, updated_at=utcnow())
        )
        return result.rowcount  # type: ignore[return-value]

    async def count_unread(self, db: AsyncSession, *, user_id: str) -> int:
        result = await db.execute(
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.is_read.is_(False))
        )
        return result.scalar_one()


crud_notification = CRUDNotification(Notification)
