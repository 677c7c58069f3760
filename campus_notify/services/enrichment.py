"""
Metadata enrichment for notifications.

Resolves organizer/author display names, avatars and post preview images.
Lookups never raise: they return a Lookup that is either found, empty
(the row does not exist) or failed (the store errored or timed out), so
callers can tell "absent" from "broken" without catching anything.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from campus_notify.core.config import settings
from campus_notify.crud.read_models import crud_post, crud_user
from campus_notify.models.notification import Notification
from campus_notify.models.post import Post
from campus_notify.models.user import User
from campus_notify.services.action_url import build_action_url

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class EnrichmentError:
    source: str
    key: str
    reason: str

    def __str__(self) -> str:
        return f"{self.source} {self.key!r}: {self.reason}"


@dataclass(frozen=True)
class Lookup(Generic[T]):
    value: T | None = None
    error: EnrichmentError | None = None

    @property
    def found(self) -> bool:
        return self.value is not None


@dataclass(frozen=True)
class UserProfile:
    id: str
    display_name: str | None
    avatar_url: str | None


@dataclass(frozen=True)
class PostPreview:
    id: str
    owner_id: str
    title: str
    image_url: str | None


def display_name(
    username: str | None, first_name: str | None, last_name: str | None
) -> str | None:
    """Username when set, otherwise 'First Last' skipping blank parts, otherwise None."""
    if username and username.strip():
        return username
    parts = [p.strip() for p in (first_name, last_name) if p and p.strip()]
    return " ".join(parts) or None


def make_absolute(url: str | None, base_url: str | None) -> str | None:
    """Prefix a relative media URL with scheme://host. Absolute URLs pass through."""
    if not url or not url.strip():
        return url
    if url.lower().startswith(("http://", "https://")):
        return url
    if not base_url:
        return url
    base = base_url.rstrip("/")
    return f"{base}{url}" if url.startswith("/") else f"{base}/{url}"


class MetadataEnricher:

    def __init__(self, *, timeout: float | None = None) -> None:
        self.timeout = settings.LOOKUP_TIMEOUT_SECONDS if timeout is None else timeout

    # ── Lookups ───────────────────────────────────────────────────────────────

    async def _lookup(
        self,
        db: AsyncSession,
        source: str,
        key: str,
        fetch: Callable[[], Awaitable[T | None]],
    ) -> Lookup[T]:
        # A failed statement must not abort the caller's transaction, so each
        # lookup runs in its own SAVEPOINT.
        try:
            async with db.begin_nested():
                value = await asyncio.wait_for(fetch(), timeout=self.timeout)
        except asyncio.TimeoutError:
            return Lookup(error=EnrichmentError(source, key, "lookup timed out"))
        except SQLAlchemyError as exc:
            return Lookup(error=EnrichmentError(source, key, str(exc) or type(exc).__name__))
        logger.debug("Resolved %s %s: %s", source, key, "found" if value is not None else "absent")
        return Lookup(value=value)

    async def _fetch_user(self, db: AsyncSession, user_id: str) -> User | None:
        return await crud_user.get(db, user_id)

    async def _fetch_post(self, db: AsyncSession, post_id: str) -> Post | None:
        return await crud_post.get(db, post_id)

    async def resolve_user(self, db: AsyncSession, user_id: str | None) -> Lookup[UserProfile]:
        if not user_id:
            return Lookup()
        lookup = await self._lookup(db, "user", user_id, lambda: self._fetch_user(db, user_id))
        if lookup.value is None:
            return Lookup(error=lookup.error)
        user = lookup.value
        return Lookup(
            value=UserProfile(
                id=user.id,
                display_name=display_name(user.username, user.first_name, user.last_name),
                avatar_url=user.profile_image_url,
            )
        )

    async def resolve_post(self, db: AsyncSession, post_id: str | None) -> Lookup[PostPreview]:
        if not post_id:
            return Lookup()
        lookup = await self._lookup(db, "post", post_id, lambda: self._fetch_post(db, post_id))
        if lookup.value is None:
            return Lookup(error=lookup.error)
        post = lookup.value
        return Lookup(
            value=PostPreview(
                id=post.id,
                owner_id=post.user_id,
                title=post.title,
                image_url=post.image_url,
            )
        )

    # ── Enrichment ────────────────────────────────────────────────────────────

    @staticmethod
    def needs_enrichment(notification: Notification) -> bool:
        """
        Read-time lookups run only while a display name or the deep link is
        missing. A missing avatar or post image alone does not trigger one.
        """
        if not notification.organizer_name:
            return True
        if notification.from_user_id and not notification.author_name:
            return True
        return not notification.action_url

    async def enrich(self, db: AsyncSession, notification: Notification) -> list[EnrichmentError]:
        """
        Fill whichever enrichment fields are still empty; values already set are kept.
        Organizer comes from organizer_id, falling back to the owner of the
        referenced post. Returns the lookup errors encountered and never raises.
        """
        errors: list[EnrichmentError] = []
        post_lookup: Lookup[PostPreview] | None = None

        async def referenced_post() -> Lookup[PostPreview]:
            nonlocal post_lookup
            if post_lookup is None:
                post_lookup = await self.resolve_post(db, notification.reference_id)
                if post_lookup.error:
                    errors.append(post_lookup.error)
            return post_lookup

        if not (notification.organizer_name and notification.organizer_avatar_url):
            organizer = await self.resolve_user(db, notification.organizer_id)
            if organizer.error:
                errors.append(organizer.error)
            if not organizer.found and notification.reference_id:
                post = await referenced_post()
                if post.value is not None:
                    organizer = await self.resolve_user(db, post.value.owner_id)
                    if organizer.error:
                        errors.append(organizer.error)
                    if organizer.found and notification.organizer_id is None:
                        notification.organizer_id = post.value.owner_id
            if organizer.value is not None:
                notification.organizer_name = (
                    notification.organizer_name or organizer.value.display_name
                )
                notification.organizer_avatar_url = (
                    notification.organizer_avatar_url or organizer.value.avatar_url
                )

        if notification.from_user_id and not (
            notification.author_name and notification.author_avatar_url
        ):
            author = await self.resolve_user(db, notification.from_user_id)
            if author.error:
                errors.append(author.error)
            if author.value is not None:
                notification.author_name = notification.author_name or author.value.display_name
                notification.author_avatar_url = (
                    notification.author_avatar_url or author.value.avatar_url
                )

        if notification.reference_id and not notification.post_image_url:
            post = await referenced_post()
            if post.value is not None:
                notification.post_image_url = post.value.image_url

        if not notification.action_url:
            notification.action_url = build_action_url(
                notification.type, notification.reference_id
            )

        for error in errors:
            logger.warning(
                "Enrichment failed for notification to user_id=%s: %s",
                notification.user_id,
                error,
            )
        return errors


metadata_enricher = MetadataEnricher()
