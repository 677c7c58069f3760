"""
Subscription match strategies for new-post fan-out.

Each strategy knows how to express itself as a SQL clause for the store query
and as a predicate over a loaded Subscription, so merge/dedup logic can be
exercised without a database.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Union

from sqlalchemy import ColumnElement, and_

from campus_notify.models.subscription import Subscription


@dataclass(frozen=True)
class ExactPost:
    post_id: str

    def clause(self) -> ColumnElement[bool]:
        return Subscription.post_id == self.post_id

    def matches(self, subscription: Subscription) -> bool:
        return subscription.post_id == self.post_id


@dataclass(frozen=True)
class TitleMatch:
    """Title-scoped subscriptions and post subscriptions from the same title series."""

    organizer_id: str
    title: str

    def clause(self) -> ColumnElement[bool]:
        return and_(
            Subscription.organizer_id == self.organizer_id,
            Subscription.title == self.title,
        )

    def matches(self, subscription: Subscription) -> bool:
        return (
            subscription.organizer_id == self.organizer_id
            and subscription.title == self.title
        )


@dataclass(frozen=True)
class OrganizerWide:
    organizer_id: str

    def clause(self) -> ColumnElement[bool]:
        return and_(
            Subscription.organizer_id == self.organizer_id,
            Subscription.post_id.is_(None),
            Subscription.title.is_(None),
        )

    def matches(self, subscription: Subscription) -> bool:
        return (
            subscription.organizer_id == self.organizer_id
            and subscription.post_id is None
            and subscription.title is None
        )


MatchStrategy = Union[ExactPost, TitleMatch, OrganizerWide]


def strategies_for_new_post(
    *, post_id: str, organizer_id: str, title: str | None
) -> list[MatchStrategy]:
    strategies: list[MatchStrategy] = [ExactPost(post_id)]
    if title:
        strategies.append(TitleMatch(organizer_id, title))
    strategies.append(OrganizerWide(organizer_id))
    return strategies


@dataclass(frozen=True)
class Recipient:
    user_id: str
    subscription: Subscription
    matched_by: tuple[MatchStrategy, ...]

    @property
    def category(self) -> str | None:
        return self.subscription.category


def merge_recipients(
    subscriptions: Iterable[Subscription],
    strategies: Iterable[MatchStrategy],
) -> list[Recipient]:
    """
    Collapse matching subscriptions to one Recipient per user, in first-seen order.
    The first matching subscription is kept; inactive or non-matching rows are dropped.
    """
    strategies = tuple(strategies)
    first_seen: dict[str, Subscription] = {}
    matched: dict[str, list[MatchStrategy]] = {}

    for subscription in subscriptions:
        if not subscription.is_active:
            continue
        hits = [s for s in strategies if s.matches(subscription)]
        if not hits:
            continue
        first_seen.setdefault(subscription.user_id, subscription)
        bucket = matched.setdefault(subscription.user_id, [])
        bucket.extend(h for h in hits if h not in bucket)

    return [
        Recipient(user_id=user_id, subscription=sub, matched_by=tuple(matched[user_id]))
        for user_id, sub in first_seen.items()
    ]
