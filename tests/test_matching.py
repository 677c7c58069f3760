"""
Match strategy and recipient merge tests.
Runs on unsaved Subscription objects; no database involved.
"""
from __future__ import annotations

from campus_notify.models.subscription import Subscription, build_scope_key
from campus_notify.services.matching import (
    ExactPost,
    OrganizerWide,
    TitleMatch,
    merge_recipients,
    strategies_for_new_post,
)

ORG = "org-1"


def _sub(
    user_id: str,
    *,
    organizer_id: str = ORG,
    post_id: str | None = None,
    title: str | None = None,
    category: str | None = None,
    is_active: bool = True,
) -> Subscription:
    return Subscription(
        user_id=user_id,
        organizer_id=organizer_id,
        post_id=post_id,
        title=title,
        category=category,
        scope_key=build_scope_key(post_id, title),
        is_active=is_active,
    )


class TestStrategies:
    def test_new_post_uses_all_three_scopes(self) -> None:
        strategies = strategies_for_new_post(post_id="p1", organizer_id=ORG, title="Meetup")
        assert strategies == [ExactPost("p1"), TitleMatch(ORG, "Meetup"), OrganizerWide(ORG)]

    def test_blank_title_skips_title_match(self) -> None:
        strategies = strategies_for_new_post(post_id="p1", organizer_id=ORG, title=None)
        assert strategies == [ExactPost("p1"), OrganizerWide(ORG)]

    def test_organizer_wide_ignores_title_subscriptions(self) -> None:
        assert OrganizerWide(ORG).matches(_sub("u1"))
        assert not OrganizerWide(ORG).matches(_sub("u1", title="Meetup"))
        assert not OrganizerWide(ORG).matches(_sub("u1", post_id="p1", title="Meetup"))

    def test_title_match_is_scoped_to_organizer(self) -> None:
        strategy = TitleMatch(ORG, "Meetup")
        assert strategy.matches(_sub("u1", title="Meetup"))
        assert not strategy.matches(_sub("u1", organizer_id="org-2", title="Meetup"))
        assert not strategy.matches(_sub("u1", title="meetup"))

    def test_exact_post_matches_post_id_only(self) -> None:
        assert ExactPost("p1").matches(_sub("u1", post_id="p1", title="Anything"))
        assert not ExactPost("p1").matches(_sub("u1", post_id="p2", title="Anything"))


class TestMergeRecipients:
    def test_user_matching_several_scopes_appears_once(self) -> None:
        strategies = strategies_for_new_post(post_id="p1", organizer_id=ORG, title="Meetup")
        subscriptions = [
            _sub("u1", category="tech"),
            _sub("u1", title="Meetup", category="social"),
            _sub("u1", post_id="p1", title="Meetup"),
        ]
        recipients = merge_recipients(subscriptions, strategies)

        assert [r.user_id for r in recipients] == ["u1"]
        assert recipients[0].category == "tech"
        assert set(recipients[0].matched_by) == set(strategies)

    def test_first_seen_order_is_kept(self) -> None:
        strategies = strategies_for_new_post(post_id="p1", organizer_id=ORG, title="Meetup")
        subscriptions = [
            _sub("u2"),
            _sub("u1", title="Meetup"),
            _sub("u2", title="Meetup"),
            _sub("u3", post_id="p1", title="Meetup"),
        ]
        recipients = merge_recipients(subscriptions, strategies)
        assert [r.user_id for r in recipients] == ["u2", "u1", "u3"]

    def test_inactive_and_unrelated_rows_are_dropped(self) -> None:
        strategies = strategies_for_new_post(post_id="p1", organizer_id=ORG, title="Meetup")
        subscriptions = [
            _sub("u1", is_active=False),
            _sub("u2", organizer_id="org-2"),
            _sub("u3", title="Other series"),
        ]
        assert merge_recipients(subscriptions, strategies) == []

    def test_no_subscriptions(self) -> None:
        strategies = strategies_for_new_post(post_id="p1", organizer_id=ORG, title="Meetup")
        assert merge_recipients([], strategies) == []
