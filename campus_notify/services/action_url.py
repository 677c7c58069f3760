"""
Deep-link resolution for notifications.
Maps (notification type, reference id) to the path the mobile client navigates to.
"""
from __future__ import annotations

MESSAGES_PATH = "/messages"

_POST_HIGHLIGHTS: dict[str, str] = {
    "like": "likes",
    "comment": "comments",
}


def build_action_url(type: str | None, reference_id: str | None) -> str | None:
    """
    Return the deep link for a notification, or None when there is nothing to open.

    >>> build_action_url("like", "p1")
    '/posts/p1?highlight=likes'
    >>> build_action_url("message", None)
    '/messages'
    >>> build_action_url(None, "p1") is None
    True
    """
    if not type:
        return None
    if type == "message":
        return MESSAGES_PATH
    if not reference_id:
        return None
    highlight = _POST_HIGHLIGHTS.get(type)
    if highlight:
        return f"/posts/{reference_id}?highlight={highlight}"
    return f"/posts/{reference_id}"
