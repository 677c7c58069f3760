"""
Deep-link resolution tests.
"""
from __future__ import annotations

import pytest

from campus_notify.services.action_url import build_action_url


@pytest.mark.parametrize(
    ("type_", "reference_id", "expected"),
    [
        ("post", "p1", "/posts/p1"),
        ("info", "p1", "/posts/p1"),
        ("like", "p1", "/posts/p1?highlight=likes"),
        ("comment", "p1", "/posts/p1?highlight=comments"),
        ("message", "m1", "/messages"),
        ("message", None, "/messages"),
        ("post", None, None),
        ("like", "", None),
        (None, "p1", None),
        ("", "p1", None),
    ],
)
def test_build_action_url(type_: str | None, reference_id: str | None, expected: str | None) -> None:
    assert build_action_url(type_, reference_id) == expected
