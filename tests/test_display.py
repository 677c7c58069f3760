"""
Display-name and media-URL helpers used by enrichment and API responses.
"""
from __future__ import annotations

import pytest

from campus_notify.services.enrichment import display_name, make_absolute


@pytest.mark.parametrize(
    ("username", "first", "last", "expected"),
    [
        ("roboticsclub", "Ada", "Lovelace", "roboticsclub"),
        (None, "Ada", "Lovelace", "Ada Lovelace"),
        ("   ", "Ada", None, "Ada"),
        (None, "  ", "Lovelace", "Lovelace"),
        (None, None, None, None),
        ("", " ", "", None),
    ],
)
def test_display_name(username, first, last, expected) -> None:
    assert display_name(username, first, last) == expected


BASE = "http://test/"


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("/media/a.png", "http://test/media/a.png"),
        ("media/a.png", "http://test/media/a.png"),
        ("https://cdn.example.com/a.png", "https://cdn.example.com/a.png"),
        ("HTTP://cdn.example.com/a.png", "HTTP://cdn.example.com/a.png"),
        (None, None),
        ("", ""),
    ],
)
def test_make_absolute(url, expected) -> None:
    assert make_absolute(url, BASE) == expected


def test_make_absolute_without_base_keeps_relative_url() -> None:
    assert make_absolute("/media/a.png", None) == "/media/a.png"
