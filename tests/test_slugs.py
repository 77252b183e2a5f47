from __future__ import annotations

import pytest

from vwvideos.app.slugs import SLUG_MAX_LENGTH, is_valid_slug, make_slug, with_numeric_suffix


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Tools & Procedures", "tools-procedures"),
        ("Wheels & Tires", "wheels-tires"),
        ("Type 3 Squareback", "type-3-squareback"),
        ("  Karmann   Ghia  ", "karmann-ghia"),
        ("Käfer Motor", "kafer-motor"),
        ("Don't panic", "dont-panic"),
        ("!!!", ""),
    ],
)
def test_make_slug(text: str, expected: str) -> None:
    assert make_slug(text) == expected


def test_make_slug_respects_word_boundaries() -> None:
    slug = make_slug("rebuild the dual port engine", max_length=15)

    assert len(slug) <= 15
    assert not slug.endswith("-")
    assert slug.startswith("rebuild-the")


def test_is_valid_slug() -> None:
    assert is_valid_slug("split-window-bus")
    assert not is_valid_slug("Split Window")
    assert not is_valid_slug("double--dash")
    assert not is_valid_slug("-leading")


def test_with_numeric_suffix() -> None:
    assert with_numeric_suffix("bus", 1) == "bus"
    assert with_numeric_suffix("bus", 3) == "bus-3"

    long_base = "a" * SLUG_MAX_LENGTH
    suffixed = with_numeric_suffix(long_base, 12)
    assert len(suffixed) == SLUG_MAX_LENGTH
    assert suffixed.endswith("-12")
