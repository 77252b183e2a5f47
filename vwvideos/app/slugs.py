from __future__ import annotations

import re

from slugify import slugify

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"
_SLUG_RE = re.compile(SLUG_PATTERN)
SLUG_MIN_LENGTH = 3
SLUG_MAX_LENGTH = 200


def make_slug(text: str, *, max_length: int = SLUG_MAX_LENGTH) -> str:
    """Lower-case, hyphen-joined ASCII slug. `&` is dropped rather than spelled out."""
    return slugify(
        text,
        max_length=max_length,
        word_boundary=True,
        replacements=[["&", " "], ["'", ""]],
    )


def is_valid_slug(value: str) -> bool:
    return bool(_SLUG_RE.match(value))


def with_numeric_suffix(base: str, attempt: int) -> str:
    if attempt <= 1:
        return base
    suffix = f"-{attempt}"
    return f"{base[: SLUG_MAX_LENGTH - len(suffix)].rstrip('-')}{suffix}"
