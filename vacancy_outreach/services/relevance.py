from __future__ import annotations

import re
from collections.abc import Iterable

_HASHTAG_RE = re.compile(r"#\w+")


def normalize_keywords(keywords: Iterable[str]) -> frozenset[str]:
    normalized: set[str] = set()
    for keyword in keywords:
        stripped = keyword.strip().lower()
        if not stripped:
            continue
        normalized.add(stripped if stripped.startswith("#") else f"#{stripped}")
    return frozenset(normalized)


def post_hashtags(text: str) -> set[str]:
    return {tag.lower() for tag in _HASHTAG_RE.findall(text)}


def is_relevant(text: str, keywords: frozenset[str]) -> bool:
    """Hashtag-equality match; an empty keyword set lets every post through."""
    if not keywords:
        return True
    return not keywords.isdisjoint(post_hashtags(text))
