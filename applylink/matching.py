"""Fuzzy title matching shared by every ATS resolver."""
from __future__ import annotations

import re
from typing import Callable, Iterable, TypeVar

T = TypeVar("T")

EXACT_SCORE = 100.0
OVERLAP_SCALE = 80.0
LOCATION_BONUS = 10.0
MIN_SCORE = 40.0

_NON_ALNUM = re.compile(r"[^a-z0-9\s]")


def normalize_title(title: str) -> str:
    return _NON_ALNUM.sub("", (title or "").lower()).strip()


def _words(normalized: str) -> list[str]:
    return [w for w in normalized.split() if len(w) > 2]


def title_score(
    target: str,
    candidate: str,
    location: str | None = None,
    candidate_location: str | None = None,
) -> float:
    """Score a candidate listing against the title we are looking for.

    Containment either way scores 100; otherwise the share of target words
    (longer than two letters) present in the candidate, scaled to 0-80. A
    matching location adds 10 to either.
    """
    want = normalize_title(target)
    have = normalize_title(candidate)
    if not want or not have:
        return 0.0

    loc = (location or "").lower().strip()
    bonus = LOCATION_BONUS if loc and loc in (candidate_location or "").lower() else 0.0

    if have in want or want in have:
        return EXACT_SCORE + bonus

    want_words = _words(want)
    have_words = set(_words(have))
    overlap = sum(1 for w in want_words if w in have_words)
    return overlap / max(len(want_words), 1) * OVERLAP_SCALE + bonus


def find_best_match(
    items: Iterable[T],
    title: str,
    location: str | None = None,
    *,
    get_title: Callable[[T], str],
    get_location: Callable[[T], str | None] = lambda _: None,
    min_score: float = MIN_SCORE,
) -> T | None:
    """Highest-scoring item, or None when the best is below ``min_score``.

    Ties keep the earlier item.
    """
    best: T | None = None
    best_score = 0.0
    for item in items:
        score = title_score(title, get_title(item), location, get_location(item))
        if score > best_score:
            best, best_score = item, score
    return best if best_score >= min_score else None
