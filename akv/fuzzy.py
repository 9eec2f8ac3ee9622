"""
Fuzzy filter for vault and secret names.

A candidate matches when every query character appears in it, in order
(case-insensitive). Matches are scored fzf-style: find the shortest window
that contains the subsequence, then reward word-boundary and consecutive hits
and penalize gaps. Higher is better.

Usage:
    from akv.fuzzy import fuzzy_filter

    fuzzy_filter(["api-key-aws", "staging-db-password"], "db")
    # ['staging-db-password']
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import TypeVar

T = TypeVar("T")

SCORE_MATCH = 16
BONUS_BOUNDARY = 8
BONUS_CONSECUTIVE = 4
BONUS_FIRST_CHAR = 2
PENALTY_GAP_START = 3
PENALTY_GAP_EXTENSION = 1

_SEPARATORS = frozenset("-_./: ")


def fuzzy_score(candidate: str, query: str) -> int | None:
    """Score ``candidate`` against ``query``. Returns None when it doesn't match."""
    if not query:
        return 0

    text = candidate.lower()
    pattern = query.lower()

    # Forward pass: first position where the whole pattern has been consumed
    pi = 0
    end = -1
    for i, ch in enumerate(text):
        if ch == pattern[pi]:
            pi += 1
            if pi == len(pattern):
                end = i
                break
    if end < 0:
        return None

    # Backward pass: shrink to the latest possible start
    pi = len(pattern) - 1
    start = end
    for i in range(end, -1, -1):
        if text[i] == pattern[pi]:
            pi -= 1
            if pi < 0:
                start = i
                break

    score = 0
    pi = 0
    prev_matched = False
    in_gap = False
    for i in range(start, end + 1):
        if pi < len(pattern) and text[i] == pattern[pi]:
            score += SCORE_MATCH
            if i == 0 or text[i - 1] in _SEPARATORS:
                score += BONUS_BOUNDARY
                if pi == 0:
                    score += BONUS_FIRST_CHAR
            if prev_matched:
                score += BONUS_CONSECUTIVE
            prev_matched = True
            in_gap = False
            pi += 1
        else:
            score -= PENALTY_GAP_EXTENSION if in_gap else PENALTY_GAP_START
            prev_matched = False
            in_gap = True
    return score


def fuzzy_filter(
    items: Sequence[T],
    query: str,
    key: Callable[[T], str] | None = None,
) -> list[T]:
    """Return the items matching ``query``, best match first.

    An empty query returns the items unchanged. Ties keep their source order.
    """
    if not query:
        return list(items)

    get = key or str
    scored: list[tuple[int, T]] = []
    for item in items:
        score = fuzzy_score(get(item), query)
        if score is not None:
            scored.append((score, item))
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [item for _, item in scored]
