"""Lexical similarity measures used for knowledge retrieval."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Set


def word_set(text: str) -> frozenset[str]:
    """Lower-cased whitespace-separated words, without stop-word filtering."""  # noqa: DOC201
    return frozenset(text.lower().split())


def text_similarity(a: str, b: str) -> float:
    """Jaccard similarity between the word sets of two strings.

    Returns:
        ``|intersection| / |union|`` in [0, 1]; 0.0 when both sets are empty.
    """
    words_a = word_set(a)
    words_b = word_set(b)
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


def keyword_overlap(query_keywords: Set[str], entry_keywords: Set[str]) -> float:
    """Share of entry keywords that loosely match a query keyword.

    An entry keyword matches when it contains, or is contained in, any query
    keyword. Substring containment tolerates simple stemming differences such
    as "hour" and "hours".

    Returns:
        Matching entry keywords divided by the larger of the two set sizes,
        or 0.0 if either set is empty.
    """
    if not query_keywords or not entry_keywords:
        return 0.0

    matches = sum(
        1
        for entry_keyword in entry_keywords
        if any(
            query_keyword in entry_keyword or entry_keyword in query_keyword
            for query_keyword in query_keywords
        )
    )
    return matches / max(len(entry_keywords), len(query_keywords))
