"""Keyword extraction used by both the knowledge index and the ranker."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

MIN_KEYWORD_LENGTH = 4

STOP_WORDS = frozenset({
    # articles, conjunctions and common prepositions
    "the",
    "a",
    "an",
    "and",
    "or",
    "but",
    "in",
    "on",
    "at",
    "to",
    "for",
    "with",
    "by",
    "about",
    # frequent filler words of four letters or more
    "this",
    "that",
    "have",
    "will",
    "from",
    "they",
    "been",
    "than",
    "were",
    "said",
    "each",
    "which",
    "their",
    "time",
})

_PUNCTUATION = re.compile(r"[^\w\s]")


def _words(text: str) -> list[str]:
    return _PUNCTUATION.sub("", text.lower()).split()


def extract_keywords(text: str) -> frozenset[str]:
    """Tokenize text into a normalized keyword set.

    Lower-cases, strips punctuation, splits on whitespace, then drops short
    tokens and stop-words.

    Args:
        text: Arbitrary user or knowledge text.

    Returns:
        Set of keywords; empty for empty or non-alphanumeric input.
    """
    return frozenset(
        word
        for word in _words(text)
        if len(word) >= MIN_KEYWORD_LENGTH and word not in STOP_WORDS
    )


def normalize_keywords(keywords: Iterable[str]) -> frozenset[str]:
    """Strip, lower-case and deduplicate caller-supplied keywords."""  # noqa: DOC201
    return frozenset(
        keyword.strip().lower() for keyword in keywords if keyword and keyword.strip()
    )


def derive_entry_keywords(
    question: str,
    answer: str,
    keywords: Iterable[str] | None = None,
) -> frozenset[str]:
    """Compute the keyword set stored with a new knowledge entry.

    Explicit keywords win. Otherwise they are extracted from question and
    answer, falling back to every word of the question so that non-empty
    text never ends up with an empty keyword set.

    Returns:
        The keyword set to persist.
    """
    if keywords is not None:
        normalized = normalize_keywords(keywords)
        if normalized:
            return normalized

    extracted = extract_keywords(f"{question} {answer}")
    if extracted:
        return extracted

    return frozenset(_words(question) or _words(answer))
