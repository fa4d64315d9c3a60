"""Lexical ranking of knowledge entries against a user query."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .config import config
from .keywords import extract_keywords
from .models import RetrievalResult
from .similarity import keyword_overlap, text_similarity

if TYPE_CHECKING:
    from .knowledge import KnowledgeIndex
    from .models import KnowledgeEntry

logger = config.get_logger(__name__)

NO_MATCH = RetrievalResult(matched_entry=None, score=0.0, accepted=False)


class RetrievalRanker:
    """Pick the single best knowledge entry for a query.

    The blended score is ``keyword_weight * keyword_overlap +
    text_weight * max(text_similarity(question), text_similarity(answer))``.
    A match is accepted only when the score is strictly above ``threshold``.
    """

    def __init__(
        self,
        threshold: float | None = None,
        keyword_weight: float | None = None,
        text_weight: float | None = None,
    ) -> None:
        """Initialize the ranker.

        Args:
            threshold: Acceptance gate. If None, uses config.RETRIEVAL_THRESHOLD.
            keyword_weight: Weight of the keyword score. If None, uses
                config.RETRIEVAL_KEYWORD_WEIGHT.
            text_weight: Weight of the text score. If None, uses
                config.RETRIEVAL_TEXT_WEIGHT.
        """
        self.threshold = (
            threshold if threshold is not None else config.RETRIEVAL_THRESHOLD
        )
        self.keyword_weight = (
            keyword_weight
            if keyword_weight is not None
            else config.RETRIEVAL_KEYWORD_WEIGHT
        )
        self.text_weight = (
            text_weight if text_weight is not None else config.RETRIEVAL_TEXT_WEIGHT
        )

    def score(
        self,
        query: str,
        query_keywords: frozenset[str],
        entry: KnowledgeEntry,
    ) -> float:
        """Blended similarity between a query and one entry.

        Returns:
            Weighted sum of keyword overlap and best text similarity.
        """
        keyword_score = keyword_overlap(query_keywords, entry.keywords)
        text_score = max(
            text_similarity(query, entry.question),
            text_similarity(query, entry.answer),
        )
        return self.keyword_weight * keyword_score + self.text_weight * text_score

    def rank(self, query: str, index: KnowledgeIndex) -> RetrievalResult:
        """Find the best entry for a query in a tenant's index.

        Entries are scanned in index order and only a strictly higher score
        replaces the current best, so the earliest entry wins ties.

        Returns:
            RetrievalResult with the best candidate, its score and whether it
            passed the acceptance threshold.
        """
        query_keywords = extract_keywords(query)
        if not query_keywords:
            logger.debug("Query has no keywords; skipping knowledge lookup")
            return NO_MATCH

        best_entry: KnowledgeEntry | None = None
        best_score = 0.0
        for entry in index.all():
            if not entry.keywords:
                continue
            entry_score = self.score(query, query_keywords, entry)
            if best_entry is None or entry_score > best_score:
                best_entry = entry
                best_score = entry_score

        if best_entry is None:
            return NO_MATCH

        accepted = best_score > self.threshold
        logger.info(
            "Best knowledge entry %s scored %.4f (accepted=%s)",
            best_entry.id,
            best_score,
            accepted,
        )
        return RetrievalResult(
            matched_entry=best_entry, score=best_score, accepted=accepted
        )
