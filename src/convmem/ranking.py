"""Relevance Ranking - Score and retrieve memory segments for a query.

This module provides segment retrieval:
- Score segment content against query words
- Select the few segments worth spending budget on

Future: Replace keyword_score with embedding similarity; anything with the
same (content, query_words) -> float signature plugs in.
"""

from __future__ import annotations

import dataclasses
from typing import Callable, Optional

from .config import MemoryConfig
from .types import ConversationMemory, MemorySegment, SegmentType

Scorer = Callable[[str, list[str]], float]


def keyword_score(content: str, query_words: list[str]) -> float:
    """Fraction of query words that match some content word.

    A query word matches when it is a substring of a content word or a
    content word is a substring of it.

    Args:
        content: Segment content
        query_words: Lowercased query words

    Returns:
        Score between 0.0 and 1.0
    """
    if not query_words:
        return 0.0

    content_words = content.lower().split()
    matches = [
        word
        for word in query_words
        if any(word in c_word or c_word in word for c_word in content_words)
    ]
    return len(matches) / len(query_words)


class RelevanceRanker:
    """Finds the memory segments most relevant to a query.

    Example:
        ranker = RelevanceRanker(MemoryConfig())
        top = ranker.find_relevant(memory, "database index error")
    """

    def __init__(self, config: Optional[MemoryConfig] = None, scorer: Optional[Scorer] = None):
        """Initialize ranker.

        Args:
            config: Thresholds and scan limits
            scorer: Custom scoring function (content, query_words) -> score.
                    Default uses keyword matching
        """
        self.config = config or MemoryConfig()
        self._scorer = scorer or keyword_score

    def find_relevant(self, memory: ConversationMemory, query: str) -> list[MemorySegment]:
        """Return up to `max_relevant_segments` segments above the threshold.

        Only the first `relevance_scan_limit` non-summary segments in list
        order are examined. Results are sorted by score (descending, stable)
        and carry the query score as their relevance_score; the stored
        segments are left untouched.
        """
        query_words = query.lower().split()
        candidates = [s for s in memory.segments if s.type is not SegmentType.SUMMARY]
        candidates = candidates[: self.config.relevance_scan_limit]

        scored = [
            dataclasses.replace(segment, relevance_score=self._scorer(segment.content, query_words))
            for segment in candidates
        ]
        relevant = [
            s for s in scored if s.relevance_score > self.config.semantic_search_threshold
        ]
        relevant.sort(key=lambda s: s.relevance_score, reverse=True)
        return relevant[: self.config.max_relevant_segments]


__all__ = [
    "Scorer",
    "keyword_score",
    "RelevanceRanker",
]
