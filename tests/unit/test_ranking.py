"""Tests for relevance scoring and segment retrieval."""

from datetime import datetime, timezone

import pytest

from convmem import (
    ConversationMemory,
    MemoryConfig,
    MemorySegment,
    RelevanceRanker,
    SegmentType,
    keyword_score,
)

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def segment(id: str, content: str, type: SegmentType = SegmentType.IMPORTANT) -> MemorySegment:
    """Helper to create test segments."""
    return MemorySegment(
        id=id,
        type=type,
        content=content,
        timestamp=NOW,
        relevance_score=0.9,
        token_count=len(content) // 4 + 1,
        message_ids=frozenset({id}),
    )


class TestKeywordScore:
    """Tests for keyword_score."""

    def test_all_words_match(self):
        assert keyword_score("The Database index is slow", ["database", "index"]) == 1.0

    def test_partial_match(self):
        assert keyword_score("the database is slow", ["database", "index"]) == 0.5

    def test_no_match(self):
        assert keyword_score("completely unrelated", ["database"]) == 0.0

    def test_query_word_inside_content_word(self):
        """'data' matches 'database'."""
        assert keyword_score("database tuning", ["data"]) == 1.0

    def test_content_word_inside_query_word(self):
        """'index' matches 'indexes'."""
        assert keyword_score("an index", ["indexes"]) == 1.0

    def test_empty_query(self):
        assert keyword_score("anything", []) == 0.0


class TestRelevanceRanker:
    """Tests for RelevanceRanker.find_relevant."""

    def test_excludes_summary_segments(self):
        """Summaries are never returned as excerpts."""
        memory = ConversationMemory(
            "c1",
            segments=[
                segment("s", "database index summary", SegmentType.SUMMARY),
                segment("a", "database index notes"),
            ],
        )
        found = RelevanceRanker().find_relevant(memory, "database index")
        assert [s.id for s in found] == ["a"]

    def test_threshold_is_strict(self):
        """A score equal to the threshold is not relevant."""
        memory = ConversationMemory("c1", segments=[segment("a", "database only")])
        ranker = RelevanceRanker(MemoryConfig(semantic_search_threshold=0.5))
        assert ranker.find_relevant(memory, "database index") == []

    def test_sorted_by_score_and_capped(self):
        """Top three by score, ties keep list order."""
        memory = ConversationMemory(
            "c1",
            segments=[
                segment("half", "alpha beta"),
                segment("full-1", "alpha beta gamma delta"),
                segment("three-quarters", "alpha beta gamma"),
                segment("full-2", "delta gamma beta alpha"),
                segment("full-3", "alpha beta gamma delta again"),
            ],
        )
        ranker = RelevanceRanker(MemoryConfig(semantic_search_threshold=0.6))
        found = ranker.find_relevant(memory, "alpha beta gamma delta")
        assert [s.id for s in found] == ["full-1", "full-2", "full-3"]
        assert all(s.relevance_score == 1.0 for s in found)

    def test_scan_limited_to_first_segments(self):
        """Only the first ten non-summary segments are examined."""
        segments = [segment(f"s{i}", f"unrelated {i}") for i in range(10)]
        segments.append(segment("late", "database index"))
        memory = ConversationMemory("c1", segments=segments)
        assert RelevanceRanker().find_relevant(memory, "database index") == []

    def test_does_not_modify_stored_segments(self):
        """Scores are written to copies."""
        original = segment("a", "database index")
        memory = ConversationMemory("c1", segments=[original])
        found = RelevanceRanker().find_relevant(memory, "database index")
        assert found[0].relevance_score == 1.0
        assert memory.segments[0] is original
        assert original.relevance_score == 0.9

    def test_custom_scorer(self):
        """A pluggable scorer replaces keyword matching."""
        memory = ConversationMemory("c1", segments=[segment("a", "x"), segment("b", "y")])
        ranker = RelevanceRanker(scorer=lambda content, words: 0.95 if content == "y" else 0.1)
        found = ranker.find_relevant(memory, "anything")
        assert [s.id for s in found] == ["b"]
        assert found[0].relevance_score == pytest.approx(0.95)

    def test_deterministic(self):
        memory = ConversationMemory(
            "c1", segments=[segment(f"s{i}", "database index") for i in range(5)]
        )
        ranker = RelevanceRanker()
        assert ranker.find_relevant(memory, "database index") == ranker.find_relevant(
            memory, "database index"
        )
