"""Tests for SelfReferentialGuard."""

import pytest

from convmem import SelfReferentialGuard
from convmem.guard import DEFAULT_PATTERNS


class TestSelfReferentialGuard:
    """Tests for self-referential query detection."""

    @pytest.mark.parametrize(
        "query",
        [
            "What was my last message?",
            "what was the first message I sent",
            "What was my second message?",
            "what did the previous message say",
            "Can you tell me what my message was",
            "What have I said so far",
            "what have i asked you",
            "Summarize our previous conversation",
            "In our earlier conversation you mentioned a book",
            "Show me the conversation history",
            "What did we discuss earlier?",
            "What have we discussed",
            "what have we talked about",
        ],
    )
    def test_detects_history_questions(self, query):
        """Questions about the conversation itself are detected."""
        assert SelfReferentialGuard().is_self_referential(query)

    @pytest.mark.parametrize(
        "query",
        [
            "How do I sort a list",
            "Explain quantum entanglement",
            "Write a haiku about autumn",
            "",
            None,
        ],
    )
    def test_ignores_other_queries(self, query):
        """Ordinary queries pass through."""
        assert not SelfReferentialGuard().is_self_referential(query)

    def test_every_default_pattern_is_compiled(self):
        assert SelfReferentialGuard().patterns == list(DEFAULT_PATTERNS)

    def test_custom_patterns(self):
        """Custom patterns replace the defaults."""
        guard = SelfReferentialGuard(patterns=[r"recap"])
        assert guard.is_self_referential("Give me a RECAP")
        assert not guard.is_self_referential("What was my last message?")
