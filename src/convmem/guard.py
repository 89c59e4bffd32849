"""Self-referential query detection.

Queries that ask about the conversation itself ("what was my first
message?") must see the raw recent messages, never a paraphrased summary.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional

# Matched against the lowercased query, anywhere in the string
DEFAULT_PATTERNS = (
    r"what.*my.*message",
    r"what.*first.*message",
    r"what.*second.*message",
    r"what.*previous.*message",
    r"what.*last.*message",
    r"my.*message.*was",
    r"what.*i.*said",
    r"what.*i.*asked",
    r"previous.*conversation",
    r"earlier.*conversation",
    r"conversation.*history",
    r"what.*we.*discuss",
    r"what.*we.*talked.*about",
)


class SelfReferentialGuard:
    """Detects queries about the conversation's own history.

    Example:
        guard = SelfReferentialGuard()
        guard.is_self_referential("What was my first message?")  # True
    """

    def __init__(self, patterns: Optional[Iterable[str]] = None):
        self._patterns = [re.compile(p) for p in (patterns or DEFAULT_PATTERNS)]

    @property
    def patterns(self) -> list[str]:
        return [p.pattern for p in self._patterns]

    def is_self_referential(self, query: Optional[str]) -> bool:
        if not query:
            return False
        lowered = query.lower()
        return any(p.search(lowered) for p in self._patterns)


__all__ = [
    "DEFAULT_PATTERNS",
    "SelfReferentialGuard",
]
