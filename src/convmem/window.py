"""Token Window - Token estimation and the recent-message window.

This module handles token budget arithmetic:
- Estimate token counts from character length
- Slice the sliding window of most recent messages
"""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from .types import Message


class TokenEstimator:
    """Estimates token cost from character length.

    Example:
        estimator = TokenEstimator()
        estimator.estimate("hello world")  # 3
        estimator.estimate_all(messages)
    """

    def __init__(self, chars_per_token: int = 4):
        """Initialize estimator.

        Args:
            chars_per_token: Estimated characters per token (varies by model)
        """
        self.chars_per_token = chars_per_token

    def estimate(self, text: str) -> int:
        """Estimate token count for text, rounding up."""
        return math.ceil(len(text) / self.chars_per_token)

    def estimate_all(self, messages: Iterable[Message]) -> int:
        """Estimate total token count for messages."""
        return sum(self.estimate(message.content) for message in messages)


def recent_window(messages: Sequence[Message], size: int) -> list[Message]:
    """Return the last `size` messages, oldest first."""
    if size <= 0:
        return []
    return list(messages[-size:])


__all__ = [
    "TokenEstimator",
    "recent_window",
]
