"""Importance classification for incoming messages.

An important message gets its own segment so it survives once it falls out
of the sliding window.
"""

from __future__ import annotations

from typing import Callable

from .types import USER, Message

Classifier = Callable[[Message], bool]

TECH_TERMS = ("function", "class", "algorithm", "database", "api", "error")
CODE_FENCE = "```"
LONG_MESSAGE_CHARS = 500


def is_important(message: Message) -> bool:
    """Heuristic importance check.

    True for code blocks, long responses, user questions, or messages that
    mention a technical term.
    """
    content = message.content.lower()

    if CODE_FENCE in content:
        return True
    if len(message.content) > LONG_MESSAGE_CHARS:
        return True
    if message.role == USER and "?" in content:
        return True
    return any(term in content for term in TECH_TERMS)


__all__ = [
    "Classifier",
    "TECH_TERMS",
    "is_important",
]
