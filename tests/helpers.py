"""Message builders for tests."""

from datetime import datetime, timedelta, timezone
from typing import Optional, Sequence

from convmem import Message, Summary
from convmem.types import ASSISTANT, USER

BASE_TIME = datetime.now(timezone.utc) - timedelta(hours=1)


def make_message(
    index: int,
    content: Optional[str] = None,
    role: Optional[str] = None,
) -> Message:
    """Build message m<index>; even indexes are user messages by default."""
    return Message(
        id=f"m{index}",
        role=role or (USER if index % 2 == 0 else ASSISTANT),
        content=content if content is not None else f"filler message number {index}",
        timestamp=BASE_TIME + timedelta(seconds=index),
    )


def filler_conversation(count: int) -> list[Message]:
    """Plain messages that are never classified as important."""
    return [make_message(i) for i in range(count)]


def long_conversation(early_question: str = "How does the database index work?") -> list[Message]:
    """35 messages whose last 20 blow an 8000-token-style small budget.

    m0..m14 are short (m2 is an important user question), m15..m34 are
    100-character filler worth 25 tokens each.
    """
    messages = []
    for i in range(15):
        if i == 2:
            messages.append(make_message(i, early_question, USER))
        elif i % 2 == 0:
            messages.append(make_message(i, f"topic {i}"))
        else:
            messages.append(make_message(i, f"noted {i}"))
    for i in range(15, 35):
        messages.append(make_message(i, "z" * 100))
    return messages


class StaticSummarizer:
    """Summarizer returning fixed text that covers every message."""

    def __init__(self, text: str):
        self.text = text
        self.calls = 0

    async def summarize(self, messages: Sequence[Message]) -> Summary:
        self.calls += 1
        return Summary(text=self.text, message_ids=frozenset(m.id for m in messages))
