"""Memory types - Data structures for conversation memory.

This module defines the types shared by the memory engine:
- Message: A chat message owned by the external conversation store
- SegmentType: Classification of a retained memory segment
- MemorySegment: A retained, classified slice of conversation memory
- ConversationMemory: Per-conversation memory state
- MemoryStats: Debug/inspection summary of a ConversationMemory
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

USER = "user"
ASSISTANT = "assistant"
ROLES = (USER, ASSISTANT)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes so that age comparisons never mix kinds."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_timestamp(value: Any) -> datetime:
    """Parse an ISO-8601 string (or pass through a datetime) as an aware datetime."""
    if isinstance(value, datetime):
        return as_utc(value)
    text = str(value)
    # fromisoformat() only accepts the "Z" suffix from Python 3.11
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return as_utc(datetime.fromisoformat(text))


@dataclass(frozen=True)
class Message:
    """A single chat message.

    Attributes:
        id: Identifier assigned by the conversation store
        role: "user" or "assistant"
        content: Message text
        timestamp: When the message was created
    """

    id: str
    role: str
    content: str
    timestamp: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"Unknown message role: {self.role!r}")
        object.__setattr__(self, "timestamp", as_utc(self.timestamp))

    def to_chat(self) -> dict[str, str]:
        """Convert to chat message format."""
        return {"role": self.role, "content": self.content}

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        timestamp = data.get("timestamp")
        return cls(
            id=str(data["id"]),
            role=data.get("role", USER),
            content=data.get("content", ""),
            timestamp=parse_timestamp(timestamp) if timestamp else utcnow(),
        )


class SegmentType(Enum):
    """Segment classification.

    - SUMMARY: Synopsis of superseded history (at most one per conversation)
    - IMPORTANT: A single message worth keeping (code, questions, long answers)
    - RECENT: Recent-history slice (subject to age eviction)
    - SEMANTIC: Retrieval-produced slice (subject to age eviction)
    """

    SUMMARY = "summary"
    IMPORTANT = "important"
    RECENT = "recent"
    SEMANTIC = "semantic"


# Segment types that are never evicted for age, only for the count cap
PINNED_TYPES = frozenset({SegmentType.SUMMARY, SegmentType.IMPORTANT})


@dataclass(frozen=True)
class MemorySegment:
    """A retained slice of conversation memory.

    Attributes:
        id: Segment identifier
        type: Segment classification
        content: Retained text
        timestamp: Creation time (summary) or source message time (important)
        relevance_score: Ranking score used by the segment cap
        token_count: Estimated token cost of content
        message_ids: Ids of the messages this segment covers
    """

    id: str
    type: SegmentType
    content: str
    timestamp: datetime
    relevance_score: float
    token_count: int
    message_ids: frozenset[str] = frozenset()


@dataclass
class ConversationMemory:
    """Memory state for one conversation, mutated in place by MemoryStore.

    Attributes:
        conversation_id: Conversation identifier
        total_tokens: Estimated tokens of the full message history last seen
        segments: Retained segments, summary first
        last_updated: Time of the last applied update
        compression_ratio: Segment tokens / total tokens (1.0 when empty)
    """

    conversation_id: str
    total_tokens: int = 0
    segments: list[MemorySegment] = field(default_factory=list)
    last_updated: datetime = field(default_factory=utcnow)
    compression_ratio: float = 1.0

    def covered_ids(self) -> set[str]:
        """Ids of every message covered by some segment."""
        covered: set[str] = set()
        for segment in self.segments:
            covered.update(segment.message_ids)
        return covered

    def summary(self) -> MemorySegment | None:
        for segment in self.segments:
            if segment.type is SegmentType.SUMMARY:
                return segment
        return None


@dataclass
class MemoryStats:
    """Inspection record for a conversation's memory."""

    total_segments: int
    compression_ratio: float
    last_updated: datetime
    segment_types: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_segments": self.total_segments,
            "compression_ratio": self.compression_ratio,
            "last_updated": self.last_updated.isoformat(),
            "segment_types": dict(self.segment_types),
        }


__all__ = [
    "USER",
    "ASSISTANT",
    "Message",
    "SegmentType",
    "PINNED_TYPES",
    "MemorySegment",
    "ConversationMemory",
    "MemoryStats",
    "parse_timestamp",
    "utcnow",
]
