"""Memory snapshots - Serializable form of ConversationMemory.

Snapshots are the hand-off format to an external persistence collaborator.
They are pydantic models so imported data is validated before it reaches
the store; `model_dump(mode="json")` gives a JSON-ready dict.

Bulk documents map conversation id -> snapshot:

    {
        "conv-1": {"conversation_id": "conv-1", "segments": [...], ...},
        "conv-2": {...}
    }
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Iterable

from pydantic import BaseModel, Field, field_validator

from .types import ConversationMemory, MemorySegment, SegmentType, as_utc


class SegmentSnapshot(BaseModel):
    """Serializable MemorySegment."""

    id: str
    type: SegmentType
    content: str
    timestamp: datetime
    relevance_score: float
    token_count: int = Field(ge=0)
    message_ids: list[str] = Field(default_factory=list)

    @field_validator("timestamp")
    @classmethod
    def ensure_aware(cls, value: datetime) -> datetime:
        return as_utc(value)

    @classmethod
    def from_segment(cls, segment: MemorySegment) -> SegmentSnapshot:
        return cls(
            id=segment.id,
            type=segment.type,
            content=segment.content,
            timestamp=segment.timestamp,
            relevance_score=segment.relevance_score,
            token_count=segment.token_count,
            message_ids=sorted(segment.message_ids),
        )

    def to_segment(self) -> MemorySegment:
        return MemorySegment(
            id=self.id,
            type=self.type,
            content=self.content,
            timestamp=self.timestamp,
            relevance_score=self.relevance_score,
            token_count=self.token_count,
            message_ids=frozenset(self.message_ids),
        )


class ConversationSnapshot(BaseModel):
    """Serializable ConversationMemory."""

    conversation_id: str
    total_tokens: int = Field(default=0, ge=0)
    segments: list[SegmentSnapshot] = Field(default_factory=list)
    last_updated: datetime
    compression_ratio: float = Field(default=1.0, ge=0)

    @field_validator("last_updated")
    @classmethod
    def ensure_aware(cls, value: datetime) -> datetime:
        return as_utc(value)

    @field_validator("segments")
    @classmethod
    def single_summary(cls, segments: list[SegmentSnapshot]) -> list[SegmentSnapshot]:
        summaries = sum(1 for s in segments if s.type is SegmentType.SUMMARY)
        if summaries > 1:
            raise ValueError(f"at most one summary segment allowed, got {summaries}")
        return segments

    @classmethod
    def from_memory(cls, memory: ConversationMemory) -> ConversationSnapshot:
        return cls(
            conversation_id=memory.conversation_id,
            total_tokens=memory.total_tokens,
            segments=[SegmentSnapshot.from_segment(s) for s in memory.segments],
            last_updated=memory.last_updated,
            compression_ratio=memory.compression_ratio,
        )

    def to_memory(self) -> ConversationMemory:
        return ConversationMemory(
            conversation_id=self.conversation_id,
            total_tokens=self.total_tokens,
            segments=[s.to_segment() for s in self.segments],
            last_updated=self.last_updated,
            compression_ratio=self.compression_ratio,
        )


def save_snapshots(path: Path, snapshots: Iterable[ConversationSnapshot]) -> None:
    """Write snapshots as one JSON document keyed by conversation id."""
    document = {s.conversation_id: s.model_dump(mode="json") for s in snapshots}
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
    tmp_path.replace(path)


def load_snapshots(path: Path) -> list[ConversationSnapshot]:
    """Read a document written by save_snapshots (missing file -> empty list).

    Raises:
        ValueError: If the document is not a JSON object
        pydantic.ValidationError: If a snapshot is invalid
    """
    path = Path(path)
    if not path.exists():
        return []

    document = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(document, dict):
        raise ValueError(f"{path} must contain a JSON object keyed by conversation id")
    return [ConversationSnapshot.model_validate(data) for data in document.values()]


__all__ = [
    "SegmentSnapshot",
    "ConversationSnapshot",
    "save_snapshots",
    "load_snapshots",
]
