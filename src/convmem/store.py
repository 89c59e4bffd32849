"""Memory Store - Conversation-scoped memory state.

Process-wide table of ConversationMemory keyed by conversation id, and the
owner of segment lifecycle: creation, summarization, compression, eviction.

Lifecycle: construct -> get_or_create/update (any number of times) -> clear.
Entries never expire on their own.
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Iterator, Optional, Sequence

from opentelemetry import trace

from .classifier import Classifier, is_important
from .config import MemoryConfig
from .summarizer import Summarizer, Summary, TopicSummarizer
from .types import (
    PINNED_TYPES,
    ConversationMemory,
    MemorySegment,
    MemoryStats,
    Message,
    SegmentType,
    utcnow,
)
from .window import TokenEstimator

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

SUMMARY_RELEVANCE = 1.0
IMPORTANT_RELEVANCE = 0.9

# Yield to the event loop after this many classified messages
CHECKPOINT_EVERY = 64


class MemoryStore:
    """Conversation-scoped memory table.

    Each conversation has its own asyncio.Lock; callers that mutate or read
    a conversation's segments concurrently must hold it.

    Example:
        store = MemoryStore(MemoryConfig())
        async with store.lock("conv-1"):
            memory = store.get_or_create("conv-1")
            await store.update(memory, messages)
    """

    def __init__(
        self,
        config: Optional[MemoryConfig] = None,
        summarizer: Optional[Summarizer] = None,
        classifier: Optional[Classifier] = None,
        estimator: Optional[TokenEstimator] = None,
    ):
        """Initialize store.

        Args:
            config: Thresholds and caps
            summarizer: Summary producer (default: TopicSummarizer)
            classifier: Importance predicate (default: is_important)
            estimator: Token estimator
        """
        self.config = config or MemoryConfig()
        self.summarizer = summarizer or TopicSummarizer()
        self.estimator = estimator or TokenEstimator()
        self._classifier = classifier or is_important
        self._memories: dict[str, ConversationMemory] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def lock(self, conversation_id: str) -> asyncio.Lock:
        """Exclusive-access lock for one conversation."""
        lock = self._locks.get(conversation_id)
        if lock is None:
            lock = self._locks[conversation_id] = asyncio.Lock()
        return lock

    def get(self, conversation_id: str) -> Optional[ConversationMemory]:
        return self._memories.get(conversation_id)

    def get_or_create(self, conversation_id: str) -> ConversationMemory:
        memory = self._memories.get(conversation_id)
        if memory is None:
            memory = ConversationMemory(conversation_id=conversation_id)
            self._memories[conversation_id] = memory
            logger.debug("Created memory for conversation %s", conversation_id)
        return memory

    def put(self, memory: ConversationMemory) -> None:
        """Install a memory, replacing any existing entry for its conversation."""
        self._memories[memory.conversation_id] = memory

    async def update(self, memory: ConversationMemory, messages: Sequence[Message]) -> bool:
        """Fold previously unseen messages into memory.

        The new segment list is built on a copy and committed at the end, so
        cancellation at a checkpoint leaves memory unchanged.

        Args:
            memory: Memory to update in place
            messages: Full, ordered message list of the conversation

        Returns:
            True if the update was applied, False if there was nothing new
        """
        covered = memory.covered_ids()
        seen: set[str] = set()
        new_messages = []
        for message in messages:
            if message.id not in covered and message.id not in seen:
                seen.add(message.id)
                new_messages.append(message)

        if not new_messages:
            return False

        with tracer.start_as_current_span(
            "memory.update",
            attributes={
                "memory.conversation_id": memory.conversation_id,
                "memory.message_count": len(messages),
                "memory.new_message_count": len(new_messages),
            },
        ) as span:
            segments = list(memory.segments)

            if len(messages) > self.config.summary_threshold:
                segments = [s for s in segments if s.type is not SegmentType.SUMMARY]
                summary = await self.summarizer.summarize(messages)
                if summary:
                    segments.insert(0, self._summary_segment(summary))
                span.set_attribute("memory.summarized", bool(summary))

            for index, message in enumerate(new_messages, start=1):
                if self._classifier(message):
                    segments.append(self._important_segment(message))
                if index % CHECKPOINT_EVERY == 0:
                    await asyncio.sleep(0)

            now = utcnow()
            segments = self._compress(segments, now)
            total_tokens = self.estimator.estimate_all(messages)
            retained_tokens = sum(s.token_count for s in segments)

            memory.segments = segments
            memory.total_tokens = total_tokens
            memory.compression_ratio = (
                retained_tokens / total_tokens if total_tokens > 0 else 1.0
            )
            memory.last_updated = now

            span.set_attribute("memory.segment_count", len(segments))
            span.set_attribute("memory.compression_ratio", memory.compression_ratio)

        logger.debug(
            "Updated memory for %s: %d new messages, %d segments, ratio %.3f",
            memory.conversation_id,
            len(new_messages),
            len(memory.segments),
            memory.compression_ratio,
        )
        return True

    def _summary_segment(self, summary: Summary) -> MemorySegment:
        now = utcnow()
        return MemorySegment(
            id=f"summary-{int(now.timestamp() * 1000)}",
            type=SegmentType.SUMMARY,
            content=summary.text,
            timestamp=now,
            relevance_score=SUMMARY_RELEVANCE,
            token_count=self.estimator.estimate(summary.text),
            message_ids=frozenset(summary.message_ids),
        )

    def _important_segment(self, message: Message) -> MemorySegment:
        return MemorySegment(
            id=f"important-{message.id}",
            type=SegmentType.IMPORTANT,
            content=message.content,
            timestamp=message.timestamp,
            relevance_score=IMPORTANT_RELEVANCE,
            token_count=self.estimator.estimate(message.content),
            message_ids=frozenset({message.id}),
        )

    def _compress(self, segments: list[MemorySegment], now: datetime) -> list[MemorySegment]:
        """Evict aged-out unpinned segments, then enforce the segment cap."""
        cutoff = now - timedelta(days=self.config.retention_days)
        kept = [s for s in segments if s.type in PINNED_TYPES or s.timestamp > cutoff]

        if len(kept) > self.config.max_segments:
            kept = sorted(kept, key=lambda s: s.relevance_score, reverse=True)
            kept = kept[: self.config.max_segments]

        return kept

    def clear(self, conversation_id: str) -> None:
        """Remove a conversation's memory entirely."""
        self._memories.pop(conversation_id, None)
        lock = self._locks.get(conversation_id)
        if lock is not None and not lock.locked():
            del self._locks[conversation_id]

    def clear_all(self) -> None:
        self._memories.clear()
        self._locks = {cid: lock for cid, lock in self._locks.items() if lock.locked()}

    def stats(self, conversation_id: str) -> Optional[MemoryStats]:
        memory = self._memories.get(conversation_id)
        if memory is None:
            return None

        counts = Counter(segment.type.value for segment in memory.segments)
        return MemoryStats(
            total_segments=len(memory.segments),
            compression_ratio=memory.compression_ratio,
            last_updated=memory.last_updated,
            segment_types=dict(counts),
        )

    def conversation_ids(self) -> list[str]:
        return list(self._memories)

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._memories

    def __len__(self) -> int:
        return len(self._memories)

    def __iter__(self) -> Iterator[ConversationMemory]:
        return iter(list(self._memories.values()))


__all__ = ["MemoryStore"]
