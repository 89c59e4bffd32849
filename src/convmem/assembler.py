"""Context Assembler - Bounded context for the next model call.

Orchestrates the memory engine for a chat-request handler:

    Guard    -> self-referential query: plain recent window
    Fetch    -> get-or-create + update memory under a deadline
                (timeout or error: plain recent window)
    Budget   -> recent window fits max_context_tokens: return it
    Compress -> [summary?] + [relevant excerpts] + [reserved raw tail]

get_optimized_context never raises: a broken memory subsystem degrades to
the plain recent window instead of blocking the conversation.

Note: the deadline is enforced by cancelling the update task. Cancellation
takes effect at the update's await points, so a summarizer that blocks
without awaiting is not preempted.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Iterable, Optional, Sequence, Union

from opentelemetry import trace

from .classifier import Classifier
from .config import MemoryConfig
from .errors import ConvMemError, OperationTimeout, TransientProcessingError
from .guard import SelfReferentialGuard
from .ranking import RelevanceRanker, Scorer
from .snapshot import ConversationSnapshot
from .store import MemoryStore
from .summarizer import Summarizer
from .types import ASSISTANT, ConversationMemory, MemorySegment, MemoryStats, Message
from .window import TokenEstimator, recent_window

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

MEMORY_EXCERPT_PREFIX = "[Memory Summary]: "
CONVERSATION_SUMMARY_PREFIX = "[Conversation Summary]: "


class ContextAssembler:
    """Produces token-bounded message lists from full conversation history.

    Example:
        assembler = ContextAssembler(MemoryConfig(max_context_tokens=4000))
        context = await assembler.get_optimized_context("conv-1", messages, query)
        prompt = [m.to_chat() for m in context]
    """

    def __init__(
        self,
        config: Optional[MemoryConfig] = None,
        *,
        store: Optional[MemoryStore] = None,
        summarizer: Optional[Summarizer] = None,
        classifier: Optional[Classifier] = None,
        scorer: Optional[Scorer] = None,
        guard: Optional[SelfReferentialGuard] = None,
        estimator: Optional[TokenEstimator] = None,
    ):
        """Initialize assembler.

        Args:
            config: Budgets and thresholds (validated at construction)
            store: Memory store to use (default: a new one built from config)
            summarizer: Summary producer for a new store
            classifier: Importance predicate for a new store
            scorer: Relevance scoring function for retrieval
            guard: Self-referential query detector
            estimator: Token estimator
        """
        self.config = config or (store.config if store else MemoryConfig())
        self.estimator = estimator or TokenEstimator()
        self.store = store or MemoryStore(
            self.config,
            summarizer=summarizer,
            classifier=classifier,
            estimator=self.estimator,
        )
        self.ranker = RelevanceRanker(self.config, scorer=scorer)
        self.guard = guard or SelfReferentialGuard()

    async def get_optimized_context(
        self,
        conversation_id: str,
        messages: Sequence[Message],
        query: Optional[str] = None,
        *,
        use_memory: bool = True,
    ) -> list[Message]:
        """Assemble a bounded context for the next model call.

        Args:
            conversation_id: Conversation identifier
            messages: Full, ordered message history
            query: Current user query, used for retrieval and the guard
            use_memory: False returns the plain recent window without
                        touching memory (memory disabled for the conversation)

        Returns:
            Ordered messages, non-empty whenever messages is non-empty
        """
        window = recent_window(messages, self.config.sliding_window_size)

        with tracer.start_as_current_span(
            "memory.get_optimized_context",
            attributes={
                "memory.conversation_id": conversation_id,
                "memory.message_count": len(messages),
                "memory.has_query": bool(query),
            },
        ) as span:
            if not use_memory:
                span.set_attribute("memory.path", "disabled")
                return window

            try:
                if query and self.guard.is_self_referential(query):
                    logger.info(
                        "Self-referential query in %s, using recent messages", conversation_id
                    )
                    span.set_attribute("memory.path", "guard")
                    return window

                memory = await self._fetch(conversation_id, messages)

                window_tokens = self.estimator.estimate_all(window)
                span.set_attribute("memory.window_tokens", window_tokens)
                if window_tokens <= self.config.max_context_tokens:
                    span.set_attribute("memory.path", "window")
                    return window

                context = self._compress(memory, window, query)
                span.set_attribute("memory.path", "compressed")
                span.set_attribute("memory.context_size", len(context))
                return context

            except Exception as e:
                logger.warning(
                    "Memory system error for %s, falling back to recent messages: %s",
                    conversation_id,
                    e,
                )
                span.set_attribute("memory.path", "fallback")
                span.record_exception(e)
                return window

    async def _fetch(self, conversation_id: str, messages: Sequence[Message]) -> ConversationMemory:
        """Update memory under the deadline and return a private copy for assembly.

        Raises:
            OperationTimeout: If lock wait plus update exceeds update_timeout_ms
            TransientProcessingError: If the update fails
        """
        try:
            return await asyncio.wait_for(
                self._locked_update(conversation_id, messages),
                timeout=self.config.update_timeout_ms / 1000,
            )
        except asyncio.TimeoutError as e:
            raise OperationTimeout(conversation_id, self.config.update_timeout_ms) from e
        except ConvMemError:
            raise
        except Exception as e:
            raise TransientProcessingError(f"Memory update failed: {e}") from e

    async def _locked_update(
        self, conversation_id: str, messages: Sequence[Message]
    ) -> ConversationMemory:
        async with self.store.lock(conversation_id):
            memory = self.store.get_or_create(conversation_id)
            await self.store.update(memory, messages)
            return dataclasses.replace(memory, segments=list(memory.segments))

    def _compress(
        self,
        memory: ConversationMemory,
        window: Sequence[Message],
        query: Optional[str],
    ) -> list[Message]:
        tail = list(window[-self.config.reserved_recent_messages :])
        reserved_budget = self.config.max_context_tokens - self.estimator.estimate_all(tail)
        budget = reserved_budget

        context: list[Message] = []

        if query:
            for segment in self.ranker.find_relevant(memory, query):
                if budget >= segment.token_count:
                    excerpt = _synthetic(f"memory-{segment.id}", MEMORY_EXCERPT_PREFIX, segment)
                    context.append(excerpt)
                    budget -= segment.token_count

        # Checked against the reserved budget, not what the excerpts left over
        summary = memory.summary()
        if summary is not None and reserved_budget >= summary.token_count:
            context.insert(
                0, _synthetic(f"summary-{summary.id}", CONVERSATION_SUMMARY_PREFIX, summary)
            )

        context.extend(tail)
        return context

    def get_stats(self, conversation_id: str) -> Optional[MemoryStats]:
        return self.store.stats(conversation_id)

    def clear_memory(self, conversation_id: str) -> None:
        self.store.clear(conversation_id)

    def export_memory(self, conversation_id: str) -> Optional[ConversationSnapshot]:
        """Snapshot a conversation's memory, or None if it has none."""
        memory = self.store.get(conversation_id)
        if memory is None:
            return None
        return ConversationSnapshot.from_memory(memory)

    def import_memory(self, snapshot: Union[ConversationSnapshot, dict]) -> None:
        """Install a snapshot, replacing the conversation's current memory.

        Raises:
            pydantic.ValidationError: If a dict snapshot is invalid
        """
        if not isinstance(snapshot, ConversationSnapshot):
            snapshot = ConversationSnapshot.model_validate(snapshot)
        self.store.put(snapshot.to_memory())

    def export_all(self) -> list[ConversationSnapshot]:
        return [ConversationSnapshot.from_memory(memory) for memory in self.store]

    def import_all(self, snapshots: Iterable[Union[ConversationSnapshot, dict]]) -> int:
        count = 0
        for snapshot in snapshots:
            self.import_memory(snapshot)
            count += 1
        return count


def _synthetic(message_id: str, prefix: str, segment: MemorySegment) -> Message:
    return Message(
        id=message_id,
        role=ASSISTANT,
        content=f"{prefix}{segment.content}",
        timestamp=segment.timestamp,
    )


__all__ = [
    "ContextAssembler",
    "MEMORY_EXCERPT_PREFIX",
    "CONVERSATION_SUMMARY_PREFIX",
]
