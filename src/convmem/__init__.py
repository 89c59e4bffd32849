"""convmem - Conversation memory engine for LLM chat backends.

Bounds an ever-growing conversation history into a fixed token budget while
keeping what matters most for the next model call.

Quick Start:
    ```python
    from convmem import ContextAssembler, MemoryConfig, Message

    assembler = ContextAssembler(MemoryConfig(max_context_tokens=8000))

    context = await assembler.get_optimized_context(
        conversation_id="conv-1",
        messages=history,            # list[Message], oldest first
        query="how do I fix the database error?",
    )
    prompt = [m.to_chat() for m in context]
    ```

Module structure:
    - types: Message, MemorySegment, ConversationMemory
    - config: MemoryConfig and convmem.toml loading
    - window: Token estimation and the sliding window
    - guard: Self-referential query detection
    - ranking: Relevance scoring and segment retrieval
    - classifier: Importance classification
    - summarizer: Heuristic and model-backed summarizers
    - store: Conversation-scoped memory state
    - snapshot: Serializable snapshots for persistence
    - assembler: Context assembly with timeout-guarded fallback
    - telemetry: OpenTelemetry tracing
    - cli: Command line interface
"""

from .assembler import ContextAssembler
from .classifier import is_important
from .config import MemoryConfig, Settings, SummarizerConfig, TelemetryConfig
from .errors import ConfigError, ConvMemError, OperationTimeout, TransientProcessingError
from .guard import SelfReferentialGuard
from .ranking import RelevanceRanker, keyword_score
from .snapshot import ConversationSnapshot, SegmentSnapshot, load_snapshots, save_snapshots
from .store import MemoryStore
from .summarizer import LLMSummarizer, Summarizer, Summary, TopicSummarizer
from .types import ConversationMemory, MemorySegment, MemoryStats, Message, SegmentType
from .window import TokenEstimator, recent_window

__version__ = "0.1.0"

__all__ = [
    # Assembly
    "ContextAssembler",
    # Memory state
    "MemoryStore",
    "ConversationMemory",
    "MemorySegment",
    "MemoryStats",
    "SegmentType",
    "Message",
    # Components
    "TokenEstimator",
    "recent_window",
    "SelfReferentialGuard",
    "RelevanceRanker",
    "keyword_score",
    "is_important",
    "Summary",
    "Summarizer",
    "TopicSummarizer",
    "LLMSummarizer",
    # Snapshots
    "ConversationSnapshot",
    "SegmentSnapshot",
    "save_snapshots",
    "load_snapshots",
    # Config
    "MemoryConfig",
    "SummarizerConfig",
    "TelemetryConfig",
    "Settings",
    # Errors
    "ConvMemError",
    "ConfigError",
    "OperationTimeout",
    "TransientProcessingError",
]
