"""Error types for the conversation memory engine.

Recovered errors (never surfaced by ContextAssembler.get_optimized_context):
- OperationTimeout: the memory update exceeded its deadline
- TransientProcessingError: anything else failed while updating or scoring

Caller errors:
- ConfigError: invalid configuration values or config file
"""

from __future__ import annotations


class ConvMemError(RuntimeError):
    """Base class for memory engine errors."""


class OperationTimeout(ConvMemError):
    """Memory update did not finish before the deadline."""

    def __init__(self, conversation_id: str, timeout_ms: int):
        super().__init__(f"Memory update for {conversation_id!r} exceeded {timeout_ms}ms")
        self.conversation_id = conversation_id
        self.timeout_ms = timeout_ms


class TransientProcessingError(ConvMemError):
    """Segment update, scoring or summarization failed."""


class ConfigError(ValueError):
    """Configuration is invalid."""


__all__ = [
    "ConvMemError",
    "OperationTimeout",
    "TransientProcessingError",
    "ConfigError",
]
