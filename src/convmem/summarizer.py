"""Summarizers - Derive a synopsis of superseded conversation history.

Contract: a summarizer receives the full message list of a conversation and
returns a Summary holding short text plus the ids of every message the text
stands in for. Empty text means "no summary" and the caller skips the
summary segment.

Implementations:
- TopicSummarizer: Heuristic placeholder, lists the first user topics
- LLMSummarizer: Calls an OpenAI-compatible chat completions endpoint
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, Sequence

import httpx
from opentelemetry import trace

from .config import SummarizerConfig
from .errors import TransientProcessingError
from .types import USER, Message

# Get tracer for summarization spans
tracer = trace.get_tracer(__name__)

SUMMARY_SYSTEM_PROMPT = (
    "You compress chat transcripts. Summarize the conversation below in at most "
    "five sentences. Keep names, decisions, code identifiers and open questions. "
    "Do not address the user."
)


@dataclass(frozen=True)
class Summary:
    """Summarizer output.

    Attributes:
        text: Synopsis text (empty when nothing can be summarized)
        message_ids: Ids of the messages the synopsis covers
    """

    text: str
    message_ids: frozenset[str] = frozenset()

    def __bool__(self) -> bool:
        return bool(self.text)


class Summarizer(Protocol):
    async def summarize(self, messages: Sequence[Message]) -> Summary: ...


class TopicSummarizer:
    """Lists the opening of the first few user messages as covered topics.

    Stateless; safe to share between conversations.
    """

    def __init__(self, max_topics: int = 5, topic_chars: int = 100):
        self.max_topics = max_topics
        self.topic_chars = topic_chars

    async def summarize(self, messages: Sequence[Message]) -> Summary:
        user_messages = [m for m in messages if m.role == USER]
        if not user_messages:
            return Summary(text="")

        topics = []
        for message in user_messages[: self.max_topics]:
            topic = message.content[: self.topic_chars]
            if len(message.content) > self.topic_chars:
                topic += "..."
            topics.append(topic)

        return Summary(
            text=f"This conversation covered: {'; '.join(topics)}",
            message_ids=frozenset(m.id for m in messages),
        )


class LLMSummarizer:
    """Summarizes through an OpenAI-compatible /chat/completions endpoint.

    Example:
        summarizer = LLMSummarizer(
            SummarizerConfig(base_url="https://api.openai.com/v1", model="gpt-4o-mini")
        )
        summary = await summarizer.summarize(messages)
    """

    def __init__(
        self,
        config: SummarizerConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize summarizer.

        Args:
            config: Endpoint, model and limits
            transport: Optional httpx transport (used by tests)
            client: Shared client to reuse across calls. The caller owns it
                    and closes it; without one each call opens its own client
        """
        self.config = config
        self._transport = transport
        self._client = client

    async def _post(
        self, client: httpx.AsyncClient, url: str, payload: dict, headers: dict[str, str]
    ) -> dict:
        response = await client.post(
            url, json=payload, headers=headers, timeout=self.config.timeout_ms / 1000.0
        )
        response.raise_for_status()
        return response.json()

    def _transcript(self, messages: Sequence[Message]) -> str:
        lines = [f"{m.role}: {m.content}" for m in messages]
        transcript = "\n".join(lines)
        # Keep the opening of the conversation, which is what falls out of the window
        return transcript[: self.config.max_input_chars]

    async def summarize(self, messages: Sequence[Message]) -> Summary:
        """Summarize messages with the configured model.

        Raises:
            TransientProcessingError: If the call fails or the reply is malformed
        """
        if not messages:
            return Summary(text="")

        with tracer.start_as_current_span(
            "llm.summarize",
            attributes={
                "llm.provider": self.config.base_url,
                "llm.model": self.config.model,
                "llm.max_tokens": self.config.max_tokens,
                "summarize.message_count": len(messages),
            },
        ) as span:
            payload = {
                "model": self.config.model,
                "messages": [
                    {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
                    {"role": "user", "content": self._transcript(messages)},
                ],
                "temperature": self.config.temperature,
                "max_tokens": self.config.max_tokens,
            }
            headers = {"Content-Type": "application/json"}
            if self.config.api_key:
                headers["Authorization"] = f"Bearer {self.config.api_key}"
            url = f"{self.config.base_url.rstrip('/')}/chat/completions"

            try:
                if self._client is not None:
                    result = await self._post(self._client, url, payload, headers)
                else:
                    async with httpx.AsyncClient(
                        timeout=self.config.timeout_ms / 1000.0, transport=self._transport
                    ) as client:
                        result = await self._post(client, url, payload, headers)

                text = result["choices"][0]["message"]["content"].strip()

            except httpx.HTTPStatusError as e:
                error_msg = f"Summarizer HTTP error {e.response.status_code}: {e.response.text}"
                span.set_status(trace.Status(trace.StatusCode.ERROR, error_msg))
                span.record_exception(e)
                raise TransientProcessingError(error_msg) from e
            except (
                httpx.HTTPError,
                KeyError,
                IndexError,
                TypeError,
                ValueError,
                AttributeError,
            ) as e:
                span.set_status(trace.Status(trace.StatusCode.ERROR, f"Summarization failed: {e}"))
                span.record_exception(e)
                raise TransientProcessingError(f"Summarization failed: {e}") from e

            span.set_attribute("llm.response.length", len(text))
            span.set_status(trace.Status(trace.StatusCode.OK))

        return Summary(text=text, message_ids=frozenset(m.id for m in messages))


__all__ = [
    "Summary",
    "Summarizer",
    "TopicSummarizer",
    "LLMSummarizer",
]
