"""Configuration management for convmem.

Parses convmem.toml files with support for:
- Memory budgets and thresholds
- An optional model-backed summarizer
- Telemetry export

Example convmem.toml structure:

    [memory]
    max_context_tokens = 8000
    sliding_window_size = 20
    summary_threshold = 25

    [summarizer]
    base_url = "https://api.openai.com/v1"
    model = "gpt-4o-mini"
    api_key = "${OPENAI_API_KEY}"

    [telemetry]
    enabled = true
    service_name = "chat-backend"
"""

from __future__ import annotations

import os
import re
import sys
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional

from .errors import ConfigError

if sys.version_info >= (3, 11):
    import tomllib as toml
else:
    import tomli as toml


def _expand_env_vars(value: Any) -> Any:
    """Recursively expand ${VAR} and $VAR environment variable references."""
    if isinstance(value, str):

        def replace_var(match):
            var_name = match.group(1) or match.group(2)
            return os.environ.get(var_name, match.group(0))

        pattern = r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}|\$([A-Za-z_][A-Za-z0-9_]*)"
        return re.sub(pattern, replace_var, value)
    elif isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_expand_env_vars(item) for item in value]
    else:
        return value


def _known_fields(cls: type, data: dict[str, Any], section: str) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise ConfigError(f"[{section}] must be a table")
    names = {f.name for f in fields(cls)}
    unknown = sorted(set(data) - names)
    if unknown:
        raise ConfigError(f"Unknown option(s) in [{section}]: {', '.join(unknown)}")
    return dict(data)


@dataclass
class MemoryConfig:
    """Budgets and thresholds for context assembly.

    Attributes:
        max_context_tokens: Hard budget for an assembled context
        sliding_window_size: Messages kept in full fidelity
        summary_threshold: Message count above which a summary is (re)generated
        compression_target: Target segment/history token ratio (advisory only)
        semantic_search_threshold: Minimum relevance for a segment to be retrieved
        update_timeout_ms: Deadline for the memory update step
        max_segments: Cap on retained segments per conversation
        retention_days: Age after which unpinned segments are evicted
        reserved_recent_messages: Raw tail always appended to a compressed context
        relevance_scan_limit: Segments examined per retrieval
        max_relevant_segments: Segments returned per retrieval
    """

    max_context_tokens: int = 8000
    sliding_window_size: int = 20
    summary_threshold: int = 30
    compression_target: float = 0.3
    semantic_search_threshold: float = 0.7
    update_timeout_ms: int = 3000
    max_segments: int = 20
    retention_days: int = 7
    reserved_recent_messages: int = 5
    relevance_scan_limit: int = 10
    max_relevant_segments: int = 3

    def __post_init__(self) -> None:
        for name in (
            "max_context_tokens",
            "sliding_window_size",
            "summary_threshold",
            "update_timeout_ms",
            "max_segments",
            "retention_days",
            "reserved_recent_messages",
            "relevance_scan_limit",
            "max_relevant_segments",
        ):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise ConfigError(f"{name} must be a positive integer, got {value!r}")
        if self.compression_target <= 0:
            raise ConfigError(
                f"compression_target must be positive, got {self.compression_target!r}"
            )
        if not 0.0 <= self.semantic_search_threshold <= 1.0:
            raise ConfigError(
                "semantic_search_threshold must be within [0, 1], "
                f"got {self.semantic_search_threshold!r}"
            )


@dataclass
class SummarizerConfig:
    """Model-backed summarizer configuration (OpenAI-compatible API)."""

    base_url: str
    model: str
    api_key: Optional[str] = None
    temperature: float = 0.3
    max_tokens: int = 256
    timeout_ms: int = 2500
    max_input_chars: int = 12000

    def __post_init__(self) -> None:
        if not self.base_url or not self.model:
            raise ConfigError("summarizer requires both base_url and model")
        if self.max_tokens <= 0 or self.timeout_ms <= 0 or self.max_input_chars <= 0:
            raise ConfigError("summarizer limits must be positive")


@dataclass
class TelemetryConfig:
    """OpenTelemetry export configuration."""

    enabled: bool = False
    service_name: str = "convmem"
    otlp_endpoint: Optional[str] = None


@dataclass
class Settings:
    """Complete convmem configuration."""

    memory: MemoryConfig = field(default_factory=MemoryConfig)
    summarizer: Optional[SummarizerConfig] = None
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)

    @classmethod
    def load(cls, path: Path = Path("convmem.toml")) -> Settings:
        """Load configuration from a convmem.toml file.

        A missing file yields the defaults. Expands ${VAR} environment
        variable references in string values.

        Raises:
            ConfigError: If the file cannot be parsed or holds invalid values
        """
        path = Path(path)
        if not path.exists():
            return cls()

        try:
            data = _expand_env_vars(toml.loads(path.read_text(encoding="utf-8")))
        except (OSError, toml.TOMLDecodeError) as e:
            raise ConfigError(f"Failed to parse {path}: {e}") from e

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        settings = cls()

        if "memory" in data:
            settings.memory = MemoryConfig(**_known_fields(MemoryConfig, data["memory"], "memory"))

        if "summarizer" in data:
            summarizer_data = _known_fields(SummarizerConfig, data["summarizer"], "summarizer")
            try:
                settings.summarizer = SummarizerConfig(**summarizer_data)
            except TypeError as e:
                raise ConfigError(f"Invalid [summarizer] section: {e}") from e

        if "telemetry" in data:
            settings.telemetry = TelemetryConfig(
                **_known_fields(TelemetryConfig, data["telemetry"], "telemetry")
            )

        return settings


__all__ = [
    "MemoryConfig",
    "SummarizerConfig",
    "TelemetryConfig",
    "Settings",
]
