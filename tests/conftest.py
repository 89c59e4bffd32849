"""Test fixtures and configuration for convmem tests.

Test Structure:
    tests/
    ├── conftest.py          # Shared fixtures
    ├── helpers.py           # Message builders shared by test modules
    └── unit/                # Unit tests (no network, fake collaborators)

Running tests:
    pytest tests/unit -v
"""

import sys
from pathlib import Path

import pytest

# Add tests directory to path for imports
tests_dir = Path(__file__).parent
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from convmem import ContextAssembler, MemoryConfig, MemoryStore  # noqa: E402


@pytest.fixture
def config() -> MemoryConfig:
    """Default memory configuration."""
    return MemoryConfig()


@pytest.fixture
def store(config: MemoryConfig) -> MemoryStore:
    """Fresh memory store with default collaborators."""
    return MemoryStore(config)


@pytest.fixture
def assembler(config: MemoryConfig) -> ContextAssembler:
    """Fresh assembler with default collaborators."""
    return ContextAssembler(config)
