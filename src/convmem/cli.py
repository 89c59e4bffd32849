from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Optional

from platformdirs import user_data_dir
from pydantic import ValidationError

from .assembler import ContextAssembler
from .config import Settings
from .errors import ConfigError
from .snapshot import load_snapshots, save_snapshots
from .summarizer import LLMSummarizer
from .telemetry import init_telemetry, shutdown_telemetry
from .types import Message

SNAPSHOT_FILE = "memory.json"


def _snapshot_path(args) -> Path:
    base = Path(args.snapshot_dir) if args.snapshot_dir else Path(user_data_dir("convmem"))
    return base / SNAPSHOT_FILE


def _build_assembler(settings: Settings) -> ContextAssembler:
    summarizer = LLMSummarizer(settings.summarizer) if settings.summarizer else None
    return ContextAssembler(settings.memory, summarizer=summarizer)


def _load_assembler(args) -> ContextAssembler:
    settings = Settings.load(Path(args.config))
    if settings.telemetry.enabled:
        init_telemetry(settings.telemetry)
    assembler = _build_assembler(settings)
    assembler.import_all(load_snapshots(_snapshot_path(args)))
    return assembler


def _read_conversation(path: Path, conversation_id: Optional[str]) -> tuple[str, list[Message]]:
    """Read {"conversation_id": ..., "messages": [...]} or a bare message list."""
    data: Any = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, list):
        raw_messages = data
        file_id = None
    else:
        raw_messages = data.get("messages", [])
        file_id = data.get("conversation_id")

    cid = conversation_id or file_id or path.stem
    return cid, [Message.from_dict(m) for m in raw_messages]


def cmd_context(args) -> int:
    """Assemble context for a conversation file and persist its memory."""
    assembler = _load_assembler(args)
    conversation_id, messages = _read_conversation(Path(args.file), args.conversation_id)

    context = asyncio.run(
        assembler.get_optimized_context(conversation_id, messages, args.query)
    )

    save_snapshots(_snapshot_path(args), assembler.export_all())
    print(json.dumps([m.to_dict() for m in context], indent=2))
    return 0


def cmd_stats(args) -> int:
    """Print the memory stats record for a conversation."""
    assembler = _load_assembler(args)
    stats = assembler.get_stats(args.conversation_id)
    if stats is None:
        print(f"[convmem] No memory for conversation {args.conversation_id}", file=sys.stderr)
        return 1
    print(json.dumps(stats.to_dict(), indent=2))
    return 0


def cmd_clear(args) -> int:
    """Drop a conversation's stored memory."""
    assembler = _load_assembler(args)
    assembler.clear_memory(args.conversation_id)
    save_snapshots(_snapshot_path(args), assembler.export_all())
    print(f"[convmem] Cleared memory for conversation {args.conversation_id}")
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="convmem", description="Conversation memory CLI")
    p.add_argument("--config", default="convmem.toml", help="Path to convmem.toml")
    p.add_argument(
        "--snapshot-dir",
        default=None,
        help="Directory holding memory snapshots (default: user data dir)",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    sc = sub.add_parser("context", help="Assemble bounded context for a conversation JSON file")
    sc.add_argument("file", help="Conversation JSON file")
    sc.add_argument("--query", default=None, help="Current user query")
    sc.add_argument("--conversation-id", default=None, help="Override the conversation id")
    sc.set_defaults(func=cmd_context)

    ss = sub.add_parser("stats", help="Show memory stats for a conversation")
    ss.add_argument("conversation_id")
    ss.set_defaults(func=cmd_stats)

    sx = sub.add_parser("clear", help="Clear stored memory for a conversation")
    sx.add_argument("conversation_id")
    sx.set_defaults(func=cmd_clear)

    args = p.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        return args.func(args)
    except (ConfigError, ValidationError, ValueError, KeyError, OSError) as e:
        print(f"[convmem] Error: {e}", file=sys.stderr)
        return 2
    finally:
        shutdown_telemetry()


if __name__ == "__main__":
    sys.exit(main())
