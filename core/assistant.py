"""Agentic flag support shared by CLIs that hand work to an LLM agent."""
from __future__ import annotations

import argparse
from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass
class BaseAssistant:
    """Adds ``--agentic`` flags and emits the context capsule on request."""

    app_id: str
    fallback_banner: str

    def add_agentic_flags(self, parser: argparse.ArgumentParser) -> argparse.ArgumentParser:
        parser.add_argument(
            "--agentic",
            action="store_true",
            help="Emit compact project context for LLM agents and exit",
        )
        parser.add_argument(
            "--agentic-format",
            choices=["text", "yaml"],
            default="text",
            help="Preferred output format for --agentic capsule (default text)",
        )
        parser.add_argument(
            "--agentic-compact",
            action="store_true",
            help="Emit a more compact agentic capsule",
        )
        return parser

    def maybe_emit_agentic(self, args: Any, emit_func: Callable[[str, bool], int]) -> Optional[int]:
        """Return the emit exit code when ``--agentic`` was given, else None."""
        if not getattr(args, "agentic", False):
            return None
        fmt = getattr(args, "agentic_format", "text")
        compact = bool(getattr(args, "agentic_compact", False))
        try:
            return emit_func(fmt, compact)
        except (OSError, ValueError):
            print(self.fallback_banner)
            return 0
