"""Common helpers for building agentic capsules."""
from __future__ import annotations

from argparse import ArgumentParser
from typing import Iterable, List, Optional, Tuple


def section(title: str, body: str) -> str:
    """Render a simple '== title ==' section if body has non-whitespace content."""
    text = (body or "").strip()
    if not text:
        return ""
    return f"== {title} ==\n{text}\n"


def build_capsule(
    app_id: str,
    purpose: str,
    commands: Iterable[str],
    sections: Iterable[Tuple[str, str]],
) -> str:
    """Render a standard agentic capsule given metadata and sections."""
    out: List[str] = [f"agentic: {app_id}", f"purpose: {purpose}", "commands:"]
    out.extend(f"  - {cmd}" for cmd in commands)
    out.append("")
    for title, body in sections:
        sec = section(title, body)
        if sec:
            out.append(sec)
    return "\n".join(s for s in out if s.strip())


def _get_subparsers_action(parser: ArgumentParser) -> Optional[object]:
    for act in getattr(parser, "_actions", []):
        if act.__class__.__name__.endswith("SubParsersAction"):
            return act
    return None


def list_subcommands(parser: Optional[ArgumentParser]) -> List[str]:
    """Return the top-level subcommands for a parser."""
    if parser is None:
        return []
    act = _get_subparsers_action(parser)
    if not act:
        return []
    return sorted(getattr(act, "choices", {}).keys())


def build_cli_tree(parser: Optional[ArgumentParser]) -> str:
    """Return one line per subcommand with its long options."""
    if parser is None:
        return ""
    act = _get_subparsers_action(parser)
    if not act:
        return ""
    lines: List[str] = []
    for name, subp in sorted(getattr(act, "choices", {}).items()):
        opts = [
            s for a in getattr(subp, "_actions", [])
            for s in a.option_strings
            if s.startswith("--") and s != "--help"
        ]
        positionals = [
            a.dest for a in getattr(subp, "_actions", [])
            if not a.option_strings
        ]
        parts = [name] + [f"<{p}>" for p in positionals] + [f"[{o}]" for o in opts]
        lines.append("- " + " ".join(parts))
    return "\n".join(lines)
