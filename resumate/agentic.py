"""Agentic capsule builders for the resumate CLI."""
from __future__ import annotations

from functools import lru_cache
from typing import List, Tuple

from core.agentic import build_capsule as _build_capsule, build_cli_tree as _build_cli_tree

from .meta import APP_ID, PURPOSE


@lru_cache(maxsize=1)
def _get_parser():
    from .cli.main import app

    return app.build_parser()


def _flow_map() -> str:
    return "\n".join([
        "- Capture",
        '  - New draft: resumate add --title "Payment API redesign" --company Acme',
        "- Refine with an agent",
        "  - Question prompt (JSON): resumate refine <query> --prompt",
        "  - Store agent questions: resumate refine <query> --questions '<json array>'",
        "  - Next template question: resumate refine <query>",
        "  - Finish now: resumate refine <query> --complete",
        "- Archive",
        "  - Structuring prompt (JSON): resumate archive <query> --prompt",
        "  - Store agent reply: resumate archive <query> --content '<json object>'",
        "  - Rule-based fallback: resumate archive <query>",
        "- Legacy layout",
        "  - Preview: resumate migrate --dry-run",
        "  - Migrate, then clean up: resumate migrate -y && resumate migrate --cleanup",
    ])


def build_agentic_capsule() -> str:
    commands = [
        "help: resumate --help",
        "list: resumate list",
        "refine prompt: resumate refine 2024-06 --prompt",
        "archive prompt: resumate archive 2024-06 --prompt",
    ]
    sections: List[Tuple[str, str]] = []
    tree = _build_cli_tree(_get_parser())
    if tree:
        sections.append(("CLI Tree", tree))
    sections.append(("Flow Map", _flow_map()))
    return _build_capsule(APP_ID, PURPOSE, commands, sections)


def emit_agentic_context(fmt: str = "text", compact: bool = False) -> int:
    """Emit the agentic capsule; yaml wraps the same text under a single key."""
    capsule = build_agentic_capsule()
    if compact:
        capsule = "\n".join(line for line in capsule.splitlines() if not line.startswith("  - "))
    if fmt == "yaml":
        from core.yamlio import dump_yaml_text

        print(dump_yaml_text({"agentic": APP_ID, "capsule": capsule}), end="")
    else:
        print(capsule)
    return 0
