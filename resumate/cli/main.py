"""Resumate CLI

Commands:
  init     Create a resumate project (.resumate/ + experiences/)
  add      Create a new experience draft
  list     List experiences and their versions
  refine   Q&A refinement of a draft, or prompt/reply hand-off with an agent
  archive  Structure a refined experience into its archived version
  migrate  Convert the legacy drafts/in-progress/archive layout

Agent payloads (--prompt) are JSON on stdout; errors go to stderr as
``Error: ...`` with an optional ``Hint: ...`` and exit status 1.
"""
from __future__ import annotations

import argparse
import sys
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from core.applog import AppLogger
from core.assistant import BaseAssistant
from core.cli_errors import ExitCode
from core.cli_framework import CLIApp
from core.date_utils import parse_iso_date
from core.pipeline import run_pipeline

from .. import __version__
from ..config import create_config, resolve_root
from ..errors import ValidationError
from ..meta import APP_ID, PURPOSE
from ..pipeline import (
    MIGRATE_CLEANUP,
    MIGRATE_DRY_RUN,
    MIGRATE_RESUME,
    MIGRATE_ROLLBACK,
    MIGRATE_RUN,
    REFINE_COMPLETE,
    REFINE_PROMPT,
    REFINE_QUESTIONS,
    REFINE_STEP,
    AddProcessor,
    AddProducer,
    AddRequest,
    ArchiveProcessor,
    ArchiveProducer,
    ArchiveRequest,
    InitProcessor,
    InitProducer,
    InitRequest,
    ListProcessor,
    ListProducer,
    ListRequest,
    MigrateProcessor,
    MigrateProducer,
    MigrateRequest,
    RefineProcessor,
    RefineProducer,
    RefineRequest,
)

JOURNAL_FILENAME = "commands.jsonl"

app = CLIApp(
    "resumate",
    "Turn diary notes into resume-ready experience records.",
    version=__version__,
    epilog="Run 'resumate <command> --help' for command options.",
)

assistant = BaseAssistant(APP_ID, f"agentic: {APP_ID}\npurpose: {PURPOSE}")


@lru_cache(maxsize=1)
def _lazy_agentic():
    from .. import agentic as _agentic

    return _agentic.emit_agentic_context


def _config(args):
    return create_config(getattr(args, "root", None))


def _read_json_arg(value: Optional[str]) -> Optional[str]:
    """``@path`` reads the JSON from a file, ``-`` from stdin; anything else is literal."""
    if value is None:
        return None
    if value == "-":
        return sys.stdin.read()
    if value.startswith("@"):
        path = Path(value[1:])
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ValidationError(f"Cannot read JSON file {path}: {exc}") from exc
    return value


def _confirm(args, question: str) -> bool:
    if getattr(args, "yes", False):
        return True
    try:
        answer = input(f"{question} [y/N] ")
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")


@app.command("init", help="Create a resumate project directory")
@app.argument("projectname", help="Directory to create under --root (or the current directory)")
def cmd_init(args) -> int:
    request = InitRequest(parent=resolve_root(getattr(args, "root", None)), projectname=args.projectname)
    return run_pipeline(request, InitProcessor(), InitProducer(args._output))


@app.command("add", help="Create a new experience draft")
@app.argument("--title", required=True, help="Experience title")
@app.argument("--slug", help="Directory slug (default: derived from the title)")
@app.argument("--date", help="Experience date YYYY-MM-DD (default: today)")
@app.argument("--company", default="", help="Company or organization")
@app.argument("--role", default="", help="Your role")
@app.argument("--description", help="Initial description for the draft body")
def cmd_add(args) -> int:
    date = None
    if args.date:
        date = parse_iso_date(args.date)
        if date is None:
            raise ValidationError(f"Invalid date: {args.date}", hint="Use YYYY-MM-DD, e.g. --date 2024-06-15.")
    request = AddRequest(
        config=_config(args),
        title=args.title,
        slug=args.slug,
        date=date,
        company=args.company,
        role=args.role,
        description=args.description,
    )
    return run_pipeline(request, AddProcessor(), AddProducer(args._output))


@app.command("list", help="List experiences and their versions", aliases=["ls"])
@app.argument("--json", action="store_true", help="Emit JSON instead of a table")
def cmd_list(args) -> int:
    request = ListRequest(config=_config(args), emit_json=bool(args.json))
    return run_pipeline(request, ListProcessor(), ListProducer(args._output))


@app.command("refine", help="Refine a draft through Q&A or an agent prompt")
@app.argument("query", help="Experience name, date (2024-06-15, 2024-06, 2024) or keyword")
@app.argument("--prompt", action="store_true", help="Emit the question-generation prompt as JSON")
@app.argument("--deep", action="store_true", help="Like --prompt, but ask about every field")
@app.argument("--questions", metavar="JSON", help="Store agent questions (JSON array, @file or - for stdin)")
@app.argument("--complete", action="store_true", help="Write refined.md from the current draft now")
def cmd_refine(args) -> int:
    chosen = [flag for flag in ("prompt", "deep", "questions", "complete") if getattr(args, flag)]
    if len(chosen) > 1 and set(chosen) != {"prompt", "deep"}:
        raise ValidationError("--prompt/--deep, --questions and --complete are mutually exclusive")
    if args.prompt or args.deep:
        mode = REFINE_PROMPT
    elif args.questions is not None:
        mode = REFINE_QUESTIONS
    elif args.complete:
        mode = REFINE_COMPLETE
    else:
        mode = REFINE_STEP
    request = RefineRequest(
        config=_config(args),
        query=args.query,
        mode=mode,
        deep=bool(args.deep),
        questions_json=_read_json_arg(args.questions),
    )
    return run_pipeline(request, RefineProcessor(), RefineProducer(args._output))


@app.command("archive", help="Create the archived version of a refined experience")
@app.argument("query", help="Experience name, date or keyword")
@app.argument("--prompt", action="store_true", help="Emit the archive-structuring prompt as JSON")
@app.argument("--content", metavar="JSON", help="Store the agent's structured reply (JSON, @file or -)")
def cmd_archive(args) -> int:
    if args.prompt and args.content is not None:
        raise ValidationError("--prompt and --content are mutually exclusive")
    request = ArchiveRequest(
        config=_config(args),
        query=args.query,
        prompt=bool(args.prompt),
        content_json=_read_json_arg(args.content),
    )
    return run_pipeline(request, ArchiveProcessor(), ArchiveProducer(args._output))


@app.command("migrate", help="Convert the legacy drafts/in-progress/archive layout")
@app.argument("--dry-run", action="store_true", help="Show the plan without writing anything")
@app.argument("--cleanup", nargs="?", const="", metavar="ID",
              help="Delete legacy directories after a completed migration (default: latest)")
@app.argument("--resume", metavar="ID", help="Retry pending/failed experiences of a migration")
@app.argument("--rollback", metavar="ID", help="Undo a migration and restore legacy directories")
@app.argument("--backup-dir", help="Backup location (default: <root>/.backup/<migration-id>)")
@app.argument("-y", "--yes", action="store_true", help="Do not ask for confirmation")
def cmd_migrate(args) -> int:
    actions: List[str] = []
    if args.dry_run:
        actions.append(MIGRATE_DRY_RUN)
    if args.cleanup is not None:
        actions.append(MIGRATE_CLEANUP)
    if args.resume:
        actions.append(MIGRATE_RESUME)
    if args.rollback:
        actions.append(MIGRATE_ROLLBACK)
    if len(actions) > 1:
        raise ValidationError("--dry-run, --cleanup, --resume and --rollback are mutually exclusive")
    action = actions[0] if actions else MIGRATE_RUN

    prompts = {
        MIGRATE_RUN: "Migrate legacy directories into experiences/?",
        MIGRATE_CLEANUP: "Delete the legacy drafts/, in-progress/ and archive/ directories?",
        MIGRATE_ROLLBACK: f"Roll back {args.rollback} and restore legacy directories?",
    }
    if action in prompts and not _confirm(args, prompts[action]):
        args._output.print("Aborted.")
        return ExitCode.ERROR

    request = MigrateRequest(
        config=_config(args),
        action=action,
        migration_id=args.cleanup or args.resume or args.rollback or None,
        backup_dir=Path(args.backup_dir) if args.backup_dir else None,
    )
    processor, producer = MigrateProcessor(), MigrateProducer(args._output)
    envelope = processor.process(request)
    producer.produce(envelope)
    if not envelope.ok():
        return int((envelope.diagnostics or {}).get("code", ExitCode.ERROR))
    result = envelope.unwrap().result
    if result is not None and not result.success:
        return ExitCode.ERROR
    return ExitCode.SUCCESS


def _journal(args: argparse.Namespace) -> Optional[AppLogger]:
    cfg = _config(args)
    if not cfg.is_initialized() or not cfg.log_commands:
        return None
    return AppLogger(cfg.logs_dir / JOURNAL_FILENAME)


def main(argv: Optional[List[str]] = None) -> int:
    return app.run(
        argv,
        assistant=assistant,
        emit_agentic=lambda fmt, compact: _lazy_agentic()(fmt, compact),
        journal_factory=_journal,
    )


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
