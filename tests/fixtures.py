"""Shared test fixtures and utilities.

Builders for throwaway resumate projects plus helpers to run the CLI
in-process and capture what it prints.
"""

from __future__ import annotations

import datetime as _dt
import io
import tempfile
from contextlib import contextmanager, redirect_stderr, redirect_stdout
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence

REPO_ROOT = Path(__file__).resolve().parents[1]


# -----------------------------------------------------------------------------
# Path helpers
# -----------------------------------------------------------------------------


def repo_root() -> Path:
    return REPO_ROOT


def repo_path(*parts: str) -> Path:
    return REPO_ROOT.joinpath(*parts)


# -----------------------------------------------------------------------------
# Project builders
# -----------------------------------------------------------------------------


def make_config(root: Path):
    """Initialized project config rooted at ``root``."""
    from resumate.config import create_config

    cfg = create_config(root)
    cfg.resumate_dir.mkdir(parents=True, exist_ok=True)
    cfg.experiences_dir.mkdir(parents=True, exist_ok=True)
    return cfg


@contextmanager
def temp_project() -> Iterator:
    """Yield an initialized ResumateConfig in a temporary directory."""
    with tempfile.TemporaryDirectory() as tmp:
        yield make_config(Path(tmp))


def make_experience(
    cfg,
    name: str,
    draft: Optional[str] = None,
    refined: Optional[str] = None,
    archived: Optional[str] = None,
) -> Path:
    """Write an experience directory directly, bypassing the repository."""
    path = cfg.experiences_dir / name
    path.mkdir(parents=True, exist_ok=True)
    for filename, text in (("draft.md", draft), ("refined.md", refined), ("archived.md", archived)):
        if text is not None:
            (path / filename).write_text(text, encoding="utf-8")
    return path


def write_legacy(cfg, files: Dict[str, str]) -> None:
    """Create legacy bucket files: {'drafts/2024-06-15-x.md': 'text', ...}."""
    for rel, text in files.items():
        target = cfg.root_dir / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(text, encoding="utf-8")


def make_content(title: str = "Payment API", company: str = "Acme", role: str = "Backend", description=None):
    from resumate.models import ExperienceContent

    return ExperienceContent(title=title, company=company, role=role, description=description)


def d(text: str) -> _dt.date:
    return _dt.date.fromisoformat(text)


# -----------------------------------------------------------------------------
# Documents
# -----------------------------------------------------------------------------


KOREAN_DRAFT = "2024년 2월부터 6월까지 React, TypeScript를 사용하여 프로젝트를 진행했습니다"


def refined_document(title: str = "결제 시스템 개선", answers: Optional[Sequence[str]] = None) -> str:
    """A refined document with frontmatter, body and an answered Q&A section."""
    from resumate.prompts import QUESTION_TEMPLATES

    answers = list(answers or [
        "2024-03-01 ~ 2024-06-30",
        "- 응답 시간 50% 개선\n- 장애 건수 3배 감소",
        "작은 단위로 배포하는 것의 중요성을 배웠습니다",
        "TechCorp 결제 플랫폼",
        "React, Redis, Docker",
        "뿌듯했고 다음에는 모니터링을 강화할 계획입니다",
    ])
    qa = "".join(
        f"\n### Q: {t.korean}\n**A**: {a}\n" for t, a in zip(QUESTION_TEMPLATES, answers)
    )
    return (
        "---\n"
        f"title: {title}\n"
        "date: '2024-06-15'\n"
        "---\n"
        f"\n# {title}\n\n레거시 결제 API를 새 구조로 옮겼습니다.\n"
        "\n---\n\n## AI Refinement Questions\n"
        f"{qa}"
    )


# -----------------------------------------------------------------------------
# Output capture helpers
# -----------------------------------------------------------------------------


@contextmanager
def capture_stdout():
    """Context manager that captures stdout and yields a StringIO buffer."""
    buf = io.StringIO()
    with redirect_stdout(buf):
        yield buf


@dataclass
class CLIResult:
    code: int
    stdout: str
    stderr: str


def run_cli(argv: List[str], root: Optional[Path] = None) -> CLIResult:
    """Run ``resumate`` in-process; ``root`` is passed as ``--root``."""
    from resumate.cli.main import main

    full = (["--root", str(root)] if root is not None else []) + list(argv)
    out, err = io.StringIO(), io.StringIO()
    with redirect_stdout(out), redirect_stderr(err):
        code = main(full)
    return CLIResult(int(code), out.getvalue(), err.getvalue())
