"""Markdown + YAML frontmatter codec and Q&A section helpers.

A document is an optional ``---`` delimited YAML block followed by a
Markdown body. During refinement the body carries a Q&A section::

    # Title
    ...draft text...

    ---

    ## AI Refinement Questions

    ### Q: question text
    **A**: answer text
"""
from __future__ import annotations

import datetime as _dt
import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from core.yamlio import YAMLError, dump_yaml_text, load_yaml_text

from .errors import ParseError
from .models import QAPair

QA_HEADER = "## AI Refinement Questions"
ANSWER_PLACEHOLDER = "_[Please provide your answer]_"
TITLE_FALLBACK_LENGTH = 50

FRONTMATTER_RE = re.compile(r"\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)", re.S | re.M)
SEPARATOR_RE = re.compile(r"^---[ \t]*$", re.M)
HEADING_RE = re.compile(r"^#\s+(.+)$")
QUESTION_RE = re.compile(r"### Q:\s*(.+)")
ANSWER_RE = re.compile(r"\*\*A\*\*:\s*(.*)", re.S)


class Metadata(Mapping):
    """Read-only view over a frontmatter mapping with typed accessors.

    Values are whatever YAML produced: str, int, float, bool, date, list or
    nested mapping. Accessors coerce to the shape the caller needs instead of
    handing back untyped values.
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = dict(data or {})

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Metadata({self._data!r})"

    def has_value(self, key: str) -> bool:
        """True when the key is set to something other than None or ''."""
        value = self._data.get(key)
        return value is not None and value != ""

    def get_text(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._data.get(key)
        if value is None or value == "":
            return default
        return scalar_text(value)

    def get_list(self, key: str) -> List[str]:
        value = self._data.get(key)
        if value is None or value == "":
            return []
        if isinstance(value, (list, tuple)):
            return [scalar_text(v) for v in value if v is not None]
        return [scalar_text(value)]

    def get_mapping(self, key: str) -> Dict[str, Any]:
        value = self._data.get(key)
        return dict(value) if isinstance(value, dict) else {}

    def to_dict(self) -> Dict[str, Any]:
        return dict(self._data)


def scalar_text(value: Any) -> str:
    """Render a frontmatter value as text (dates as ISO, containers as JSON)."""
    if isinstance(value, str):
        return value
    if isinstance(value, (_dt.date, _dt.datetime)):
        return value.isoformat()
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, ensure_ascii=False, default=str)
    return str(value)


@dataclass
class ParsedDocument:
    metadata: Metadata = field(default_factory=Metadata)
    body: str = ""


@dataclass
class QASection:
    original_content: str
    qa_section: str


def parse_markdown(raw: str, source: Optional[str] = None) -> ParsedDocument:
    """Split frontmatter from body.

    Raises ParseError when the frontmatter is not valid YAML or not a mapping.
    """
    m = FRONTMATTER_RE.match(raw)
    if not m:
        return ParsedDocument(Metadata(), raw)
    try:
        data = load_yaml_text(m.group(1))
    except YAMLError as exc:
        raise ParseError(
            f"Malformed frontmatter: {exc}",
            hint="Fix the YAML block between the leading '---' lines.",
            source=source,
        ) from exc
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ParseError(
            "Frontmatter must be a mapping of keys to values",
            hint="Use 'key: value' lines between the leading '---' lines.",
            source=source,
        )
    return ParsedDocument(Metadata(data), raw[m.end():])


def stringify_markdown(body: str, metadata: Optional[Mapping] = None) -> str:
    """Inverse of parse_markdown; empty metadata emits the body alone."""
    if body and not body.endswith("\n"):
        body += "\n"
    data = metadata.to_dict() if isinstance(metadata, Metadata) else dict(metadata or {})
    if not data:
        return body
    return f"---\n{dump_yaml_text(data)}---\n{body}"


def extract_title(body: str) -> str:
    lines = (body or "").strip().split("\n")
    for line in lines:
        m = HEADING_RE.match(line)
        if m:
            return m.group(1).strip()
    first = lines[0].strip() if lines else ""
    return first[:TITLE_FALLBACK_LENGTH]


def extract_qa_section(body: str) -> Optional[QASection]:
    """Split a body at the ``---`` line preceding the Q&A header.

    Returns None (not an error) when there is no Q&A section yet.
    """
    header_at = body.find(QA_HEADER)
    if header_at < 0:
        return None
    separator = None
    for m in SEPARATOR_RE.finditer(body, 0, header_at):
        separator = m
    if separator is None:
        return None
    return QASection(
        original_content=body[: separator.start()].strip(),
        qa_section=body[separator.end():].strip(),
    )


def parse_qa_pairs(qa_block: str) -> List[QAPair]:
    pairs: List[QAPair] = []
    matches = list(QUESTION_RE.finditer(qa_block))
    for i, m in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(qa_block)
        block = qa_block[m.end():end].strip()
        answer: Optional[str] = None
        am = ANSWER_RE.search(block)
        if am:
            raw = am.group(1).strip()
            if raw and raw != ANSWER_PLACEHOLDER:
                answer = raw
        pairs.append(QAPair(question=m.group(1).strip(), answer=answer))
    return pairs


def format_qa_section(pairs: List[QAPair], next_question: Optional[str] = None) -> str:
    """Render the Q&A block (header included); unanswered slots get the placeholder."""
    out = [QA_HEADER + "\n"]
    for pair in pairs:
        out.append(f"\n### Q: {pair.question}\n")
        out.append(f"**A**: {pair.answer or ANSWER_PLACEHOLDER}\n")
    if next_question:
        out.append(f"\n### Q: {next_question}\n")
        out.append(f"**A**: {ANSWER_PLACEHOLDER}\n")
    return "".join(out)


def build_initial_qa_section(question: str) -> str:
    return "\n---\n\n" + format_qa_section([], next_question=question)


def join_qa_section(original_content: str, qa_section: str) -> str:
    """Re-attach a rendered Q&A block to the original body text."""
    return f"{original_content.rstrip()}\n\n---\n\n{qa_section.rstrip()}\n"
