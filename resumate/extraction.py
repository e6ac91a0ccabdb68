"""Rule-based archive extraction, used when no agent reply is supplied.

Everything here is best effort: a field that cannot be pulled out of the
Q&A answers is left out of the archived document rather than reported.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from core.date_utils import MONTH_MAP, is_valid_iso_date

from .markdown import extract_title, stringify_markdown
from .models import QAPair

KOREAN_DATE_RE = re.compile(r"(\d{4})년\s*(\d{1,2})월\s*(\d{1,2})일")
ISO_DATE_FIND_RE = re.compile(r"(\d{4}-\d{2}-\d{2})")
ENGLISH_DATE_RE = re.compile(
    r"(January|February|March|April|May|June|July|August|September|October|November|December)"
    r"\s+(\d{1,2}),?\s+(\d{4})",
    re.I,
)
RANGE_SPLIT_RE = re.compile(r"부터|까지|~|–|—|\bto\b")
BULLET_RE = re.compile(r"^[-*]\s+(.+)")
LIST_SPLIT_RE = re.compile(r"[,，]")
LEADING_HEADING_RE = re.compile(r"^#.*\n\n?")

# Question keywords that identify which field an answer belongs to.
QA_FIELD_KEYWORDS: Dict[str, List[str]] = {
    "duration": ["기간", "시작일", "종료일", "timeframe", "duration"],
    "achievements": ["성과", "achievement", "지표", "metric"],
    "technologies": ["기술", "도구", "technolog", "tool"],
    "learnings": ["배운", "learning", "교훈"],
    "reflections": ["느끼", "reflection", "소감", "계획"],
    "project": ["프로젝트", "회사", "project", "company"],
}

TAG_MAP: Dict[str, List[str]] = {
    "react": ["frontend"],
    "vue": ["frontend"],
    "angular": ["frontend"],
    "next.js": ["frontend", "fullstack"],
    "node.js": ["backend"],
    "express": ["backend"],
    "python": ["backend"],
    "django": ["backend"],
    "docker": ["devops"],
    "kubernetes": ["devops"],
    "redis": ["database", "caching"],
    "postgresql": ["database"],
    "mongodb": ["database"],
    "typescript": ["typescript"],
}


def _iso(year: str, month: str, day: str) -> str:
    return f"{year}-{int(month):02d}-{int(day):02d}"


def parse_korean_date(text: str) -> Optional[str]:
    """'2024년 3월 5일' -> '2024-03-05'."""
    m = KOREAN_DATE_RE.search(text)
    return _iso(*m.groups()) if m else None


def parse_date_flexible(text: str) -> Optional[str]:
    """ISO, Korean or 'March 5, 2024' style dates to ISO; None otherwise."""
    trimmed = text.strip()
    if is_valid_iso_date(trimmed):
        return trimmed
    korean = parse_korean_date(trimmed)
    if korean:
        return korean
    m = ENGLISH_DATE_RE.search(trimmed)
    if m:
        month = MONTH_MAP[m.group(1).lower()]
        return _iso(m.group(3), str(month), m.group(2))
    return None


def parse_duration_from_text(text: str) -> Optional[Dict[str, str]]:
    """Find a start/end pair in free text, or None."""
    korean = KOREAN_DATE_RE.findall(text)
    if len(korean) >= 2:
        return {"start": _iso(*korean[0]), "end": _iso(*korean[1])}

    iso = ISO_DATE_FIND_RE.findall(text)
    if len(iso) >= 2:
        return {"start": iso[0], "end": iso[1]}

    parts = RANGE_SPLIT_RE.split(text)
    if len(parts) >= 2:
        start = parse_date_flexible(parts[0])
        end = parse_date_flexible(parts[-1])
        if start and end:
            return {"start": start, "end": end}
    return None


def parse_list(text: str) -> List[str]:
    """Bullet lines if there are any, otherwise comma-separated items."""
    items = [m.group(1).strip() for m in (BULLET_RE.match(line) for line in text.split("\n")) if m]
    if items:
        return items
    return [s.strip() for s in LIST_SPLIT_RE.split(text) if s.strip()]


def generate_tags(technologies: Sequence[str]) -> List[str]:
    tags: List[str] = []
    for tech in technologies:
        for tag in TAG_MAP.get(tech.lower(), []):
            if tag not in tags:
                tags.append(tag)
    return tags


def extract_field_from_qa(pairs: Sequence[QAPair], keywords: Sequence[str]) -> Optional[str]:
    for pair in pairs:
        question = pair.question.lower()
        if pair.answer and any(kw in question for kw in keywords):
            return pair.answer
    return None


@dataclass
class ExtractedArchive:
    title: str
    date: str
    duration: Optional[Dict[str, str]] = None
    project: Optional[str] = None
    technologies: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    achievements: List[str] = field(default_factory=list)
    learnings: Optional[str] = None
    reflections: Optional[str] = None

    def completeness_input(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "duration": self.duration,
            "achievements": self.achievements,
            "technologies": self.technologies,
            "learnings": self.learnings,
            "project": self.project,
            "reflections": self.reflections,
        }


def extract_archive_data(original_content: str, pairs: Sequence[QAPair], date_str: str) -> ExtractedArchive:
    def answer(name: str) -> Optional[str]:
        return extract_field_from_qa(pairs, QA_FIELD_KEYWORDS[name])

    duration_text = answer("duration")
    achievements_text = answer("achievements")
    tech_text = answer("technologies")
    technologies = parse_list(tech_text) if tech_text else []
    return ExtractedArchive(
        title=extract_title(original_content),
        date=date_str,
        duration=parse_duration_from_text(duration_text) if duration_text else None,
        project=answer("project"),
        technologies=technologies,
        tags=generate_tags(technologies),
        achievements=parse_list(achievements_text) if achievements_text else [],
        learnings=answer("learnings"),
        reflections=answer("reflections"),
    )


def render_fallback_archive(data: ExtractedArchive, original_content: str, completeness: Any = None) -> str:
    """Archived document from extracted fields; missing fields are simply omitted."""
    metadata: Dict[str, Any] = {"title": data.title, "date": data.date}
    if data.duration:
        metadata["duration"] = dict(data.duration)
    if data.project:
        metadata["project"] = data.project
    if data.technologies:
        metadata["technologies"] = list(data.technologies)
    if data.tags:
        metadata["tags"] = list(data.tags)
    if data.achievements:
        metadata["achievements"] = list(data.achievements)
    if data.learnings:
        metadata["learnings"] = data.learnings
    if data.reflections:
        metadata["reflections"] = data.reflections
    if completeness is not None:
        metadata["completeness"] = {
            "score": completeness.score,
            "suggestions": list(completeness.suggestions),
        }

    context = LEADING_HEADING_RE.sub("", original_content.strip(), count=1).strip()
    body = f"\n# Detailed Context\n\n{context}\n"
    if data.achievements:
        body += "\n## Achievements\n\n" + "".join(f"- {a}\n" for a in data.achievements)
    if data.learnings:
        body += f"\n## Key Learnings\n\n{data.learnings}\n"
    return stringify_markdown(body, metadata)
