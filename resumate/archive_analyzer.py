"""Refined-document analysis and weighted completeness scoring."""
from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from .draft_analyzer import detect_experience_type, detect_language
from .errors import ParseError
from .markdown import extract_qa_section, extract_title, parse_markdown, parse_qa_pairs
from .models import ArchiveAnalysis, CompletenessAssessment, FieldCompleteness

FIELD_WEIGHTS: Dict[str, int] = {
    "title": 10,
    "duration": 20,
    "achievements": 25,
    "technologies": 15,
    "learnings": 15,
    "project": 10,
    "reflections": 5,
}
TOTAL_WEIGHT = sum(FIELD_WEIGHTS.values())

PRESENT_QUALITY = 0.7
DETAILED_LEARNINGS_LENGTH = 50
MANY_TECHNOLOGIES = 3
QUANTITATIVE_RE = re.compile(r"\d+\s*%|\d+배|\d+\s*times", re.I)

SUGGESTIONS: Dict[str, str] = {
    "title": "제목을 추가하면 경험을 한눈에 파악할 수 있습니다",
    "duration": "기간 정보를 추가하면 이력서에서 경험의 맥락을 명확히 전달할 수 있습니다",
    "achievements_quantify": (
        '성과에 구체적인 수치를 추가하면 이력서 작성 시 더 효과적입니다 (예: "50% 개선", "3배 증가")'
    ),
    "achievements": "주요 성과나 결과를 추가하면 이력서의 설득력이 높아집니다",
    "technologies": "사용한 기술 스택을 명시하면 기술 역량을 효과적으로 어필할 수 있습니다",
    "learnings": "배운 점을 기록하면 성장 과정을 보여줄 수 있습니다",
    "project": "프로젝트나 회사 정보를 추가하면 경험의 맥락이 명확해집니다",
    "reflections": "소감이나 향후 계획을 기록하면 경험의 의미를 더 잘 전달할 수 있습니다",
}


def analyze_refined(content: str, date_str: str) -> ArchiveAnalysis:
    """Summarize a refined document for archive structuring. Never raises."""
    try:
        parsed = parse_markdown(content)
        body, title_meta = parsed.body, parsed.metadata.get_text("title")
    except ParseError:
        body, title_meta = content, None

    qa = extract_qa_section(body)
    original = qa.original_content if qa else body
    pairs = parse_qa_pairs(qa.qa_section) if qa else []
    return ArchiveAnalysis(
        title=title_meta or extract_title(original),
        date_str=date_str,
        original_content=original,
        qa_pairs=pairs,
        language=detect_language(original),
        experience_type=detect_experience_type(original),
    )


@dataclass
class CompletenessInput:
    title: Optional[str] = None
    duration: Any = None
    achievements: List[Any] = field(default_factory=list)
    technologies: List[Any] = field(default_factory=list)
    learnings: Optional[str] = None
    project: Optional[str] = None
    reflections: Optional[str] = None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CompletenessInput":
        return cls(
            title=data.get("title"),
            duration=data.get("duration"),
            achievements=list(data.get("achievements") or []),
            technologies=list(data.get("technologies") or []),
            learnings=data.get("learnings"),
            project=data.get("project"),
            reflections=data.get("reflections"),
        )


def _has_text(value: Optional[str]) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _duration_quality(duration: Any) -> float:
    # An empty mapping still counts as a partially known duration.
    if duration is None or duration == "":
        return 0.0
    if isinstance(duration, Mapping) and duration.get("start") and duration.get("end"):
        return 1.0
    return PRESENT_QUALITY


def _is_quantitative(items: Sequence[Any]) -> bool:
    texts = (a if isinstance(a, str) else json.dumps(a, ensure_ascii=False, default=str) for a in items)
    return any(QUANTITATIVE_RE.search(t) for t in texts)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def calculate_completeness(data: Union[CompletenessInput, Mapping[str, Any]]) -> CompletenessAssessment:
    """Weighted 0-100 score plus one advisory per weak field, in fixed field order."""
    if not isinstance(data, CompletenessInput):
        data = CompletenessInput.from_mapping(data)

    quality: Dict[str, float] = {}
    suggestions: List[str] = []

    quality["title"] = 1.0 if _has_text(data.title) else 0.0
    quality["duration"] = _duration_quality(data.duration)

    if data.achievements:
        if _is_quantitative(data.achievements):
            quality["achievements"] = 1.0
        else:
            quality["achievements"] = PRESENT_QUALITY
    else:
        quality["achievements"] = 0.0

    if data.technologies:
        quality["technologies"] = 1.0 if len(data.technologies) > MANY_TECHNOLOGIES else PRESENT_QUALITY
    else:
        quality["technologies"] = 0.0

    if _has_text(data.learnings):
        quality["learnings"] = 1.0 if len(data.learnings.strip()) > DETAILED_LEARNINGS_LENGTH else PRESENT_QUALITY
    else:
        quality["learnings"] = 0.0

    quality["project"] = 1.0 if _has_text(data.project) else 0.0
    quality["reflections"] = 1.0 if _has_text(data.reflections) else 0.0

    breakdown: Dict[str, FieldCompleteness] = {}
    weighted = 0.0
    for name, weight in FIELD_WEIGHTS.items():
        q = quality[name]
        breakdown[name] = FieldCompleteness(present=q > 0, weight=weight, quality_score=q)
        weighted += weight * q
        if q == 0:
            suggestions.append(SUGGESTIONS[name])
        elif name == "achievements" and q < 1.0:
            suggestions.append(SUGGESTIONS["achievements_quantify"])

    score = round_half_up(weighted / TOTAL_WEIGHT * 100)
    return CompletenessAssessment(score=score, breakdown=breakdown, suggestions=suggestions)
