"""Heuristic field, language and experience-type detection for drafts.

Detection policy is data: ``FIELD_PATTERNS`` / ``FRONTMATTER_FIELD_MAP`` /
``EXPERIENCE_TYPE_KEYWORDS`` can be swapped or extended without touching
the control flow below.
"""
from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Mapping, Optional, Pattern

from .models import DraftAnalysis, ExperienceType, FieldDetection, Language

CORE_FIELDS = ["duration", "achievements", "learnings", "project", "technologies", "reflections"]

CONFIDENCE_THRESHOLD = 0.5
FRONTMATTER_CONFIDENCE = 0.9
BODY_CONFIDENCE = 0.7
EVIDENCE_CONTEXT = 10
EVIDENCE_MAX_LENGTH = 50
EXPERIENCE_TYPE_THRESHOLD = 2


def _rx(*patterns: str, flags: int = 0) -> List[Pattern[str]]:
    return [re.compile(p, flags) for p in patterns]


FIELD_PATTERNS: Dict[str, List[Pattern[str]]] = {
    "duration": [
        *_rx(
            r"\d{4}년\s*\d{1,2}월",          # 2024년 2월
            r"\d{4}\s*[-~]\s*\d{4}",          # 2024-2025
            r"\d{1,2}월\s*부터",               # 2월부터
            r"부터\s*.*까지",
        ),
        *_rx(r"from\s+\w+\s+\d{4}", flags=re.I),
        *_rx(r"\d{4}-\d{2}(-\d{2})?"),
        *_rx(
            r"january|february|march|april|may|june|july|august|september|october|november|december",
            r"\d+\s*(months?|years?|weeks?)",
            flags=re.I,
        ),
        *_rx(r"\d+개월"),
    ],
    "achievements": [
        *_rx(r"\d+\s*%", r"감소|증가|향상|개선|달성|절감"),
        *_rx(
            r"reduced?\s.*\d|improved?\s.*\d|increased?\s.*\d|achieved?\s.*\d|decreased?\s.*\d",
            flags=re.I,
        ),
        *_rx(r"성과|결과|매출|수익|효율"),
        *_rx(r"\d+\s*(배|times|x)\s", flags=re.I),
        *_rx(r"\d+\s*(만|억|천)"),
    ],
    "learnings": [
        *_rx(r"배운|배웠|깨달|교훈|학습"),
        *_rx(r"learn|lesson|realiz|understand|insight", flags=re.I),
        *_rx(r"중요성|필요성", r"통해\s*.*(알게|깨닫)"),
    ],
    "project": [
        *_rx(r"프로젝트|회사|기업|팀|부서"),
        *_rx(r"project|company|team|organization|department|corp|inc\b", flags=re.I),
        *_rx(r"에서\s*(근무|일|개발|진행)"),
    ],
    "technologies": _rx(
        r"react|vue|angular|node|python|java|typescript|javascript|go|rust|swift|kotlin",
        r"docker|kubernetes|aws|gcp|azure|redis|mongodb|postgresql|mysql",
        r"html|css|sass|webpack|vite|next|nuxt|express|fastapi|django|spring",
        r"git|jenkins|ci/cd|terraform|graphql|rest\s*api",
        flags=re.I,
    ),
    "reflections": [
        *_rx(r"느꼈|느낌|소감|의미있|보람|뿌듯|자부심", r"앞으로|향후|계획|다음에|도전"),
        *_rx(
            r"feel|felt|proud|meaningful|rewarding|plan\s+to|future|going\s+forward",
            r"reflect|looking\s+back",
            flags=re.I,
        ),
    ],
}

# Frontmatter keys that count as evidence for a core field.
FRONTMATTER_FIELD_MAP: Dict[str, List[str]] = {
    "duration": ["duration", "date", "start_date", "end_date", "period"],
    "achievements": ["achievements", "results", "outcomes"],
    "learnings": ["learnings", "lessons"],
    "project": ["project", "company", "organization", "team"],
    "technologies": ["technologies", "tech", "tools", "stack"],
    "reflections": ["reflections", "notes", "thoughts"],
}

# Enumeration order is the tie-break order.
EXPERIENCE_TYPE_KEYWORDS: Dict[ExperienceType, List[Pattern[str]]] = {
    ExperienceType.TECHNICAL_PROJECT: [
        *_rx(r"architect|deploy|api|microservice|database|backend|frontend|fullstack|devops|ci/cd", flags=re.I),
        *_rx(r"아키텍처|배포|마이크로서비스|데이터베이스|파이프라인"),
        *_rx(r"implement|develop|build|code|debug|refactor|optimize", flags=re.I),
        *_rx(r"구현|개발|빌드|코딩|리팩토링|최적화"),
        *_rx(r"docker|kubernetes|aws|gcp|terraform", flags=re.I),
    ],
    ExperienceType.LEADERSHIP: [
        *_rx(r"manag|lead|mentor|hire|stakeholder|okr|kpi|budget", flags=re.I),
        *_rx(r"관리|이끌|멘토|채용|이해관계자|목표"),
        *_rx(r"team\s*(of|size|member)|direct\s*report|department|division", flags=re.I),
        *_rx(r"팀.*이끌|부서|조직|리더"),
    ],
    ExperienceType.LEARNING: [
        *_rx(r"course|certificate|certif|bootcamp|tutorial|workshop|study|training", flags=re.I),
        *_rx(r"강좌|자격증|수강|부트캠프|튜토리얼|워크숍|학습|교육"),
        *_rx(r"learn|complet.*course|earn.*certif", flags=re.I),
    ],
    ExperienceType.JOB: [
        *_rx(r"join.*company|position|role\s*as|responsibilit|department|senior|junior|intern", flags=re.I),
        *_rx(r"입사|직무|역할|담당|부서|시니어|주니어|인턴"),
    ],
}


def _is_korean_char(ch: str) -> bool:
    code = ord(ch)
    return 0xAC00 <= code <= 0xD7AF or 0x1100 <= code <= 0x11FF or 0x3130 <= code <= 0x318F


def _is_latin_char(ch: str) -> bool:
    return ("A" <= ch <= "Z") or ("a" <= ch <= "z")


def detect_language(text: str) -> Language:
    """Classify by the share of Hangul among Hangul + ASCII letters."""
    korean = sum(1 for ch in text if _is_korean_char(ch))
    latin = sum(1 for ch in text if _is_latin_char(ch))
    total = korean + latin
    if total == 0:
        return Language.ENGLISH
    ratio = korean / total
    if ratio > 0.5:
        return Language.KOREAN
    if ratio < 0.2:
        return Language.ENGLISH
    return Language.MIXED


def _frontmatter_evidence(value: Any) -> str:
    if isinstance(value, str):
        text = value
    else:
        text = json.dumps(value, ensure_ascii=False, default=str)
    return text[:EVIDENCE_MAX_LENGTH]


def _body_evidence(content: str, match: "re.Match[str]") -> str:
    start = max(0, match.start() - EVIDENCE_CONTEXT)
    end = min(len(content), match.end() + EVIDENCE_CONTEXT)
    return content[start:end].strip()


def detect_field(field: str, content: str, frontmatter: Mapping[str, Any]) -> Optional[FieldDetection]:
    for key in FRONTMATTER_FIELD_MAP.get(field, []):
        value = frontmatter.get(key)
        if value is not None and value != "":
            return FieldDetection(field, FRONTMATTER_CONFIDENCE, _frontmatter_evidence(value))

    for pattern in FIELD_PATTERNS.get(field, []):
        m = pattern.search(content)
        if m:
            return FieldDetection(field, BODY_CONFIDENCE, _body_evidence(content, m))
    return None


def detect_experience_type(content: str) -> ExperienceType:
    best_type = ExperienceType.GENERAL
    best_score = 0
    for exp_type, patterns in EXPERIENCE_TYPE_KEYWORDS.items():
        score = sum(len(pattern.findall(content)) for pattern in patterns)
        if score > best_score and score >= EXPERIENCE_TYPE_THRESHOLD:
            best_type, best_score = exp_type, score
    return best_type


def analyze_draft(content: str, frontmatter: Optional[Mapping[str, Any]] = None) -> DraftAnalysis:
    frontmatter = frontmatter or {}
    present: List[FieldDetection] = []
    missing: List[str] = []
    for field in CORE_FIELDS:
        detection = detect_field(field, content, frontmatter)
        if detection and detection.confidence >= CONFIDENCE_THRESHOLD:
            present.append(detection)
        else:
            missing.append(field)

    return DraftAnalysis(
        present_fields=present,
        missing_fields=missing,
        experience_type=detect_experience_type(content),
        language=detect_language(content),
        draft_content=content,
        frontmatter=dict(frontmatter),
        is_sufficient=not missing,
    )
