"""Prompt builders and reply validators for the external AI collaborator.

The tool never interprets natural language itself. It renders an
instruction block (``build_prompt_output`` / ``build_archive_prompt_output``)
that the host agent answers with JSON, then checks that JSON against a
fixed shape (``validate_dynamic_questions`` /
``validate_structured_archive_content``) before writing anything.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .archive_analyzer import FIELD_WEIGHTS, round_half_up
from .draft_analyzer import CORE_FIELDS
from .errors import ValidationError
from .extraction import generate_tags
from .markdown import stringify_markdown
from .models import (
    AchievementEntry,
    ArchiveAnalysis,
    ArchivePromptMetadata,
    ArchivePromptOutput,
    CompletenessAssessment,
    DraftAnalysis,
    DurationInterpretation,
    DynamicQuestion,
    ExperienceType,
    FieldCompleteness,
    Language,
    PromptMetadata,
    PromptOutput,
    QASummaryEntry,
    StructuredArchiveContent,
    TechnologyEntry,
)

MAX_QUESTIONS = 6


@dataclass(frozen=True)
class QuestionTemplate:
    field: str
    korean: str
    english: str
    required: bool = False


QUESTION_TEMPLATES: List[QuestionTemplate] = [
    QuestionTemplate(
        "duration",
        "이 작업의 구체적인 기간이 어떻게 되나요? (시작일과 종료일)",
        "What was the specific timeframe for this work? (start and end dates)",
        required=True,
    ),
    QuestionTemplate(
        "achievements",
        "어떤 성과가 있었나요? 정량적인 지표가 있다면 알려주세요",
        "What were the achievements? Please include quantitative metrics if available",
    ),
    QuestionTemplate(
        "learnings",
        "이 경험에서 가장 중요하게 배운 점은 무엇인가요?",
        "What were the most important learnings from this experience?",
    ),
    QuestionTemplate(
        "project",
        "관련된 프로젝트나 회사가 있나요?",
        "Is there a related project or company?",
    ),
    QuestionTemplate(
        "technologies",
        "어떤 기술이나 도구를 사용했나요?",
        "What technologies or tools did you use?",
    ),
    QuestionTemplate(
        "reflections",
        "이 경험에 대해 어떻게 느끼셨나요? 개인적인 소감이나 향후 계획이 있다면?",
        "How did you feel about this experience? Any personal reflections or future plans?",
    ),
]

COMPLETION_SIGNALS = ["충분해", "완료", "끝", "sufficient", "done", "enough", "finished"]


def is_completion_signal(text: str) -> bool:
    """Case-insensitive substring match against COMPLETION_SIGNALS."""
    lower = (text or "").strip().lower()
    return any(signal.lower() in lower for signal in COMPLETION_SIGNALS)


def get_next_question(answered_fields: Sequence[str]) -> Optional[QuestionTemplate]:
    for template in QUESTION_TEMPLATES:
        if template.field not in answered_fields:
            return template
    return None


# -- draft question prompt ------------------------------------------------------

TYPE_GUIDANCE: Dict[ExperienceType, str] = {
    ExperienceType.TECHNICAL_PROJECT: """
## Experience Type: Technical Project
Focus questions on:
- Architecture decisions and technical challenges
- Performance metrics and measurable outcomes
- Technical stack choices and trade-offs
- Scalability considerations""",
    ExperienceType.LEADERSHIP: """
## Experience Type: Leadership/Management
Focus questions on:
- Team size, structure, and management approach
- Business outcomes and organizational impact
- People management and mentoring experiences
- Stakeholder communication and decision-making""",
    ExperienceType.LEARNING: """
## Experience Type: Learning/Education
Focus questions on:
- What was learned and key skill development
- Practical application of new knowledge
- How the learning changed their approach or methodology
- Certification or completion details""",
    ExperienceType.JOB: """
## Experience Type: Job/Position
Focus questions on:
- Scope of role and key responsibilities
- Career progression and growth within the role
- Impact on the team or organization
- Key projects or initiatives led""",
}

QUESTION_LANGUAGE: Dict[Language, str] = {
    Language.KOREAN: "Generate all questions in Korean.",
    Language.ENGLISH: "Generate all questions in English.",
    Language.MIXED: "Generate questions in both Korean and English.",
}


def _target_fields(analysis: DraftAnalysis, deep: bool) -> List[str]:
    fields = list(CORE_FIELDS) if deep else list(analysis.missing_fields)
    return fields[:MAX_QUESTIONS]


def generate_question_prompt(analysis: DraftAnalysis, deep: bool = False) -> str:
    targets = _target_fields(analysis, deep)
    max_questions = len(targets)
    present = "\n".join(f'- {d.field}: "{d.evidence}"' for d in analysis.present_fields)

    if deep:
        avoid_heading = "## Already Present Information (ask for more depth, do not repeat it)"
        target_heading = "## Fields To Deepen (generate questions for these)"
    else:
        avoid_heading = "## Already Present Information (DO NOT ask about these)"
        target_heading = "## Missing Information (generate questions for these)"
    scope_rule = (
        "Ask for concrete detail beyond what the draft already says."
        if deep
        else "Only ask about information that is NOT already present in the draft."
    )

    lines = [
        f"Analyze the following experience draft and generate {max_questions} clarifying questions "
        "about the missing information.",
        "",
        "## Draft Content",
        analysis.draft_content,
        "",
        avoid_heading,
        present or "(none detected)",
        "",
        target_heading,
        ", ".join(targets),
        TYPE_GUIDANCE.get(analysis.experience_type, ""),
        "",
        "## Instructions",
        f"- {QUESTION_LANGUAGE[analysis.language]}",
        f"- {scope_rule}",
        "- Make questions specific to the draft content, not generic.",
        "- Each question should help the user provide concrete, detailed information.",
        "- Output your response as a JSON array with exactly this format:",
        '  [{"field": "<field_id>", "question": "<question_text>", "reason": "<why_this_is_needed>"}]',
        f"- Valid field identifiers: {', '.join(targets)}",
        f"- Maximum {max_questions} questions.",
    ]
    return "\n".join(lines)


def build_prompt_output(analysis: DraftAnalysis, experience_dir: str, deep: bool = False) -> PromptOutput:
    if analysis.is_sufficient and not deep:
        return PromptOutput(
            status="sufficient",
            analysis=analysis,
            prompt="",
            metadata=PromptMetadata(experience_dir=experience_dir, max_questions=0, field_identifiers=[]),
        )
    targets = _target_fields(analysis, deep)
    return PromptOutput(
        status="needs-questions",
        analysis=analysis,
        prompt=generate_question_prompt(analysis, deep=deep),
        metadata=PromptMetadata(
            experience_dir=experience_dir,
            max_questions=len(targets),
            field_identifiers=targets,
        ),
    )


# -- archive structuring prompt -------------------------------------------------

ARCHIVE_LANGUAGE: Dict[Language, str] = {
    Language.KOREAN: "Generate all interpretations, suggestions, and comments in Korean.",
    Language.ENGLISH: "Generate all interpretations, suggestions, and comments in English.",
    Language.MIXED: "Generate interpretations in both Korean and English as appropriate.",
}

TECH_ALIASES: Dict[str, str] = {
    "ts": "TypeScript",
    "js": "JavaScript",
    "레디스": "Redis",
    "리액트": "React",
    "노드": "Node.js",
    "파이썬": "Python",
    "도커": "Docker",
    "쿠버네티스": "Kubernetes",
    "몽고": "MongoDB",
    "포스트그레스": "PostgreSQL",
}

ARCHIVE_OUTPUT_SCHEMA = """{
  "title": "string",
  "duration": {
    "original": "string (verbatim user answer)",
    "start": "string (ISO date or descriptive) or null",
    "end": "string (ISO date or descriptive) or null",
    "interpretation": "string (AI explanation)"
  },
  "project": "string or null",
  "technologies": [{"original": "string", "normalized": "string"}],
  "achievements": [{"original": "string", "resumeReady": "string"}],
  "learnings": "string or null",
  "reflections": "string or null",
  "qaSummary": [{"question": "string", "answer": "string", "interpretation": "string"}],
  "completeness": {
    "score": 0-100,
    "breakdown": {
%s
    },
    "suggestions": ["string"]
  },
  "aiComments": "string"
}""" % ",\n".join(
    f'      "{name}": {{"present": true, "weight": {weight}, "qualityScore": 0-1}}'
    for name, weight in FIELD_WEIGHTS.items()
)


def _qa_text(analysis: ArchiveAnalysis) -> str:
    if not analysis.qa_pairs:
        return "(No Q&A section found)"
    return "\n\n".join(
        f"### Q{i}: {qa.question}\n**A**: {qa.answer or '(no answer)'}"
        for i, qa in enumerate(analysis.qa_pairs, 1)
    )


def generate_archive_prompt(analysis: ArchiveAnalysis) -> str:
    aliases = ", ".join(f'"{k}" → "{v}"' for k, v in TECH_ALIASES.items())
    weights = ", ".join(f"{k} ({v})" for k, v in FIELD_WEIGHTS.items())
    return f"""You are structuring a career experience for resume writing. Analyze the following refined experience content and produce a structured JSON output.

## Original Content
{analysis.original_content}

## Q&A Section
{_qa_text(analysis)}

## Experience Metadata
- Title: {analysis.title}
- Date: {analysis.date_str}
- Detected Type: {analysis.experience_type.value}

## Instructions

{ARCHIVE_LANGUAGE[analysis.language]}

### Technology Normalization
- Normalize all technology names to their canonical English forms
- Common mappings: {aliases}
- Preserve the original user input alongside the normalized name

### Achievement Formatting
- For each achievement, create a resume-ready version that:
  - Quantifies vague claims (e.g., "반으로 줄임" → "50% 개선")
  - Uses action verbs and measurable outcomes
  - Preserves the original text verbatim alongside the resume-ready version

### Duration Interpretation
- Interpret natural language dates (e.g., "3월 말부터 상반기까지" → start: "2024-03-31", end: "2024-06-30", interpretation: "2024년 3월 말 ~ 6월 말 (약 3개월)")
- If dates are ambiguous, provide your best interpretation and note the ambiguity
- Preserve the original text in the "original" field

### Q&A Summary
- For each Q&A pair, add an "interpretation" field that enriches or clarifies the answer
- Note any ambiguities or missing context

### Completeness Assessment
- Score from 0-100 based on these weighted fields:
  - {weights}
  - Quality bonuses: specific dates (+5), quantitative achievements (+5), >3 technologies (+3), detailed learnings (+3)
- Provide actionable suggestions for improvement, framed as resume-writing advice

### AI Comments
- Add any observations about the experience that could help with resume writing
- Note patterns, strengths, or areas that stand out

## Output Format

Return ONLY a valid JSON object with this exact structure (no markdown code fences, no extra text):

{ARCHIVE_OUTPUT_SCHEMA}"""


def build_archive_prompt_output(analysis: ArchiveAnalysis, experience_name: str) -> ArchivePromptOutput:
    return ArchivePromptOutput(
        status="ready",
        analysis=analysis,
        prompt=generate_archive_prompt(analysis),
        metadata=ArchivePromptMetadata(experience_dir=experience_name, experience_name=experience_name),
    )


# -- reply validation -----------------------------------------------------------

def _load_json(json_text: str, what: str) -> Any:
    try:
        return json.loads(json_text)
    except (TypeError, ValueError) as exc:
        raise ValidationError(
            f"Invalid JSON for {what}: {exc}",
            hint="Pass the agent's reply verbatim, without markdown code fences.",
        ) from exc


def _require_str(obj: Mapping[str, Any], key: str, where: str, *, non_empty: bool = False) -> str:
    value = obj.get(key)
    if not isinstance(value, str) or (non_empty and not value.strip()):
        kind = "a non-empty string" if non_empty else "a string"
        raise ValidationError(f"{where}: '{key}' must be {kind}")
    return value


def _optional_str(obj: Mapping[str, Any], key: str, where: str) -> Optional[str]:
    value = obj.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{where}: '{key}' must be a string or null")
    return value


def _object_list(obj: Mapping[str, Any], key: str) -> List[Mapping[str, Any]]:
    value = obj.get(key)
    if value is None:
        return []
    if not isinstance(value, list):
        raise ValidationError(f"'{key}' must be an array")
    for i, item in enumerate(value):
        if not isinstance(item, dict):
            raise ValidationError(f"{key}[{i}] must be an object")
    return value


def validate_dynamic_questions(json_text: str) -> List[DynamicQuestion]:
    """Parse the agent's question batch: an array of at most six {field, question, reason}."""
    data = _load_json(json_text, "questions")
    if not isinstance(data, list):
        raise ValidationError("Questions must be a JSON array")
    if len(data) > MAX_QUESTIONS:
        raise ValidationError(
            f"Too many questions: {len(data)} (maximum {MAX_QUESTIONS})",
            hint=f"Ask the agent for at most {MAX_QUESTIONS} questions.",
        )
    questions = []
    for i, item in enumerate(data):
        where = f"Question {i}"
        if not isinstance(item, dict):
            raise ValidationError(f"{where} must be an object")
        reason = item.get("reason", "")
        if reason is None:
            reason = ""
        if not isinstance(reason, str):
            raise ValidationError(f"{where}: 'reason' must be a string")
        questions.append(DynamicQuestion(
            field=_require_str(item, "field", where, non_empty=True),
            question=_require_str(item, "question", where, non_empty=True),
            reason=reason,
        ))
    return questions


def _validate_completeness(raw: Any) -> CompletenessAssessment:
    if not isinstance(raw, dict):
        raise ValidationError("'completeness' must be an object")
    score = raw.get("score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise ValidationError("completeness: 'score' must be a number")
    if not 0 <= score <= 100:
        raise ValidationError(f"completeness: 'score' must be between 0 and 100 (got {score})")

    breakdown: Dict[str, FieldCompleteness] = {}
    raw_breakdown = raw.get("breakdown") or {}
    if not isinstance(raw_breakdown, dict):
        raise ValidationError("completeness: 'breakdown' must be an object")
    for name, entry in raw_breakdown.items():
        if not isinstance(entry, dict):
            raise ValidationError(f"completeness.breakdown.{name} must be an object")
        weight = entry.get("weight", FIELD_WEIGHTS.get(name, 0))
        quality = entry.get("qualityScore", 0)
        for key, value in (("weight", weight), ("qualityScore", quality)):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValidationError(f"completeness.breakdown.{name}.{key} must be a number")
        breakdown[name] = FieldCompleteness(
            present=bool(entry.get("present", False)),
            weight=int(weight),
            quality_score=float(quality),
        )

    suggestions = raw.get("suggestions") or []
    if not isinstance(suggestions, list) or not all(isinstance(s, str) for s in suggestions):
        raise ValidationError("completeness: 'suggestions' must be an array of strings")
    return CompletenessAssessment(score=round_half_up(score), breakdown=breakdown, suggestions=list(suggestions))


def _validate_duration(raw: Any) -> Optional[DurationInterpretation]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise ValidationError("'duration' must be an object or null")
    return DurationInterpretation(
        original=_optional_str(raw, "original", "duration") or "",
        start=_optional_str(raw, "start", "duration"),
        end=_optional_str(raw, "end", "duration"),
        interpretation=_optional_str(raw, "interpretation", "duration") or "",
    )


def validate_structured_archive_content(json_text: str) -> StructuredArchiveContent:
    """Parse the agent's archive structuring reply; optional parts get defaults."""
    data = _load_json(json_text, "archive content")
    if not isinstance(data, dict):
        raise ValidationError("Archive content must be a JSON object")
    if "completeness" not in data:
        raise ValidationError("Archive content is missing 'completeness'")

    technologies = [
        TechnologyEntry(
            original=_require_str(t, "original", f"technologies[{i}]"),
            normalized=_require_str(t, "normalized", f"technologies[{i}]"),
        )
        for i, t in enumerate(_object_list(data, "technologies"))
    ]
    achievements = [
        AchievementEntry(
            original=_require_str(a, "original", f"achievements[{i}]"),
            resume_ready=_require_str(a, "resumeReady", f"achievements[{i}]"),
        )
        for i, a in enumerate(_object_list(data, "achievements"))
    ]
    qa_summary = [
        QASummaryEntry(
            question=_require_str(q, "question", f"qaSummary[{i}]"),
            answer=_optional_str(q, "answer", f"qaSummary[{i}]") or "",
            interpretation=_optional_str(q, "interpretation", f"qaSummary[{i}]") or "",
        )
        for i, q in enumerate(_object_list(data, "qaSummary"))
    ]

    return StructuredArchiveContent(
        title=_require_str(data, "title", "Archive content"),
        completeness=_validate_completeness(data["completeness"]),
        duration=_validate_duration(data.get("duration")),
        project=_optional_str(data, "project", "Archive content"),
        technologies=technologies,
        achievements=achievements,
        learnings=_optional_str(data, "learnings", "Archive content"),
        reflections=_optional_str(data, "reflections", "Archive content"),
        qa_summary=qa_summary,
        ai_comments=_optional_str(data, "aiComments", "Archive content") or "",
    )


# -- archived document ----------------------------------------------------------

def _strip_first_heading(original_content: str) -> str:
    lines = original_content.strip().split("\n")
    if lines and lines[0].startswith("#"):
        lines = lines[1:]
    return "\n".join(lines).strip()


def render_archived_document(content: StructuredArchiveContent, date_str: str, original_content: str) -> str:
    """Serialize validated archive content into ``archived.md`` text."""
    metadata: Dict[str, Any] = {"title": content.title, "date": date_str}
    if content.duration and (content.duration.start or content.duration.end):
        metadata["duration"] = {"start": content.duration.start, "end": content.duration.end}
    if content.project:
        metadata["project"] = content.project
    technologies = [t.normalized or t.original for t in content.technologies]
    if technologies:
        metadata["technologies"] = technologies
        tags = generate_tags(technologies)
        if tags:
            metadata["tags"] = tags
    achievements = [a.resume_ready or a.original for a in content.achievements]
    if achievements:
        metadata["achievements"] = achievements
    if content.learnings:
        metadata["learnings"] = content.learnings
    if content.reflections:
        metadata["reflections"] = content.reflections
    metadata["completeness"] = {
        "score": content.completeness.score,
        "suggestions": list(content.completeness.suggestions),
    }

    parts = [f"\n# Detailed Context\n\n{_strip_first_heading(original_content)}\n"]
    if achievements:
        parts.append("\n## Achievements\n\n" + "".join(f"- {a}\n" for a in achievements))
    if content.learnings:
        parts.append(f"\n## Key Learnings\n\n{content.learnings}\n")
    if content.duration and content.duration.interpretation:
        parts.append(f"\n## Duration\n\n{content.duration.interpretation}\n")
    if content.qa_summary:
        parts.append("\n## Q&A Summary\n")
        for entry in content.qa_summary:
            parts.append(f"\n### {entry.question}\n\n{entry.answer}\n")
            if entry.interpretation:
                parts.append(f"\n> {entry.interpretation}\n")
    if content.ai_comments:
        parts.append(f"\n## AI Comments\n\n{content.ai_comments}\n")
    return stringify_markdown("".join(parts), metadata)
