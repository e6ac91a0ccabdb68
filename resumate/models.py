"""Domain types for experiences, analyses and AI hand-off payloads.

Dataclass fields that cross the JSON boundary declare their wire name via
``metadata={"json": ...}`` so ``core.cli_output.to_jsonable`` emits the
camelCase keys external agents expect.
"""
from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional


def wire(name: str, **kwargs: Any) -> Any:
    """Dataclass field with a JSON wire name."""
    return field(metadata={"json": name}, **kwargs)


class VersionKind(str, Enum):
    DRAFT = "draft"
    REFINED = "refined"
    ARCHIVED = "archived"

    @property
    def filename(self) -> str:
        return f"{self.value}.md"


class Language(str, Enum):
    KOREAN = "korean"
    ENGLISH = "english"
    MIXED = "mixed"


class ExperienceType(str, Enum):
    TECHNICAL_PROJECT = "technical-project"
    LEADERSHIP = "leadership"
    LEARNING = "learning"
    JOB = "job"
    GENERAL = "general"


@dataclass
class VersionFlags:
    draft: bool = False
    refined: bool = False
    archived: bool = False

    def has(self, kind: VersionKind) -> bool:
        return bool(getattr(self, kind.value))


@dataclass
class Experience:
    """One experience directory and the version files it holds."""
    path: Path
    name: str
    date: _dt.date
    slug: str
    versions: VersionFlags
    timestamps: Dict[str, _dt.datetime] = field(default_factory=dict)

    @property
    def date_str(self) -> str:
        return self.date.isoformat()

    def version_path(self, kind: VersionKind) -> Path:
        return self.path / kind.filename


@dataclass
class ExperienceContent:
    """User-supplied fields for a new draft."""
    title: str
    company: str = ""
    role: str = ""
    description: Optional[str] = None


@dataclass
class QAPair:
    question: str
    answer: Optional[str] = None

    @property
    def answered(self) -> bool:
        return bool(self.answer)


@dataclass
class FieldDetection:
    field: str
    confidence: float
    evidence: str


@dataclass
class DraftAnalysis:
    present_fields: List[FieldDetection] = wire("presentFields")
    missing_fields: List[str] = wire("missingFields")
    experience_type: ExperienceType = wire("experienceType")
    language: Language = wire("language")
    draft_content: str = wire("draftContent")
    frontmatter: Dict[str, Any] = wire("frontmatter")
    is_sufficient: bool = wire("isSufficient")

    @property
    def present_field_names(self) -> List[str]:
        return [d.field for d in self.present_fields]


@dataclass
class ArchiveAnalysis:
    title: str
    date_str: str = wire("dateStr")
    original_content: str = wire("originalContent")
    qa_pairs: List[QAPair] = wire("qaPairs", default_factory=list)
    language: Language = wire("language", default=Language.ENGLISH)
    experience_type: ExperienceType = wire("experienceType", default=ExperienceType.GENERAL)


@dataclass
class FieldCompleteness:
    present: bool
    weight: int
    quality_score: float = wire("qualityScore")


@dataclass
class CompletenessAssessment:
    score: int
    breakdown: Dict[str, FieldCompleteness] = field(default_factory=dict)
    suggestions: List[str] = field(default_factory=list)


@dataclass
class PromptMetadata:
    experience_dir: str = wire("experienceDir")
    max_questions: int = wire("maxQuestions")
    field_identifiers: List[str] = wire("fieldIdentifiers")
    output_format: str = wire("outputFormat", default="json")


@dataclass
class PromptOutput:
    status: str
    analysis: DraftAnalysis
    prompt: str
    metadata: PromptMetadata


@dataclass
class ArchivePromptMetadata:
    experience_dir: str = wire("experienceDir")
    experience_name: str = wire("experienceName")
    output_format: str = wire("outputFormat", default="json")


@dataclass
class ArchivePromptOutput:
    status: str
    analysis: ArchiveAnalysis
    prompt: str
    metadata: ArchivePromptMetadata


@dataclass
class DynamicQuestion:
    field: str
    question: str
    reason: str = ""


@dataclass
class DurationInterpretation:
    original: str = ""
    start: Optional[str] = None
    end: Optional[str] = None
    interpretation: str = ""


@dataclass
class TechnologyEntry:
    original: str
    normalized: str


@dataclass
class AchievementEntry:
    original: str
    resume_ready: str = wire("resumeReady")


@dataclass
class QASummaryEntry:
    question: str
    answer: str
    interpretation: str = ""


@dataclass
class StructuredArchiveContent:
    """Validated archive-structuring reply from the external agent."""
    title: str
    completeness: CompletenessAssessment
    duration: Optional[DurationInterpretation] = None
    project: Optional[str] = None
    technologies: List[TechnologyEntry] = field(default_factory=list)
    achievements: List[AchievementEntry] = field(default_factory=list)
    learnings: Optional[str] = None
    reflections: Optional[str] = None
    qa_summary: List[QASummaryEntry] = wire("qaSummary", default_factory=list)
    ai_comments: str = wire("aiComments", default="")
