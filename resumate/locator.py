"""Find experiences by date, partial date, slug keyword or free text."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .config import ResumateConfig
from .errors import AmbiguousMatchError, NotFoundError
from .models import Experience
from .repository import ExperienceRepository

LOG = logging.getLogger(__name__)

MIN_SCORE = 0.3
# A top result must beat the runner-up by more than this to be picked outright.
DECISIVE_LEAD = 0.2

EXACT_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
PARTIAL_DATE_RE = re.compile(r"^\d{4}(-\d{2})?$")
SLUG_RE = re.compile(r"^[a-z0-9-]+$")


class QueryType(str, Enum):
    EXACT_DATE = "exact-date"
    PARTIAL_DATE = "partial-date"
    SLUG_KEYWORD = "slug-keyword"
    TEXT_MATCH = "text-match"


@dataclass
class ExperienceQuery:
    query: str
    type: QueryType
    year: Optional[int] = None
    month: Optional[int] = None
    day: Optional[int] = None
    keywords: List[str] = field(default_factory=list)

    @property
    def match_reason(self) -> str:
        label = self.type.value.replace("-", " ").capitalize()
        return f"{label} match: {self.query}"


@dataclass
class SearchResult:
    experience: Experience
    score: float
    match_reason: str


def parse_query(query: str) -> ExperienceQuery:
    if EXACT_DATE_RE.match(query):
        y, m, d = (int(p) for p in query.split("-"))
        return ExperienceQuery(query, QueryType.EXACT_DATE, year=y, month=m, day=d)
    if PARTIAL_DATE_RE.match(query):
        parts = [int(p) for p in query.split("-")]
        return ExperienceQuery(
            query, QueryType.PARTIAL_DATE, year=parts[0], month=parts[1] if len(parts) > 1 else None
        )
    if SLUG_RE.match(query):
        return ExperienceQuery(query, QueryType.SLUG_KEYWORD, keywords=[query])
    return ExperienceQuery(query, QueryType.TEXT_MATCH, keywords=query.lower().split())


def score_match(experience: Experience, query: ExperienceQuery) -> float:
    date = experience.date
    if query.type is QueryType.EXACT_DATE:
        same = (date.year, date.month, date.day) == (query.year, query.month, query.day)
        return 1.0 if same else 0.0

    if query.type is QueryType.PARTIAL_DATE:
        if date.year != query.year:
            return 0.0
        if query.month is None:
            return 0.6
        return 0.8 if date.month == query.month else 0.0

    if query.type is QueryType.SLUG_KEYWORD:
        keyword = query.keywords[0]
        if experience.slug == keyword:
            return 1.0
        if keyword in experience.slug:
            return 0.9
        if keyword in experience.name:
            return 0.7
        return 0.0

    name = experience.name.lower()
    if not query.keywords:
        return 0.0
    matched = sum(1 for kw in query.keywords if kw in name)
    if matched == 0:
        return 0.0
    if matched == len(query.keywords):
        return 0.8
    return 0.4 + 0.3 * matched / len(query.keywords)


class ExperienceLocator:
    def __init__(self, config: ResumateConfig, repository: Optional[ExperienceRepository] = None):
        self.repository = repository or ExperienceRepository(config)

    def get_all(self) -> List[Experience]:
        return self.repository.list()

    def search(self, query: str) -> List[SearchResult]:
        parsed = parse_query(query)
        results = []
        for exp in self.get_all():
            score = score_match(exp, parsed)
            if score > MIN_SCORE:
                results.append(SearchResult(exp, score, parsed.match_reason))
        results.sort(key=lambda r: r.score, reverse=True)
        LOG.debug("search %r (%s): %d result(s)", query, parsed.type.value, len(results))
        return results

    def find_one(self, query: str) -> Experience:
        """Exact directory name first, then the single clear search winner."""
        exact = self.repository.get(query)
        if exact is not None:
            return exact

        results = self.search(query)
        if not results:
            available = [e.name for e in self.get_all()]
            hint = None
            if available:
                hint = "Available experiences:\n" + "\n".join(f"  - {n}" for n in available)
            raise NotFoundError(f'No experiences found matching "{query}"', hint=hint)

        if len(results) == 1 or results[0].score > results[1].score + DECISIVE_LEAD:
            return results[0].experience

        raise AmbiguousMatchError(query, [(r.experience.name, r.score) for r in results])
