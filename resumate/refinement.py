"""Interactive Q&A refinement of a draft.

Each ``resumate refine`` call advances the draft by one step: the first
call appends a Q&A section with the first template question, later calls
append the next unanswered template question, and once every template is
answered (or the last answer says "done") the draft is ready to become
``refined.md``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from .markdown import (
    build_initial_qa_section,
    extract_qa_section,
    format_qa_section,
    join_qa_section,
    parse_markdown,
    parse_qa_pairs,
    stringify_markdown,
)
from .models import DynamicQuestion, QAPair
from .prompts import QUESTION_TEMPLATES, QuestionTemplate, is_completion_signal

TEMPLATE_MATCH_PREFIX = 20

STARTED = "started"
CONTINUED = "continued"
READY = "ready"


@dataclass
class RefinementStep:
    """Outcome of one refinement call.

    ``content`` is the updated draft text for ``started``/``continued`` and
    the full document to store as ``refined.md`` for ``ready``.
    """
    status: str
    content: str
    question: Optional[QuestionTemplate] = None
    pairs: Optional[List[QAPair]] = None

    @property
    def ready(self) -> bool:
        return self.status == READY


def find_template(question: str) -> Optional[QuestionTemplate]:
    normalized = question.strip().lower()
    for template in QUESTION_TEMPLATES:
        if (
            template.korean.lower()[:TEMPLATE_MATCH_PREFIX] in normalized
            or template.english.lower()[:TEMPLATE_MATCH_PREFIX] in normalized
        ):
            return template
    return None


def get_answered_fields(pairs: Sequence[QAPair]) -> List[str]:
    answered = []
    for pair in pairs:
        if not pair.answered:
            continue
        template = find_template(pair.question)
        if template:
            answered.append(template.field)
    return answered


def get_next_unanswered_question(pairs: Sequence[QAPair]) -> Optional[QuestionTemplate]:
    answered = get_answered_fields(pairs)
    for template in QUESTION_TEMPLATES:
        if template.field not in answered:
            return template
    return None


def advance_refinement(draft_text: str, source: Optional[str] = None) -> RefinementStep:
    parsed = parse_markdown(draft_text, source=source)
    qa = extract_qa_section(parsed.body)

    if qa is None:
        first = QUESTION_TEMPLATES[0]
        body = parsed.body.rstrip() + "\n" + build_initial_qa_section(first.korean)
        return RefinementStep(STARTED, stringify_markdown(body, parsed.metadata), question=first, pairs=[])

    pairs = parse_qa_pairs(qa.qa_section)
    last = pairs[-1] if pairs else None
    if last is not None and last.answer and is_completion_signal(last.answer):
        return RefinementStep(READY, draft_text, pairs=pairs)

    following = get_next_unanswered_question(pairs)
    if following is None:
        return RefinementStep(READY, draft_text, pairs=pairs)

    # A question still waiting for its answer is not asked twice.
    pending = any(not p.answered and find_template(p.question) == following for p in pairs)
    next_question = None if pending else following.korean
    body = join_qa_section(qa.original_content, format_qa_section(pairs, next_question=next_question))
    return RefinementStep(CONTINUED, stringify_markdown(body, parsed.metadata), question=following, pairs=pairs)


def append_dynamic_questions(
    draft_text: str, questions: Sequence[DynamicQuestion], source: Optional[str] = None
) -> str:
    """Add agent-generated questions as unanswered slots in the Q&A section."""
    parsed = parse_markdown(draft_text, source=source)
    qa = extract_qa_section(parsed.body)
    if qa is None:
        original, pairs = parsed.body, []
    else:
        original, pairs = qa.original_content, parse_qa_pairs(qa.qa_section)

    known = {p.question for p in pairs}
    pairs = pairs + [QAPair(q.question) for q in questions if q.question not in known]
    body = join_qa_section(original, format_qa_section(pairs))
    return stringify_markdown(body, parsed.metadata)
