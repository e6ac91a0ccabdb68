"""Error taxonomy for resumate.

Every error carries a human message and, where one exists, a corrective
hint. All of them exit with status 1.
"""
from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from core.cli_errors import CLIError, ExitCode


class ResumateError(CLIError):
    """Base class for reported resumate failures."""

    def __init__(self, message: str, hint: Optional[str] = None):
        super().__init__(message, ExitCode.ERROR, hint)


class ValidationError(ResumateError):
    """Input violates a naming, shape or state rule."""


class ParseError(ResumateError):
    """Frontmatter or JSON could not be decoded."""

    def __init__(self, message: str, hint: Optional[str] = None, source: Optional[str] = None):
        if source:
            message = f"{message} ({source})"
        super().__init__(message, hint)
        self.source = source


class NotFoundError(ResumateError):
    """Experience, version file or migration id does not exist."""


class AlreadyExistsError(ResumateError):
    """A directory or version file already exists and will not be overwritten."""


class MissingPrerequisiteError(ResumateError):
    """A workflow step was requested before the step it depends on."""


class IntegrityError(ResumateError):
    """Migrated content does not match its source checksum."""


class AmbiguousMatchError(ResumateError):
    """A locator query matched several experiences without a clear winner."""

    def __init__(self, query: str, candidates: Sequence[Tuple[str, float]]):
        self.query = query
        self.candidates: List[Tuple[str, float]] = list(candidates)
        lines = [f'Multiple experiences match "{query}":']
        for i, (name, score) in enumerate(self.candidates, start=1):
            lines.append(f"  [{i}] {name} (score: {score:.1f})")
        super().__init__("\n".join(lines), hint="Please use a more specific query.")
