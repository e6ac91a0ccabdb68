"""Experience directories and their version files.

Layout::

    <root>/experiences/<YYYY-MM-DD-slug>/draft.md
                                        /refined.md
                                        /archived.md

Versions are strictly ordered (draft -> refined -> archived) and an
existing version file is never overwritten.
"""
from __future__ import annotations

import datetime as _dt
import logging
from pathlib import Path
from typing import Dict, List, Optional

from . import storage
from .config import ResumateConfig
from .errors import AlreadyExistsError, MissingPrerequisiteError, NotFoundError, ValidationError
from .markdown import stringify_markdown
from .models import Experience, ExperienceContent, VersionFlags, VersionKind

LOG = logging.getLogger(__name__)


class ExperienceRepository:
    def __init__(self, config: ResumateConfig):
        self.config = config

    @property
    def base_dir(self) -> Path:
        return self.config.experiences_dir

    def _dir(self, name: str) -> Path:
        return self.base_dir / name

    def create(self, date: _dt.date, slug: str, content: ExperienceContent) -> Experience:
        """Create ``<date>-<slug>/draft.md`` from the given content."""
        date_str = date.isoformat()
        name = f"{date_str}-{slug}"
        valid, error = storage.validate_experience_dir_name(name)
        if not valid:
            raise ValidationError(
                f'Invalid experience directory name "{name}": {error}',
                hint="Pass --slug with lowercase letters, digits and hyphens (e.g. --slug api-redesign).",
            )

        path = self._dir(name)
        if storage.dir_exists(path):
            raise AlreadyExistsError(
                f"Experience already exists: {name}",
                hint=(
                    "Options:\n"
                    f"  - Use a different slug: --slug {slug}-v2\n"
                    f"  - Edit the existing draft directly: experiences/{name}/draft.md"
                ),
            )

        metadata: Dict[str, object] = {
            "date": date_str,
            "title": content.title,
            "company": content.company,
            "role": content.role,
        }
        if content.description:
            metadata["description"] = content.description
            body = f"\n# {content.title}\n\n{content.description}\n"
        else:
            body = f"\n# {content.title}\n\n"

        storage.ensure_dir(path)
        storage.write_text(path / VersionKind.DRAFT.filename, stringify_markdown(body, metadata))
        LOG.info("created experience %s", name)
        return self._build(name, path)

    def get(self, name: str) -> Optional[Experience]:
        """Non-throwing lookup; invalid or missing names give None."""
        path = self._dir(name)
        if storage.parse_experience_dir_name(name) is None or not storage.dir_exists(path):
            return None
        return self._build(name, path)

    def exists(self, name: str) -> bool:
        return storage.dir_exists(self._dir(name))

    def list(self) -> List[Experience]:
        """Valid experience directories, newest date first (ties by name)."""
        experiences = [
            self._build(name, self._dir(name))
            for name in storage.list_dirs(self.base_dir)
            if storage.parse_experience_dir_name(name) is not None
        ]
        # list_dirs is name-sorted, so the stable sort keeps name order on equal dates.
        experiences.sort(key=lambda e: e.date, reverse=True)
        return experiences

    def available_versions(self, name: str) -> VersionFlags:
        path = self._dir(name)
        return VersionFlags(**{k.value: storage.file_exists(path / k.filename) for k in VersionKind})

    def add_refined(self, name: str, content: str) -> Path:
        path = self._require(name)
        target = path / VersionKind.REFINED.filename
        if storage.file_exists(target):
            raise AlreadyExistsError(
                f"Experience already has a refined version: {name}",
                hint=(
                    "Options:\n"
                    "  - Edit refined.md directly in your editor\n"
                    "  - Delete refined.md and run 'resumate refine' again"
                ),
            )
        storage.write_text(target, content)
        LOG.info("wrote %s", target)
        return target

    def add_archived(self, name: str, content: str) -> Path:
        path = self._require(name)
        if not storage.file_exists(path / VersionKind.REFINED.filename):
            raise MissingPrerequisiteError(
                f"No refined version found for experience: {name}",
                hint=f"The archive command requires a refined version. Run 'resumate refine {name}' first.",
            )
        target = path / VersionKind.ARCHIVED.filename
        if storage.file_exists(target):
            raise AlreadyExistsError(
                f"Experience already has an archived version: {name}",
                hint=(
                    "Options:\n"
                    "  - Edit archived.md directly\n"
                    "  - Delete archived.md and run 'resumate archive' again"
                ),
            )
        storage.write_text(target, content)
        LOG.info("wrote %s", target)
        return target

    def get_version(self, name: str, kind: VersionKind) -> str:
        target = self._checked_dir(name) / kind.filename
        if not storage.file_exists(target):
            raise NotFoundError(f"Version {kind.filename} not found for experience: {name}")
        return storage.read_text(target)

    def update_draft(self, name: str, content: str) -> Path:
        """Rewrite draft.md in place; used by the refinement Q&A loop only."""
        target = self._require(name) / VersionKind.DRAFT.filename
        if not storage.file_exists(target):
            raise NotFoundError(
                f"No draft found for experience: {name}",
                hint=f"Expected: experiences/{name}/draft.md",
            )
        storage.write_text(target, content)
        return target

    def _checked_dir(self, name: str) -> Path:
        valid, error = storage.validate_experience_dir_name(name)
        if not valid:
            raise ValidationError(f'Invalid experience directory name "{name}": {error}')
        return self._dir(name)

    def _require(self, name: str) -> Path:
        path = self._checked_dir(name)
        if not storage.dir_exists(path):
            raise NotFoundError(f"Experience not found: {name}")
        return path

    def _build(self, name: str, path: Path) -> Experience:
        parsed = storage.parse_experience_dir_name(name)
        if parsed is None:
            raise ValidationError(f"Invalid experience directory name: {name}")
        versions = self.available_versions(name)
        timestamps = {
            kind.value: storage.modified_at(path / kind.filename)
            for kind in VersionKind
            if versions.has(kind)
        }
        return Experience(
            path=path,
            name=name,
            date=parsed.date,
            slug=parsed.slug,
            versions=versions,
            timestamps=timestamps,
        )
