"""Migrate the legacy drafts/in-progress/archive layout into experience directories.

Phases: scanning -> grouping -> validating -> converting -> verifying ->
cleanup -> completed, or failed from anywhere on an unhandled error.
The manifest (``.resumate/migrations/<id>.json``) is written at every
phase change and after each per-experience conversion, so an interrupted
run can be resumed without redoing completed mappings.
"""
from __future__ import annotations

import datetime as _dt
import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from core.cli_output import to_jsonable
from core.date_utils import parse_iso_date

from . import storage
from .config import LEGACY_BUCKETS, ResumateConfig
from .errors import IntegrityError, NotFoundError, ParseError, ValidationError
from .models import VersionKind, wire
from .slugs import extract_date_from_filename, generate_slug, strip_date_prefix

LOG = logging.getLogger(__name__)

MIGRATION_ID_FORMAT = "migration-%Y%m%d-%H%M%S"
UNNAMED_SLUG = "unnamed"
VERIFY_FAILED = "Content verification failed"


class MigrationPhase(str, Enum):
    SCANNING = "scanning"
    GROUPING = "grouping"
    VALIDATING = "validating"
    CONVERTING = "converting"
    VERIFYING = "verifying"
    CLEANUP = "cleanup"
    COMPLETED = "completed"
    FAILED = "failed"


class MappingStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    FAILED = "failed"


def _now() -> str:
    return _dt.datetime.now().isoformat(timespec="seconds")


@dataclass
class SourceFiles:
    draft: Optional[str] = None
    refined: Optional[str] = None
    archived: Optional[str] = None

    def items(self) -> List[Tuple[VersionKind, str]]:
        return [(k, getattr(self, k.value)) for k in VersionKind if getattr(self, k.value)]


@dataclass
class MigrationExperienceMapping:
    experience_dir: str = wire("experienceDir")
    source_files: SourceFiles = wire("sourceFiles", default_factory=SourceFiles)
    status: MappingStatus = MappingStatus.PENDING
    checksums: Optional[Dict[str, str]] = None
    error: Optional[str] = None


@dataclass
class MigrationError:
    phase: str
    message: str
    timestamp: str = field(default_factory=_now)
    filepath: Optional[str] = None


@dataclass
class MigrationProgress:
    files_scanned: int = wire("filesScanned", default=0)
    files_total: int = wire("filesTotal", default=0)
    experiences_created: int = wire("experiencesCreated", default=0)
    experiences_total: int = wire("experiencesTotal", default=0)


@dataclass
class MigrationSettings:
    root_dir: str = wire("rootDir")
    backup_dir: str = wire("backupDir")
    dry_run: bool = wire("dryRun", default=False)


@dataclass
class MigrationManifest:
    migration_id: str = wire("migrationId")
    started_at: str = wire("startedAt")
    config: MigrationSettings = wire("config")
    phase: MigrationPhase = MigrationPhase.SCANNING
    progress: MigrationProgress = field(default_factory=MigrationProgress)
    experiences: List[MigrationExperienceMapping] = field(default_factory=list)
    errors: List[MigrationError] = field(default_factory=list)
    completed_at: Optional[str] = wire("completedAt", default=None)

    def to_json(self) -> str:
        return json.dumps(to_jsonable(self), indent=2, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MigrationManifest":
        progress = data.get("progress") or {}
        cfg = data.get("config") or {}
        return cls(
            migration_id=data["migrationId"],
            started_at=data.get("startedAt", ""),
            config=MigrationSettings(
                root_dir=cfg.get("rootDir", ""),
                backup_dir=cfg.get("backupDir", ""),
                dry_run=bool(cfg.get("dryRun", False)),
            ),
            phase=MigrationPhase(data.get("phase", MigrationPhase.SCANNING.value)),
            progress=MigrationProgress(
                files_scanned=progress.get("filesScanned", 0),
                files_total=progress.get("filesTotal", 0),
                experiences_created=progress.get("experiencesCreated", 0),
                experiences_total=progress.get("experiencesTotal", 0),
            ),
            experiences=[
                MigrationExperienceMapping(
                    experience_dir=m["experienceDir"],
                    source_files=SourceFiles(**{
                        k: v for k, v in (m.get("sourceFiles") or {}).items()
                        if k in ("draft", "refined", "archived")
                    }),
                    status=MappingStatus(m.get("status", MappingStatus.PENDING.value)),
                    checksums=m.get("checksums"),
                    error=m.get("error"),
                )
                for m in data.get("experiences") or []
            ],
            errors=[
                MigrationError(
                    phase=e.get("phase", ""),
                    message=e.get("message", ""),
                    timestamp=e.get("timestamp", ""),
                    filepath=e.get("filepath"),
                )
                for e in data.get("errors") or []
            ],
            completed_at=data.get("completedAt"),
        )


@dataclass
class MigrationConflict:
    type: str
    files: List[str]
    message: str


@dataclass
class PlanSummary:
    files_total: int = wire("filesTotal")
    experiences_total: int = wire("experiencesTotal")
    conflicts_count: int = wire("conflictsCount")


@dataclass
class MigrationPlan:
    experiences: List[MigrationExperienceMapping]
    conflicts: List[MigrationConflict]
    unmapped_files: List[str] = wire("unmappedFiles")
    summary: PlanSummary = wire("summary")


@dataclass
class MigrationResult:
    success: bool
    migration_id: str = wire("migrationId")
    experiences_created: int = wire("experiencesCreated")
    errors: List[MigrationError] = field(default_factory=list)
    conflicts: List[MigrationConflict] = field(default_factory=list)
    unmapped_files: List[str] = wire("unmappedFiles", default_factory=list)


@dataclass
class ScannedFile:
    bucket: str
    kind: VersionKind
    filename: str
    filepath: Path
    date: Optional[str]
    slug: str


class MigrationService:
    def __init__(self, config: ResumateConfig):
        self.config = config
        self.legacy_dirs = config.legacy_dirs()
        self.migrations_dir = config.migrations_dir

    def has_legacy_structure(self) -> bool:
        return any(storage.dir_exists(p) for p in self.legacy_dirs.values())

    # -- planning ------------------------------------------------------------

    def preview(self) -> MigrationPlan:
        """Plan the migration without touching the filesystem."""
        if not self.has_legacy_structure():
            raise NotFoundError(
                "No old structure found to migrate",
                hint="This project already uses the experience-based structure.",
            )
        scanned = self._scan()
        groups, conflicts, unmapped = self._group(scanned)
        mappings = self._create_mappings(groups)
        return MigrationPlan(
            experiences=mappings,
            conflicts=conflicts,
            unmapped_files=unmapped,
            summary=PlanSummary(
                files_total=len(scanned),
                experiences_total=len(mappings),
                conflicts_count=len(conflicts),
            ),
        )

    def _scan(self) -> List[ScannedFile]:
        files: List[ScannedFile] = []
        for bucket, kind in LEGACY_BUCKETS:
            directory = self.legacy_dirs[bucket]
            for filename in storage.list_files(directory, ".md"):
                stem = filename[: -len(".md")]
                date = extract_date_from_filename(filename)
                remainder = strip_date_prefix(stem) if date else stem
                files.append(ScannedFile(
                    bucket=bucket,
                    kind=VersionKind(kind),
                    filename=filename,
                    filepath=directory / filename,
                    date=date,
                    slug=generate_slug(remainder),
                ))
        LOG.debug("scanned %d legacy file(s)", len(files))
        return files

    @staticmethod
    def _group(
        files: List[ScannedFile],
    ) -> Tuple[Dict[str, Dict[VersionKind, ScannedFile]], List[MigrationConflict], List[str]]:
        groups: Dict[str, Dict[VersionKind, ScannedFile]] = {}
        conflicts: List[MigrationConflict] = []
        unmapped: List[str] = []
        for f in files:
            if not f.date:
                unmapped.append(str(f.filepath))
                continue
            if parse_iso_date(f.date) is None:
                conflicts.append(MigrationConflict(
                    type="invalid-date",
                    files=[str(f.filepath)],
                    message=f"Skipped {f.filename}: {f.date} is not a valid calendar date",
                ))
                continue
            key = f"{f.date}-{f.slug}" if f.slug else f.date
            slots = groups.setdefault(key, {})
            if f.kind in slots:
                conflicts.append(MigrationConflict(
                    type="duplicate-date",
                    files=[str(slots[f.kind].filepath), str(f.filepath)],
                    message=f"Multiple {f.kind.value} files found for {key}",
                ))
            else:
                slots[f.kind] = f
        return groups, conflicts, unmapped

    @staticmethod
    def _fix_dir_name(key: str) -> str:
        valid, _ = storage.validate_experience_dir_name(key)
        if valid:
            return key
        date = extract_date_from_filename(key)
        if date:
            slug = generate_slug(strip_date_prefix(key)) or UNNAMED_SLUG
            fixed = f"{date}-{slug}"
            if storage.validate_experience_dir_name(fixed)[0]:
                return fixed
            return f"{date}-{UNNAMED_SLUG}"
        return f"{key}-{UNNAMED_SLUG}"

    def _create_mappings(self, groups: Dict[str, Dict[VersionKind, ScannedFile]]) -> List[MigrationExperienceMapping]:
        mappings = []
        for key, slots in groups.items():
            mappings.append(MigrationExperienceMapping(
                experience_dir=self._fix_dir_name(key),
                source_files=SourceFiles(**{k.value: str(f.filepath) for k, f in slots.items()}),
            ))
        return mappings

    # -- execution -----------------------------------------------------------

    def migrate(self, dry_run: bool = False, backup_dir: Optional[Path] = None) -> MigrationResult:
        migration_id = _dt.datetime.now().strftime(MIGRATION_ID_FORMAT)
        backup = Path(backup_dir) if backup_dir else self.config.backup_root / migration_id
        manifest = MigrationManifest(
            migration_id=migration_id,
            started_at=_now(),
            config=MigrationSettings(root_dir=str(self.config.root_dir), backup_dir=str(backup), dry_run=dry_run),
        )
        errors: List[MigrationError] = []

        try:
            manifest.phase = MigrationPhase.SCANNING
            scanned = self._scan()
            manifest.progress.files_scanned = manifest.progress.files_total = len(scanned)

            manifest.phase = MigrationPhase.GROUPING
            groups, conflicts, unmapped = self._group(scanned)
            mappings = self._create_mappings(groups)
            manifest.experiences = mappings
            manifest.progress.experiences_total = len(mappings)

            if dry_run:
                return MigrationResult(
                    success=True,
                    migration_id=migration_id,
                    experiences_created=len(mappings),
                    conflicts=conflicts,
                    unmapped_files=unmapped,
                )

            manifest.phase = MigrationPhase.VALIDATING
            self._save(manifest)

            manifest.phase = MigrationPhase.CONVERTING
            storage.ensure_dir(self.config.experiences_dir)
            self._convert_all(manifest, mappings, errors)

            manifest.phase = MigrationPhase.VERIFYING
            self._save(manifest)
            for mapping in mappings:
                if mapping.status is not MappingStatus.COMPLETED:
                    continue
                try:
                    self._verify(mapping)
                except IntegrityError as exc:
                    errors.append(MigrationError(
                        phase=MigrationPhase.VERIFYING.value,
                        filepath=mapping.experience_dir,
                        message=exc.message,
                    ))

            manifest.phase = MigrationPhase.CLEANUP
            self._save(manifest)
            self._backup(backup)

            manifest.phase = MigrationPhase.COMPLETED
            manifest.completed_at = _now()
            manifest.errors = errors
            self._save(manifest)
            LOG.info("migration %s completed: %d experience(s)", migration_id,
                     manifest.progress.experiences_created)
            return MigrationResult(
                success=not errors,
                migration_id=migration_id,
                experiences_created=manifest.progress.experiences_created,
                errors=errors,
                conflicts=conflicts,
                unmapped_files=unmapped,
            )
        except Exception as exc:
            failed_in = manifest.phase.value
            manifest.phase = MigrationPhase.FAILED
            errors.append(MigrationError(phase=failed_in, message=str(exc)))
            manifest.errors = errors
            if not dry_run:
                self._save(manifest)
            raise

    def resume(self, migration_id: str) -> MigrationResult:
        """Retry pending/failed mappings of an earlier run; completed ones are left alone."""
        manifest = self._load(migration_id)
        errors = list(manifest.errors)
        manifest.phase = MigrationPhase.CONVERTING
        pending = [m for m in manifest.experiences if m.status in (MappingStatus.PENDING, MappingStatus.FAILED)]
        storage.ensure_dir(self.config.experiences_dir)
        self._convert_all(manifest, pending, errors)

        manifest.phase = MigrationPhase.COMPLETED
        manifest.completed_at = _now()
        manifest.errors = errors
        self._save(manifest)
        return MigrationResult(
            success=all(m.status is MappingStatus.COMPLETED for m in manifest.experiences),
            migration_id=migration_id,
            experiences_created=manifest.progress.experiences_created,
            errors=errors,
        )

    def rollback(self, migration_id: str) -> None:
        """Remove converted experience dirs and restore legacy buckets from backup."""
        manifest = self._load(migration_id)
        for mapping in manifest.experiences:
            if mapping.status is MappingStatus.COMPLETED:
                storage.remove_tree(self.config.experiences_dir / mapping.experience_dir)

        backup = Path(manifest.config.backup_dir)
        if storage.dir_exists(backup):
            for bucket, target in self.legacy_dirs.items():
                source = backup / bucket
                if storage.dir_exists(source):
                    storage.copy_tree(source, target)

        manifest.phase = MigrationPhase.FAILED
        self._save(manifest)
        LOG.info("rolled back migration %s", migration_id)

    def cleanup(self, migration_id: str) -> List[Path]:
        """Delete the legacy buckets; only allowed after a completed migration."""
        manifest = self._load(migration_id)
        if manifest.phase is not MigrationPhase.COMPLETED:
            raise ValidationError(
                f"Migration {migration_id} is not completed (phase: {manifest.phase.value})",
                hint=f"Run 'resumate migrate --resume {migration_id}' or roll it back first.",
            )
        removed = []
        for path in self.legacy_dirs.values():
            if storage.dir_exists(path):
                storage.remove_tree(path)
                removed.append(path)
        return removed

    def list_ids(self) -> List[str]:
        return [name[: -len(".json")] for name in storage.list_files(self.migrations_dir, ".json")]

    def latest_completed_id(self) -> Optional[str]:
        for migration_id in reversed(self.list_ids()):
            if self._load(migration_id).phase is MigrationPhase.COMPLETED:
                return migration_id
        return None

    # -- helpers -------------------------------------------------------------

    def _convert_all(
        self,
        manifest: MigrationManifest,
        mappings: List[MigrationExperienceMapping],
        errors: List[MigrationError],
    ) -> None:
        for mapping in mappings:
            mapping.status = MappingStatus.IN_PROGRESS
            try:
                self._convert(mapping)
            except OSError as exc:
                mapping.status = MappingStatus.FAILED
                mapping.error = str(exc)
                errors.append(MigrationError(
                    phase=MigrationPhase.CONVERTING.value,
                    filepath=mapping.experience_dir,
                    message=str(exc),
                ))
                LOG.warning("failed to convert %s: %s", mapping.experience_dir, exc)
            else:
                mapping.status = MappingStatus.COMPLETED
                mapping.error = None
                manifest.progress.experiences_created += 1
            self._save(manifest)

    def _convert(self, mapping: MigrationExperienceMapping) -> None:
        target = storage.ensure_dir(self.config.experiences_dir / mapping.experience_dir)
        checksums: Dict[str, str] = {}
        for kind, source in mapping.source_files.items():
            content = storage.read_bytes(source)
            storage.write_bytes(target / kind.filename, content)
            checksums[kind.value] = storage.md5_hex(content)
        mapping.checksums = checksums

    def _verify(self, mapping: MigrationExperienceMapping) -> None:
        target = self.config.experiences_dir / mapping.experience_dir
        for version, expected in (mapping.checksums or {}).items():
            path = target / f"{version}.md"
            if not storage.file_exists(path) or storage.md5_hex(storage.read_bytes(path)) != expected:
                raise IntegrityError(VERIFY_FAILED)

    def _backup(self, backup: Path) -> None:
        storage.ensure_dir(backup)
        for bucket, path in self.legacy_dirs.items():
            if storage.dir_exists(path):
                storage.copy_tree(path, backup / bucket)

    def _manifest_path(self, migration_id: str) -> Path:
        return self.migrations_dir / f"{migration_id}.json"

    def _save(self, manifest: MigrationManifest) -> None:
        storage.write_text(self._manifest_path(manifest.migration_id), manifest.to_json())

    def _load(self, migration_id: str) -> MigrationManifest:
        path = self._manifest_path(migration_id)
        if not storage.file_exists(path):
            known = self.list_ids()
            hint = ("Known migrations:\n" + "\n".join(f"  - {i}" for i in known)) if known else None
            raise NotFoundError(f"Migration not found: {migration_id}", hint=hint)
        try:
            return MigrationManifest.from_dict(json.loads(storage.read_text(path)))
        except (ValueError, KeyError) as exc:
            raise ParseError(f"Unreadable migration manifest: {exc}", source=str(path)) from exc
