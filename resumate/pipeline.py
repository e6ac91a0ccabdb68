"""Resumate command pipelines built on shared core scaffolding.

Each command builds a request dataclass, a ``SafeProcessor`` does the
work against the repository/locator/migration services, and a producer
renders the result. Payloads meant for the external agent are printed as
JSON on stdout; everything else is human text.
"""
from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.cli_output import OutputWriter
from core.pipeline import BaseProducer, SafeProcessor

from . import storage
from .archive_analyzer import analyze_refined, calculate_completeness
from .config import ResumateConfig, create_config, save_settings
from .draft_analyzer import analyze_draft
from .errors import AlreadyExistsError, MissingPrerequisiteError, NotFoundError, ValidationError
from .extraction import extract_archive_data, render_fallback_archive
from .locator import ExperienceLocator
from .markdown import extract_qa_section, parse_markdown
from .migration import MigrationPlan, MigrationResult, MigrationService
from .models import (
    ArchivePromptOutput,
    CompletenessAssessment,
    DynamicQuestion,
    Experience,
    ExperienceContent,
    PromptOutput,
    VersionKind,
)
from .prompts import (
    build_archive_prompt_output,
    build_prompt_output,
    render_archived_document,
    validate_dynamic_questions,
    validate_structured_archive_content,
)
from .refinement import RefinementStep, advance_refinement, append_dynamic_questions
from .repository import ExperienceRepository
from .slugs import generate_slug


def require_initialized(config: ResumateConfig) -> None:
    if not config.is_initialized():
        raise MissingPrerequisiteError(
            f"Not a Resumate project: {config.root_dir}",
            hint="Run 'resumate init <projectname>' first, or pass --root.",
        )


def _locate(config: ResumateConfig, query: str) -> Experience:
    return ExperienceLocator(config).find_one(query)


# -- init -----------------------------------------------------------------------

@dataclass
class InitRequest:
    parent: Path
    projectname: str


@dataclass
class InitResult:
    config: ResumateConfig
    projectname: str


class InitProcessor(SafeProcessor[InitRequest, InitResult]):
    def _process_safe(self, payload: InitRequest) -> InitResult:
        name = payload.projectname.strip()
        if not name or name in (".", "..") or "/" in name:
            raise ValidationError(
                f"Invalid project name: {payload.projectname!r}",
                hint="Use a plain directory name, e.g. 'resumate init my-career'.",
            )
        cfg = create_config(payload.parent / name)
        if cfg.is_initialized():
            raise AlreadyExistsError(
                f".resumate/ already exists in {cfg.root_dir}",
                hint="Resumate is already initialized in this directory.",
            )
        storage.ensure_dir(cfg.resumate_dir)
        storage.ensure_dir(cfg.experiences_dir)
        cfg.settings["projectname"] = name
        save_settings(cfg)
        return InitResult(config=cfg, projectname=name)


class InitProducer(BaseProducer):
    def __init__(self, out: OutputWriter):
        self.out = out

    def _produce_success(self, payload: InitResult, diagnostics: Optional[Dict[str, Any]]) -> None:
        name = payload.projectname
        self.out.print(f"Resumate initialized successfully in {name}/")
        self.out.print("")
        self.out.print("Directory structure:")
        self.out.print(f"  {name}/")
        self.out.print("    .resumate/      metadata and settings")
        self.out.print("    experiences/    one directory per experience")
        self.out.print("")
        self.out.print("Next steps:")
        self.out.print(f"  1. cd {name}")
        self.out.print('  2. resumate add --title "What you worked on"')


# -- add ------------------------------------------------------------------------

@dataclass
class AddRequest:
    config: ResumateConfig
    title: str
    slug: Optional[str] = None
    date: Optional[_dt.date] = None
    company: str = ""
    role: str = ""
    description: Optional[str] = None


class AddProcessor(SafeProcessor[AddRequest, Experience]):
    def _process_safe(self, payload: AddRequest) -> Experience:
        require_initialized(payload.config)
        title = (payload.title or "").strip()
        if not title:
            raise ValidationError("Title must not be empty", hint='Pass --title "..."')
        slug = payload.slug or generate_slug(title)
        if not slug:
            raise ValidationError(
                f'Could not derive a slug from title "{title}"',
                hint="Pass --slug with lowercase letters, digits and hyphens (e.g. --slug api-redesign).",
            )
        content = ExperienceContent(
            title=title,
            company=payload.company or "",
            role=payload.role or "",
            description=payload.description or None,
        )
        return ExperienceRepository(payload.config).create(payload.date or _dt.date.today(), slug, content)


class AddProducer(BaseProducer):
    def __init__(self, out: OutputWriter):
        self.out = out

    def _produce_success(self, payload: Experience, diagnostics: Optional[Dict[str, Any]]) -> None:
        self.out.print(f"Created experience: experiences/{payload.name}/draft.md")
        self.out.print("")
        self.out.print("Next steps:")
        self.out.print(f"  1. Open experiences/{payload.name}/draft.md and write your experience")
        self.out.print(f"  2. Refine it: resumate refine {payload.name}")


# -- list -----------------------------------------------------------------------

@dataclass
class ListRequest:
    config: ResumateConfig
    emit_json: bool = False


@dataclass
class ListResult:
    experiences: List[Experience]
    emit_json: bool = False


class ListProcessor(SafeProcessor[ListRequest, ListResult]):
    def _process_safe(self, payload: ListRequest) -> ListResult:
        require_initialized(payload.config)
        return ListResult(ExperienceRepository(payload.config).list(), payload.emit_json)


class ListProducer(BaseProducer):
    def __init__(self, out: OutputWriter):
        self.out = out

    def _produce_success(self, payload: ListResult, diagnostics: Optional[Dict[str, Any]]) -> None:
        if payload.emit_json:
            self.out.print_json([
                {"name": e.name, "date": e.date, "slug": e.slug, "versions": e.versions}
                for e in payload.experiences
            ])
            return
        if not payload.experiences:
            self.out.print('No experiences yet. Create one with: resumate add --title "..."')
            return
        rows = [
            {
                "name": e.name,
                "draft": "x" if e.versions.draft else "",
                "refined": "x" if e.versions.refined else "",
                "archived": "x" if e.versions.archived else "",
            }
            for e in payload.experiences
        ]
        self.out.print_table(rows, headers=["name", "draft", "refined", "archived"])


# -- refine ---------------------------------------------------------------------

REFINE_STEP = "step"
REFINE_PROMPT = "prompt"
REFINE_QUESTIONS = "questions"
REFINE_COMPLETE = "complete"


@dataclass
class RefineRequest:
    config: ResumateConfig
    query: str
    mode: str = REFINE_STEP
    deep: bool = False
    questions_json: Optional[str] = None


@dataclass
class RefineResult:
    experience: Experience
    mode: str
    step: Optional[RefinementStep] = None
    prompt: Optional[PromptOutput] = None
    questions: List[DynamicQuestion] = field(default_factory=list)
    refined_path: Optional[Path] = None


def _split_draft(text: str, source: Optional[str] = None):
    """Frontmatter mapping and the draft text before any Q&A section."""
    parsed = parse_markdown(text, source=source)
    qa = extract_qa_section(parsed.body)
    return parsed.metadata.to_dict(), (qa.original_content if qa else parsed.body.strip())


class RefineProcessor(SafeProcessor[RefineRequest, RefineResult]):
    def _process_safe(self, payload: RefineRequest) -> RefineResult:
        cfg = payload.config
        require_initialized(cfg)
        repo = ExperienceRepository(cfg)
        exp = _locate(cfg, payload.query)
        if not exp.versions.draft:
            raise NotFoundError(
                f"No draft found for experience: {exp.name}",
                hint=f"Expected: experiences/{exp.name}/draft.md",
            )
        if exp.versions.refined:
            raise AlreadyExistsError(
                f"Experience already has a refined version: {exp.name}",
                hint=(
                    "Options:\n"
                    "  - Edit refined.md directly in your editor\n"
                    "  - Delete refined.md and run 'resumate refine' again"
                ),
            )
        draft = repo.get_version(exp.name, VersionKind.DRAFT)
        source = f"experiences/{exp.name}/{VersionKind.DRAFT.filename}"

        if payload.mode == REFINE_PROMPT:
            frontmatter, content = _split_draft(draft, source)
            analysis = analyze_draft(content, frontmatter)
            prompt = build_prompt_output(analysis, exp.name, deep=payload.deep)
            return RefineResult(exp, REFINE_PROMPT, prompt=prompt)

        if payload.mode == REFINE_QUESTIONS:
            questions = validate_dynamic_questions(payload.questions_json or "")
            if questions:
                repo.update_draft(exp.name, append_dynamic_questions(draft, questions, source))
            return RefineResult(exp, REFINE_QUESTIONS, questions=questions)

        if payload.mode == REFINE_COMPLETE:
            path = repo.add_refined(exp.name, draft)
            return RefineResult(exp, REFINE_COMPLETE, refined_path=path)

        step = advance_refinement(draft, source)
        if step.ready:
            path = repo.add_refined(exp.name, step.content)
            return RefineResult(exp, REFINE_STEP, step=step, refined_path=path)
        repo.update_draft(exp.name, step.content)
        return RefineResult(exp, REFINE_STEP, step=step)


class RefineProducer(BaseProducer):
    def __init__(self, out: OutputWriter):
        self.out = out

    def _produce_success(self, payload: RefineResult, diagnostics: Optional[Dict[str, Any]]) -> None:
        name = payload.experience.name
        if payload.prompt is not None:
            self.out.print_json(payload.prompt)
            return
        if payload.mode == REFINE_QUESTIONS:
            self.out.print(f"Added {len(payload.questions)} question(s) to experiences/{name}/draft.md")
            for q in payload.questions:
                self.out.print(f"  - [{q.field}] {q.question}")
            if payload.questions:
                self.out.print("")
                self.out.print(f"After adding your answers, run: resumate refine {name}")
            return
        if payload.refined_path is not None:
            self.out.print(f"Created refined version: experiences/{name}/refined.md")
            self.out.print("")
            self.out.print(f"  Preserved draft: experiences/{name}/draft.md")
            self.out.print("")
            self.out.print("  Next steps:")
            self.out.print("    - Review the refined version")
            self.out.print(f"    - Run 'resumate archive {name}' to create the final structured version")
            return
        step = payload.step
        if step is None or step.question is None:
            return
        self.out.print(f"Found experience: {name}")
        self.out.print("")
        if step.status == "started":
            self.out.print("Let's refine this experience through a few questions.")
        else:
            self.out.print("Continuing refinement...")
        self.out.print("")
        self.out.print(f"Q: {step.question.korean}")
        self.out.print(f"   ({step.question.english})")
        self.out.print("")
        self.out.print(f"After adding your answer, run: resumate refine {name}")


# -- archive --------------------------------------------------------------------

ARCHIVE_FALLBACK = "fallback"
ARCHIVE_AGENT = "agent"
ARCHIVE_PROMPT = "prompt"


@dataclass
class ArchiveRequest:
    config: ResumateConfig
    query: str
    prompt: bool = False
    content_json: Optional[str] = None


@dataclass
class ArchiveResult:
    experience: Experience
    mode: str
    prompt: Optional[ArchivePromptOutput] = None
    archived_path: Optional[Path] = None
    completeness: Optional[CompletenessAssessment] = None
    fields: Dict[str, str] = field(default_factory=dict)


class ArchiveProcessor(SafeProcessor[ArchiveRequest, ArchiveResult]):
    def _process_safe(self, payload: ArchiveRequest) -> ArchiveResult:
        cfg = payload.config
        require_initialized(cfg)
        repo = ExperienceRepository(cfg)
        exp = _locate(cfg, payload.query)
        if not exp.versions.refined:
            raise MissingPrerequisiteError(
                f"No refined version found for experience: {exp.name}",
                hint=f"The archive command requires a refined version. Run 'resumate refine {exp.name}' first.",
            )
        if exp.versions.archived:
            raise AlreadyExistsError(
                f"Experience already has an archived version: {exp.name}",
                hint=(
                    "Options:\n"
                    "  - Edit archived.md directly\n"
                    "  - Delete archived.md and run 'resumate archive' again"
                ),
            )
        refined = repo.get_version(exp.name, VersionKind.REFINED)
        analysis = analyze_refined(refined, exp.date_str)

        if payload.prompt:
            return ArchiveResult(exp, ARCHIVE_PROMPT, prompt=build_archive_prompt_output(analysis, exp.name))

        if payload.content_json is not None:
            content = validate_structured_archive_content(payload.content_json)
            document = render_archived_document(content, exp.date_str, analysis.original_content)
            path = repo.add_archived(exp.name, document)
            fields = {"Title": content.title}
            if content.duration and content.duration.interpretation:
                fields["Duration"] = content.duration.interpretation
            if content.project:
                fields["Project"] = content.project
            if content.technologies:
                fields["Technologies"] = f"{len(content.technologies)} items"
            if content.achievements:
                fields["Achievements"] = f"{len(content.achievements)} items"
            return ArchiveResult(exp, ARCHIVE_AGENT, archived_path=path,
                                 completeness=content.completeness, fields=fields)

        data = extract_archive_data(analysis.original_content, analysis.qa_pairs, exp.date_str)
        completeness = calculate_completeness(data.completeness_input())
        path = repo.add_archived(exp.name, render_fallback_archive(data, analysis.original_content, completeness))
        fields = {"Title": data.title}
        if data.duration:
            fields["Duration"] = f"{data.duration['start']} to {data.duration['end']}"
        if data.project:
            fields["Project"] = data.project
        if data.technologies:
            fields["Technologies"] = f"{len(data.technologies)} items"
        if data.achievements:
            fields["Achievements"] = f"{len(data.achievements)} items"
        if data.learnings:
            fields["Learnings"] = "Documented"
        if data.reflections:
            fields["Reflections"] = "Documented"
        return ArchiveResult(exp, ARCHIVE_FALLBACK, archived_path=path, completeness=completeness, fields=fields)


class ArchiveProducer(BaseProducer):
    def __init__(self, out: OutputWriter):
        self.out = out

    def _produce_success(self, payload: ArchiveResult, diagnostics: Optional[Dict[str, Any]]) -> None:
        if payload.prompt is not None:
            self.out.print_json(payload.prompt)
            return
        name = payload.experience.name
        self.out.print(f"Created archived version: experiences/{name}/archived.md")
        self.out.print("")
        self.out.print("  Extracted fields:")
        for label, value in payload.fields.items():
            self.out.print(f"    {label}: {value}")
        if payload.completeness is not None:
            self.out.print("")
            self.out.print(f"  Completeness: {payload.completeness.score}/100")
            for suggestion in payload.completeness.suggestions:
                self.out.print(f"    - {suggestion}")


# -- migrate --------------------------------------------------------------------

MIGRATE_RUN = "migrate"
MIGRATE_DRY_RUN = "dry-run"
MIGRATE_CLEANUP = "cleanup"
MIGRATE_RESUME = "resume"
MIGRATE_ROLLBACK = "rollback"


@dataclass
class MigrateRequest:
    config: ResumateConfig
    action: str = MIGRATE_RUN
    migration_id: Optional[str] = None
    backup_dir: Optional[Path] = None


@dataclass
class MigrateOutcome:
    action: str
    plan: Optional[MigrationPlan] = None
    result: Optional[MigrationResult] = None
    migration_id: Optional[str] = None
    removed: List[Path] = field(default_factory=list)


class MigrateProcessor(SafeProcessor[MigrateRequest, MigrateOutcome]):
    def _process_safe(self, payload: MigrateRequest) -> MigrateOutcome:
        require_initialized(payload.config)
        service = MigrationService(payload.config)
        action = payload.action

        if action == MIGRATE_CLEANUP:
            migration_id = payload.migration_id or service.latest_completed_id()
            if not migration_id:
                raise NotFoundError(
                    "No completed migration found to clean up",
                    hint="Run 'resumate migrate' first.",
                )
            removed = service.cleanup(migration_id)
            return MigrateOutcome(action, migration_id=migration_id, removed=removed)

        if action == MIGRATE_ROLLBACK:
            service.rollback(payload.migration_id or "")
            return MigrateOutcome(action, migration_id=payload.migration_id)

        if action == MIGRATE_RESUME:
            result = service.resume(payload.migration_id or "")
            return MigrateOutcome(action, result=result, migration_id=result.migration_id)

        plan = service.preview()
        if action == MIGRATE_DRY_RUN:
            result = service.migrate(dry_run=True)
            return MigrateOutcome(action, plan=plan, result=result, migration_id=result.migration_id)
        result = service.migrate(backup_dir=payload.backup_dir)
        return MigrateOutcome(action, plan=plan, result=result, migration_id=result.migration_id)


class MigrateProducer(BaseProducer):
    def __init__(self, out: OutputWriter):
        self.out = out

    def _produce_success(self, payload: MigrateOutcome, diagnostics: Optional[Dict[str, Any]]) -> None:
        out = self.out
        if payload.action == MIGRATE_CLEANUP:
            out.print(f"Cleaned up legacy directories for {payload.migration_id}:")
            out.print_list([p.name + "/" for p in payload.removed], indent=2)
            return
        if payload.action == MIGRATE_ROLLBACK:
            out.print(f"Rolled back {payload.migration_id}; legacy directories restored from backup.")
            return

        if payload.plan is not None:
            summary = payload.plan.summary
            out.print(f"Found {summary.files_total} file(s) -> {summary.experiences_total} experience(s)")
            for mapping in payload.plan.experiences:
                versions = ", ".join(kind.value for kind, _ in mapping.source_files.items())
                out.print(f"  {mapping.experience_dir}  ({versions})")

        result = payload.result
        if result is None:
            return
        for conflict in result.conflicts:
            out.print_warning(conflict.message)
        for path in result.unmapped_files:
            out.print_warning(f"Skipped (no date prefix): {path}")

        if payload.action == MIGRATE_DRY_RUN:
            out.print("")
            out.print(f"Dry run: {result.experiences_created} experience(s) would be created. Nothing was written.")
            return

        out.print("")
        out.print(f"Migration {result.migration_id}: {result.experiences_created} experience(s) created")
        for err in result.errors:
            where = f" [{err.filepath}]" if err.filepath else ""
            out.print_warning(f"{err.phase}{where}: {err.message}")
        out.print("")
        if result.success:
            out.print("Next steps:")
            out.print("  - Review experiences/")
            out.print(f"  - Remove the legacy directories: resumate migrate --cleanup {result.migration_id}")
        else:
            out.print(f"To retry: resumate migrate --resume {result.migration_id}")
            out.print(f"To roll back: resumate migrate --rollback {result.migration_id}")
