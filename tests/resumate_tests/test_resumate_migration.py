"""Tests for migrating the legacy drafts/in-progress/archive layout."""
from __future__ import annotations

import json
import unittest

from resumate.errors import NotFoundError, ValidationError
from resumate.migration import (
    MappingStatus,
    MigrationManifest,
    MigrationPhase,
    MigrationService,
)
from resumate.repository import ExperienceRepository
from tests.fixtures import temp_project, write_legacy

LEGACY = {
    "drafts/2024-06-15-payment-api.md": "# Payment API draft\n",
    "in-progress/2024-06-15-payment-api.md": "# Payment API refined\n",
    "archive/2024-06-15-payment-api.md": "# Payment API archived\n",
    "drafts/2024-01-10.md": "# dateless slug\n",
    "drafts/notes.md": "# no date\n",
}


class TestPreview(unittest.TestCase):
    def test_no_legacy_structure(self):
        with temp_project() as cfg:
            service = MigrationService(cfg)
            self.assertFalse(service.has_legacy_structure())
            with self.assertRaises(NotFoundError) as ctx:
                service.preview()
            self.assertEqual(ctx.exception.message, "No old structure found to migrate")

    def test_plan_groups_versions_by_date_and_slug(self):
        with temp_project() as cfg:
            write_legacy(cfg, LEGACY)
            plan = MigrationService(cfg).preview()
            dirs = sorted(m.experience_dir for m in plan.experiences)
            self.assertEqual(dirs, ["2024-01-10-unnamed", "2024-06-15-payment-api"])
            payment = next(m for m in plan.experiences if m.experience_dir == "2024-06-15-payment-api")
            self.assertEqual([k.value for k, _ in payment.source_files.items()], ["draft", "refined", "archived"])
            self.assertEqual(plan.summary.files_total, 5)
            self.assertEqual(plan.summary.experiences_total, 2)
            self.assertEqual(len(plan.unmapped_files), 1)
            self.assertTrue(plan.unmapped_files[0].endswith("notes.md"))
            self.assertEqual(plan.conflicts, [])
            self.assertFalse(cfg.migrations_dir.exists())

    def test_duplicate_versions_are_conflicts(self):
        with temp_project() as cfg:
            write_legacy(cfg, {"drafts/2024-06-15-x.md": "a", "drafts/2024-06-15_x.md": "b"})
            plan = MigrationService(cfg).preview()
            self.assertEqual(len(plan.conflicts), 1)
            conflict = plan.conflicts[0]
            self.assertEqual(conflict.type, "duplicate-date")
            self.assertEqual(conflict.message, "Multiple draft files found for 2024-06-15-x")
            self.assertEqual(len(conflict.files), 2)

    def test_impossible_dates_are_not_migrated(self):
        with temp_project() as cfg:
            write_legacy(cfg, {"drafts/2024-02-30-x.md": "a", "drafts/2024-02-29-y.md": "b"})
            service = MigrationService(cfg)
            plan = service.preview()
            self.assertEqual([m.experience_dir for m in plan.experiences], ["2024-02-29-y"])
            self.assertEqual(len(plan.conflicts), 1)
            self.assertEqual(plan.conflicts[0].type, "invalid-date")
            self.assertEqual(plan.conflicts[0].message, "Skipped 2024-02-30-x.md: 2024-02-30 is not a valid calendar date")

            result = service.migrate()
            self.assertTrue(result.success)
            self.assertEqual(result.experiences_created, 1)
            self.assertFalse((cfg.experiences_dir / "2024-02-30-x").exists())
            names = [e.name for e in ExperienceRepository(cfg).list()]
            self.assertEqual(names, ["2024-02-29-y"])

    def test_slug_is_normalized(self):
        with temp_project() as cfg:
            write_legacy(cfg, {"drafts/2024-06-15-My Notes.md": "a"})
            plan = MigrationService(cfg).preview()
            self.assertEqual(plan.experiences[0].experience_dir, "2024-06-15-my-notes")


class TestMigrate(unittest.TestCase):
    def test_dry_run_writes_nothing(self):
        with temp_project() as cfg:
            write_legacy(cfg, LEGACY)
            result = MigrationService(cfg).migrate(dry_run=True)
            self.assertTrue(result.success)
            self.assertEqual(result.experiences_created, 2)
            self.assertEqual(list(cfg.experiences_dir.iterdir()), [])
            self.assertFalse(cfg.migrations_dir.exists())
            self.assertFalse(cfg.backup_root.exists())

    def test_migrate_copies_files_and_records_manifest(self):
        with temp_project() as cfg:
            write_legacy(cfg, LEGACY)
            service = MigrationService(cfg)
            result = service.migrate()
            self.assertTrue(result.success)
            self.assertEqual(result.experiences_created, 2)
            self.assertTrue(result.migration_id.startswith("migration-"))

            target = cfg.experiences_dir / "2024-06-15-payment-api"
            self.assertEqual((target / "draft.md").read_text(encoding="utf-8"), "# Payment API draft\n")
            self.assertEqual((target / "refined.md").read_text(encoding="utf-8"), "# Payment API refined\n")
            self.assertEqual((target / "archived.md").read_text(encoding="utf-8"), "# Payment API archived\n")

            raw = json.loads((cfg.migrations_dir / f"{result.migration_id}.json").read_text(encoding="utf-8"))
            self.assertEqual(raw["phase"], "completed")
            self.assertEqual(raw["progress"]["experiencesCreated"], 2)
            mappings = {m["experienceDir"]: m for m in raw["experiences"]}
            self.assertEqual(set(mappings["2024-06-15-payment-api"]["checksums"]), {"draft", "refined", "archived"})
            self.assertEqual(set(mappings["2024-01-10-unnamed"]["checksums"]), {"draft"})
            self.assertEqual(mappings["2024-01-10-unnamed"]["sourceFiles"]["refined"], None)
            self.assertTrue(raw["completedAt"])

            backup = cfg.backup_root / result.migration_id
            self.assertTrue((backup / "drafts" / "notes.md").is_file())
            # Legacy buckets stay until an explicit cleanup.
            self.assertTrue((cfg.root_dir / "drafts").is_dir())
            self.assertEqual(service.list_ids(), [result.migration_id])
            self.assertEqual(service.latest_completed_id(), result.migration_id)

    def test_manifest_reloads_from_wire_format(self):
        with temp_project() as cfg:
            write_legacy(cfg, LEGACY)
            result = MigrationService(cfg).migrate()
            raw = json.loads((cfg.migrations_dir / f"{result.migration_id}.json").read_text(encoding="utf-8"))
            manifest = MigrationManifest.from_dict(raw)
            self.assertEqual(manifest.phase, MigrationPhase.COMPLETED)
            self.assertTrue(all(m.status is MappingStatus.COMPLETED for m in manifest.experiences))
            self.assertEqual(json.loads(manifest.to_json()), raw)

    def test_conversion_failure_then_resume(self):
        with temp_project() as cfg:
            write_legacy(cfg, {"drafts/2024-06-15-x.md": "x", "drafts/2024-06-16-y.md": "y"})
            blocker = cfg.experiences_dir / "2024-06-15-x"
            blocker.write_text("not a directory", encoding="utf-8")

            service = MigrationService(cfg)
            result = service.migrate()
            self.assertFalse(result.success)
            self.assertEqual(result.experiences_created, 1)
            self.assertEqual(len(result.errors), 1)
            self.assertEqual(result.errors[0].phase, "converting")
            self.assertEqual(result.errors[0].filepath, "2024-06-15-x")

            raw = json.loads((cfg.migrations_dir / f"{result.migration_id}.json").read_text(encoding="utf-8"))
            statuses = {m["experienceDir"]: m["status"] for m in raw["experiences"]}
            self.assertEqual(statuses, {"2024-06-15-x": "failed", "2024-06-16-y": "completed"})

            blocker.unlink()
            resumed = service.resume(result.migration_id)
            self.assertTrue(resumed.success)
            self.assertEqual(resumed.experiences_created, 2)
            self.assertEqual((cfg.experiences_dir / "2024-06-15-x" / "draft.md").read_text(encoding="utf-8"), "x")

    def test_rollback_removes_experiences_and_restores_buckets(self):
        with temp_project() as cfg:
            write_legacy(cfg, LEGACY)
            service = MigrationService(cfg)
            result = service.migrate()
            service.cleanup(result.migration_id)
            self.assertFalse((cfg.root_dir / "drafts").exists())

            service.rollback(result.migration_id)
            self.assertFalse((cfg.experiences_dir / "2024-06-15-payment-api").exists())
            self.assertEqual(
                (cfg.root_dir / "archive" / "2024-06-15-payment-api.md").read_text(encoding="utf-8"),
                "# Payment API archived\n",
            )
            raw = json.loads((cfg.migrations_dir / f"{result.migration_id}.json").read_text(encoding="utf-8"))
            self.assertEqual(raw["phase"], "failed")
            self.assertIsNone(service.latest_completed_id())

    def test_cleanup_requires_completed_migration(self):
        with temp_project() as cfg:
            write_legacy(cfg, LEGACY)
            service = MigrationService(cfg)
            result = service.migrate()
            service.rollback(result.migration_id)
            with self.assertRaises(ValidationError) as ctx:
                service.cleanup(result.migration_id)
            self.assertEqual(
                ctx.exception.message,
                f"Migration {result.migration_id} is not completed (phase: failed)",
            )

    def test_cleanup_removes_legacy_dirs(self):
        with temp_project() as cfg:
            write_legacy(cfg, LEGACY)
            service = MigrationService(cfg)
            result = service.migrate()
            removed = service.cleanup(result.migration_id)
            self.assertEqual(sorted(p.name for p in removed), ["archive", "drafts", "in-progress"])
            self.assertFalse(service.has_legacy_structure())

    def test_unknown_migration_id(self):
        with temp_project() as cfg:
            with self.assertRaises(NotFoundError) as ctx:
                MigrationService(cfg).resume("migration-20000101-000000")
            self.assertEqual(ctx.exception.message, "Migration not found: migration-20000101-000000")


if __name__ == "__main__":
    unittest.main()
