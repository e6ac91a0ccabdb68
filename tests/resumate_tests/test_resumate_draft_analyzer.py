"""Tests for draft field, language and experience-type detection."""
from __future__ import annotations

import unittest

from resumate.draft_analyzer import (
    BODY_CONFIDENCE,
    CORE_FIELDS,
    FRONTMATTER_CONFIDENCE,
    analyze_draft,
    detect_experience_type,
    detect_field,
    detect_language,
)
from resumate.models import ExperienceType, Language
from tests.fixtures import KOREAN_DRAFT

ENGLISH_DRAFT = (
    "Built a REST API with Python and Docker; reduced latency by 40% over 3 months. "
    "I learned a lot about caching. Proud of the team project."
)


class TestLanguage(unittest.TestCase):
    def test_korean(self):
        self.assertEqual(detect_language("이력서를 정리했습니다"), Language.KOREAN)

    def test_english(self):
        self.assertEqual(detect_language("Wrote the migration tool"), Language.ENGLISH)

    def test_no_letters_defaults_to_english(self):
        self.assertEqual(detect_language("2024-06-15 ~ 2024-07-01"), Language.ENGLISH)

    def test_mixed(self):
        self.assertEqual(detect_language("한국어 text abc"), Language.MIXED)


class TestExperienceType(unittest.TestCase):
    def test_leadership(self):
        text = "Managed a team of 8 engineers and mentored two leads"
        self.assertEqual(detect_experience_type(text), ExperienceType.LEADERSHIP)

    def test_technical(self):
        self.assertEqual(detect_experience_type(ENGLISH_DRAFT), ExperienceType.TECHNICAL_PROJECT)

    def test_single_hit_stays_general(self):
        self.assertEqual(detect_experience_type("Took one online course"), ExperienceType.GENERAL)


class TestDetectField(unittest.TestCase):
    def test_frontmatter_wins_over_body(self):
        detection = detect_field("project", "a project at work", {"company": "Acme"})
        self.assertEqual(detection.confidence, FRONTMATTER_CONFIDENCE)
        self.assertEqual(detection.evidence, "Acme")

    def test_frontmatter_list_evidence_is_json(self):
        detection = detect_field("technologies", "", {"technologies": ["Go", "Rust"]})
        self.assertEqual(detection.evidence, '["Go", "Rust"]')

    def test_empty_frontmatter_value_is_ignored(self):
        self.assertIsNone(detect_field("project", "nothing here", {"company": ""}))

    def test_body_match_carries_context(self):
        detection = detect_field("achievements", "Cut hosting costs by 50% this year", {})
        self.assertEqual(detection.confidence, BODY_CONFIDENCE)
        self.assertIn("50%", detection.evidence)


class TestAnalyzeDraft(unittest.TestCase):
    def test_korean_draft_missing_fields(self):
        analysis = analyze_draft(KOREAN_DRAFT)
        self.assertEqual(analysis.missing_fields, ["achievements", "learnings", "reflections"])
        self.assertEqual(analysis.present_field_names, ["duration", "project", "technologies"])
        self.assertEqual(analysis.language, Language.KOREAN)
        self.assertFalse(analysis.is_sufficient)

    def test_complete_english_draft_is_sufficient(self):
        analysis = analyze_draft(ENGLISH_DRAFT)
        self.assertEqual(analysis.missing_fields, [])
        self.assertEqual(analysis.present_field_names, CORE_FIELDS)
        self.assertTrue(analysis.is_sufficient)
        self.assertEqual(analysis.language, Language.ENGLISH)

    def test_frontmatter_is_copied(self):
        fm = {"company": "Acme"}
        analysis = analyze_draft("notes", fm)
        fm["company"] = "changed"
        self.assertEqual(analysis.frontmatter, {"company": "Acme"})
        self.assertIn("project", analysis.present_field_names)


if __name__ == "__main__":
    unittest.main()
