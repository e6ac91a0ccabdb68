"""Tests for rule-based archive extraction."""
from __future__ import annotations

import unittest

from resumate.archive_analyzer import analyze_refined, calculate_completeness
from resumate.extraction import (
    QA_FIELD_KEYWORDS,
    extract_archive_data,
    extract_field_from_qa,
    generate_tags,
    parse_date_flexible,
    parse_duration_from_text,
    parse_korean_date,
    parse_list,
    render_fallback_archive,
)
from resumate.markdown import parse_markdown
from resumate.models import QAPair
from tests.fixtures import refined_document


class TestDates(unittest.TestCase):
    def test_korean_date(self):
        self.assertEqual(parse_korean_date("2024년 3월 5일에 시작"), "2024-03-05")
        self.assertIsNone(parse_korean_date("3월 5일"))

    def test_flexible(self):
        self.assertEqual(parse_date_flexible(" 2024-03-05 "), "2024-03-05")
        self.assertEqual(parse_date_flexible("2024년 12월 1일"), "2024-12-01")
        self.assertEqual(parse_date_flexible("March 5, 2024"), "2024-03-05")
        self.assertEqual(parse_date_flexible("december 25 2023"), "2023-12-25")
        self.assertIsNone(parse_date_flexible("2024-02-30"))
        self.assertIsNone(parse_date_flexible("last spring"))

    def test_duration_ranges(self):
        self.assertEqual(
            parse_duration_from_text("2024년 3월 1일부터 2024년 6월 30일까지"),
            {"start": "2024-03-01", "end": "2024-06-30"},
        )
        self.assertEqual(
            parse_duration_from_text("2024-03-01 ~ 2024-06-30"),
            {"start": "2024-03-01", "end": "2024-06-30"},
        )
        self.assertEqual(
            parse_duration_from_text("March 1, 2024 to June 30, 2024"),
            {"start": "2024-03-01", "end": "2024-06-30"},
        )
        self.assertIsNone(parse_duration_from_text("about three months"))
        self.assertIsNone(parse_duration_from_text("2024-03-01 onwards"))


class TestLists(unittest.TestCase):
    def test_bullets_win(self):
        self.assertEqual(parse_list("intro\n- one\n* two\n"), ["one", "two"])

    def test_comma_separated(self):
        self.assertEqual(parse_list("React, Redis，Docker , "), ["React", "Redis", "Docker"])

    def test_tags_are_ordered_and_unique(self):
        self.assertEqual(
            generate_tags(["React", "Vue", "Redis", "Unknown", "postgresql"]),
            ["frontend", "database", "caching"],
        )


class TestExtraction(unittest.TestCase):
    def test_field_from_qa_skips_unanswered(self):
        pairs = [QAPair("어떤 기술을 썼나요?", None), QAPair("What tools did you use?", "Git")]
        self.assertEqual(extract_field_from_qa(pairs, QA_FIELD_KEYWORDS["technologies"]), "Git")
        self.assertIsNone(extract_field_from_qa(pairs, QA_FIELD_KEYWORDS["project"]))

    def test_extract_from_refined_document(self):
        analysis = analyze_refined(refined_document(), "2024-06-15")
        data = extract_archive_data(analysis.original_content, analysis.qa_pairs, "2024-06-15")
        self.assertEqual(data.title, "결제 시스템 개선")
        self.assertEqual(data.duration, {"start": "2024-03-01", "end": "2024-06-30"})
        self.assertEqual(data.technologies, ["React", "Redis", "Docker"])
        self.assertEqual(data.tags, ["frontend", "database", "caching", "devops"])
        self.assertEqual(data.achievements, ["응답 시간 50% 개선", "장애 건수 3배 감소"])
        self.assertEqual(data.project, "TechCorp 결제 플랫폼")
        self.assertEqual(data.learnings, "작은 단위로 배포하는 것의 중요성을 배웠습니다")
        self.assertTrue(data.reflections.startswith("뿌듯했고"))
        self.assertEqual(calculate_completeness(data.completeness_input()).score, 91)

    def test_extract_without_answers(self):
        data = extract_archive_data("# Only Title\n\ntext", [], "2024-01-01")
        self.assertEqual(data.title, "Only Title")
        self.assertIsNone(data.duration)
        self.assertEqual(data.technologies, [])
        self.assertEqual(data.tags, [])


class TestFallbackRender(unittest.TestCase):
    def test_render_with_completeness(self):
        analysis = analyze_refined(refined_document(), "2024-06-15")
        data = extract_archive_data(analysis.original_content, analysis.qa_pairs, "2024-06-15")
        completeness = calculate_completeness(data.completeness_input())
        doc = parse_markdown(render_fallback_archive(data, analysis.original_content, completeness))
        meta = doc.metadata.to_dict()
        self.assertEqual(list(meta), [
            "title", "date", "duration", "project", "technologies", "tags",
            "achievements", "learnings", "reflections", "completeness",
        ])
        self.assertEqual(meta["completeness"], {"score": 91, "suggestions": []})
        self.assertTrue(doc.body.startswith("\n# Detailed Context\n\n레거시 결제 API를 새 구조로 옮겼습니다.\n"))
        self.assertIn("## Achievements\n\n- 응답 시간 50% 개선\n- 장애 건수 3배 감소\n", doc.body)
        self.assertIn("## Key Learnings", doc.body)

    def test_render_minimal(self):
        data = extract_archive_data("plain notes", [], "2024-01-01")
        doc = parse_markdown(render_fallback_archive(data, "plain notes"))
        self.assertEqual(doc.metadata.to_dict(), {"title": "plain notes", "date": "2024-01-01"})
        self.assertEqual(doc.body, "\n# Detailed Context\n\nplain notes\n")


if __name__ == "__main__":
    unittest.main()
