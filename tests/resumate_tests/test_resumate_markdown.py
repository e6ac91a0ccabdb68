"""Tests for the frontmatter codec and Q&A section helpers."""
from __future__ import annotations

import datetime as _dt
import unittest

from resumate.errors import ParseError
from resumate.markdown import (
    ANSWER_PLACEHOLDER,
    QA_HEADER,
    Metadata,
    build_initial_qa_section,
    extract_qa_section,
    extract_title,
    format_qa_section,
    join_qa_section,
    parse_markdown,
    parse_qa_pairs,
    stringify_markdown,
)
from resumate.models import QAPair


class TestParseMarkdown(unittest.TestCase):
    def test_frontmatter_and_body(self):
        doc = parse_markdown("---\ntitle: Payment API\ndate: '2024-06-15'\n---\n\n# Payment API\n")
        self.assertEqual(doc.metadata.get_text("title"), "Payment API")
        self.assertEqual(doc.metadata.get_text("date"), "2024-06-15")
        self.assertEqual(doc.body, "\n# Payment API\n")

    def test_no_frontmatter(self):
        doc = parse_markdown("# Just a body\n")
        self.assertEqual(len(doc.metadata), 0)
        self.assertEqual(doc.body, "# Just a body\n")

    def test_malformed_frontmatter_raises(self):
        with self.assertRaises(ParseError) as ctx:
            parse_markdown("---\ntitle: [oops\n---\nbody\n", source="draft.md")
        self.assertIn("Malformed frontmatter", ctx.exception.message)
        self.assertIn("draft.md", ctx.exception.message)

    def test_non_mapping_frontmatter_raises(self):
        with self.assertRaises(ParseError):
            parse_markdown("---\n- a\n- b\n---\nbody\n")

    def test_empty_frontmatter_is_empty_mapping(self):
        doc = parse_markdown("---\n---\nbody\n")
        self.assertEqual(doc.metadata.to_dict(), {})
        self.assertEqual(doc.body, "body\n")

    def test_unquoted_date_becomes_text(self):
        doc = parse_markdown("---\ndate: 2024-06-15\n---\n")
        self.assertIsInstance(doc.metadata["date"], _dt.date)
        self.assertEqual(doc.metadata.get_text("date"), "2024-06-15")


class TestMetadata(unittest.TestCase):
    def test_typed_accessors(self):
        meta = Metadata({"title": "x", "tags": ["a", "b"], "count": 3, "empty": "", "nested": {"k": 1}})
        self.assertEqual(meta.get_list("tags"), ["a", "b"])
        self.assertEqual(meta.get_list("title"), ["x"])
        self.assertEqual(meta.get_list("missing"), [])
        self.assertEqual(meta.get_text("count"), "3")
        self.assertEqual(meta.get_text("empty", "fallback"), "fallback")
        self.assertFalse(meta.has_value("empty"))
        self.assertTrue(meta.has_value("title"))
        self.assertEqual(meta.get_mapping("nested"), {"k": 1})
        self.assertEqual(meta.get_mapping("title"), {})


class TestStringify(unittest.TestCase):
    def test_empty_metadata_emits_body_only(self):
        self.assertEqual(stringify_markdown("# Title"), "# Title\n")

    def test_reparse_preserves_fields(self):
        text = stringify_markdown("\n# 제목\n", {"title": "제목", "date": "2024-06-15", "company": ""})
        self.assertTrue(text.startswith("---\ntitle: 제목\n"))
        doc = parse_markdown(text)
        self.assertEqual(doc.metadata.to_dict(), {"title": "제목", "date": "2024-06-15", "company": ""})
        self.assertEqual(doc.body, "\n# 제목\n")


class TestExtractTitle(unittest.TestCase):
    def test_first_heading(self):
        self.assertEqual(extract_title("intro\n# Real Title\nmore"), "Real Title")

    def test_falls_back_to_first_line(self):
        line = "x" * 80
        self.assertEqual(extract_title(f"\n{line}\nsecond"), "x" * 50)

    def test_empty_body(self):
        self.assertEqual(extract_title(""), "")


class TestQASection(unittest.TestCase):
    BODY = (
        "# Title\n\nDid things.\n\n---\n\n"
        f"{QA_HEADER}\n\n"
        "### Q: When?\n**A**: 2024\n\n"
        f"### Q: What?\n**A**: {ANSWER_PLACEHOLDER}\n"
    )

    def test_extract_splits_at_separator(self):
        qa = extract_qa_section(self.BODY)
        self.assertEqual(qa.original_content, "# Title\n\nDid things.")
        self.assertTrue(qa.qa_section.startswith(QA_HEADER))

    def test_separator_closest_to_header_wins(self):
        body = "# Title\n\nfirst part\n\n---\n\nsecond part\n\n---\n\n" + QA_HEADER + "\n"
        qa = extract_qa_section(body)
        self.assertIn("second part", qa.original_content)

    def test_no_section(self):
        self.assertIsNone(extract_qa_section("# Title\n\nNothing yet\n"))

    def test_header_without_separator(self):
        self.assertIsNone(extract_qa_section(f"{QA_HEADER}\n### Q: x\n"))

    def test_parse_pairs_treats_placeholder_as_unanswered(self):
        pairs = parse_qa_pairs(extract_qa_section(self.BODY).qa_section)
        self.assertEqual(pairs, [QAPair("When?", "2024"), QAPair("What?", None)])
        self.assertTrue(pairs[0].answered)
        self.assertFalse(pairs[1].answered)

    def test_multiline_answer(self):
        pairs = parse_qa_pairs("### Q: Results?\n**A**: - one\n- two\n")
        self.assertEqual(pairs[0].answer, "- one\n- two")

    def test_format_appends_next_question(self):
        text = format_qa_section([QAPair("When?", "2024")], next_question="What?")
        self.assertEqual(
            text,
            f"{QA_HEADER}\n\n### Q: When?\n**A**: 2024\n\n### Q: What?\n**A**: {ANSWER_PLACEHOLDER}\n",
        )

    def test_initial_section_and_join(self):
        initial = build_initial_qa_section("When?")
        self.assertTrue(initial.startswith("\n---\n\n" + QA_HEADER))
        joined = join_qa_section("# Title\n\nbody\n\n", format_qa_section([QAPair("When?")]))
        self.assertEqual(extract_qa_section(joined).original_content, "# Title\n\nbody")
        self.assertEqual(parse_qa_pairs(extract_qa_section(joined).qa_section), [QAPair("When?")])


if __name__ == "__main__":
    unittest.main()
