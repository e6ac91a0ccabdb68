"""Tests for experience lookup by date, slug keyword and free text."""
from __future__ import annotations

import unittest

from resumate.errors import AmbiguousMatchError, NotFoundError
from resumate.locator import ExperienceLocator, QueryType, parse_query
from tests.fixtures import make_experience, temp_project

NAMES = [
    "2024-06-15-react-dashboard",
    "2024-06-20-react-native-app",
    "2024-01-10-payment-api",
    "2023-05-01-blog",
]


class TestParseQuery(unittest.TestCase):
    def test_types(self):
        self.assertEqual(parse_query("2024-06-15").type, QueryType.EXACT_DATE)
        self.assertEqual(parse_query("2024-06").type, QueryType.PARTIAL_DATE)
        self.assertEqual(parse_query("2024").type, QueryType.PARTIAL_DATE)
        self.assertEqual(parse_query("react").type, QueryType.SLUG_KEYWORD)
        self.assertEqual(parse_query("React Dashboard").type, QueryType.TEXT_MATCH)

    def test_fields(self):
        q = parse_query("2024-06")
        self.assertEqual((q.year, q.month, q.day), (2024, 6, None))
        self.assertEqual(parse_query("React Dashboard").keywords, ["react", "dashboard"])
        self.assertEqual(parse_query("2024-06").match_reason, "Partial date match: 2024-06")


class TestLocator(unittest.TestCase):
    def setUp(self):
        self._ctx = temp_project()
        self.cfg = self._ctx.__enter__()
        for name in NAMES:
            make_experience(self.cfg, name, draft=f"# {name}\n")
        self.locator = ExperienceLocator(self.cfg)

    def tearDown(self):
        self._ctx.__exit__(None, None, None)

    def test_partial_dates(self):
        month = self.locator.search("2024-06")
        self.assertEqual(len(month), 2)
        self.assertTrue(all(r.score == 0.8 for r in month))
        self.assertEqual(len(self.locator.search("2024")), 3)

    def test_exact_date(self):
        results = self.locator.search("2024-01-10")
        self.assertEqual([r.experience.name for r in results], ["2024-01-10-payment-api"])
        self.assertEqual(results[0].score, 1.0)

    def test_keyword_in_name_only(self):
        results = self.locator.search("06-15")
        self.assertEqual([(r.experience.name, r.score) for r in results], [("2024-06-15-react-dashboard", 0.7)])

    def test_find_one_exact_name(self):
        self.assertEqual(self.locator.find_one("2023-05-01-blog").name, "2023-05-01-blog")

    def test_find_one_single_keyword_match(self):
        self.assertEqual(self.locator.find_one("payment").name, "2024-01-10-payment-api")

    def test_find_one_ambiguous(self):
        with self.assertRaises(AmbiguousMatchError) as ctx:
            self.locator.find_one("react")
        err = ctx.exception
        self.assertEqual(
            sorted(err.candidates),
            [("2024-06-15-react-dashboard", 0.9), ("2024-06-20-react-native-app", 0.9)],
        )
        self.assertIn('Multiple experiences match "react":', err.message)
        self.assertIn("(score: 0.9)", err.message)
        self.assertEqual(err.hint, "Please use a more specific query.")

    def test_find_one_text_with_decisive_lead(self):
        self.assertEqual(self.locator.find_one("React Dashboard").name, "2024-06-15-react-dashboard")

    def test_find_one_not_found_lists_available(self):
        with self.assertRaises(NotFoundError) as ctx:
            self.locator.find_one("kubernetes")
        self.assertEqual(ctx.exception.message, 'No experiences found matching "kubernetes"')
        self.assertIn("  - 2023-05-01-blog", ctx.exception.hint)

    def test_low_scores_are_dropped(self):
        self.assertEqual(self.locator.search("2022"), [])


if __name__ == "__main__":
    unittest.main()
