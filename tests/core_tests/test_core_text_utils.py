"""Tests for core text and date helpers."""

import datetime as _dt
import unittest

from core.date_utils import MONTH_MAP, is_valid_iso_date, parse_iso_date, to_iso_str
from core.text_utils import normalize_unicode, slugify, truncate


class TestTextUtils(unittest.TestCase):
    def test_normalize_unicode(self):
        self.assertEqual(normalize_unicode("a–b c"), "a-b c")
        self.assertEqual(normalize_unicode(None), "")

    def test_slugify(self):
        self.assertEqual(slugify("Café Redesign 2.0"), "cafe-redesign-20")
        self.assertEqual(slugify("  Hello___World  "), "hello-world")
        self.assertEqual(slugify("레디스 캐시"), "")
        self.assertEqual(slugify("API — v2"), "api-v2")

    def test_truncate(self):
        self.assertEqual(truncate("abcdef", 3), "abc")
        self.assertEqual(truncate("ab", 3), "ab")


class TestDateUtils(unittest.TestCase):
    def test_parse_iso_date(self):
        self.assertEqual(parse_iso_date(" 2024-02-29 "), _dt.date(2024, 2, 29))
        self.assertIsNone(parse_iso_date("2023-02-29"))
        self.assertIsNone(parse_iso_date("2024-6-1"))
        self.assertFalse(is_valid_iso_date(""))

    def test_month_map_has_short_names(self):
        self.assertEqual(MONTH_MAP["march"], 3)
        self.assertEqual(MONTH_MAP["dec"], 12)

    def test_to_iso_str(self):
        self.assertEqual(to_iso_str(_dt.datetime(2024, 6, 15, 10, 30)), "2024-06-15")


if __name__ == "__main__":
    unittest.main()
