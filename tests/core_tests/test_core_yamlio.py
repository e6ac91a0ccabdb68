"""Tests for core/yamlio.py YAML helpers."""

import tempfile
import unittest
from pathlib import Path

from core.yamlio import YAMLError, dump_config, dump_yaml_text, load_config, load_yaml_text


class TestYamlText(unittest.TestCase):
    def test_blank_text_is_none(self):
        self.assertIsNone(load_yaml_text("  \n\t"))

    def test_malformed_raises_yaml_error(self):
        with self.assertRaises(YAMLError):
            load_yaml_text("title: [unclosed\n")

    def test_dump_keeps_insertion_order_and_unicode(self):
        text = dump_yaml_text({"title": "결제 시스템", "date": "2024-06-15", "company": "Acme"})
        self.assertLess(text.index("title"), text.index("date"))
        self.assertLess(text.index("date"), text.index("company"))
        self.assertIn("결제 시스템", text)

    def test_date_like_strings_stay_strings(self):
        loaded = load_yaml_text(dump_yaml_text({"date": "2024-06-15"}))
        self.assertEqual(loaded, {"date": "2024-06-15"})


class TestLoadConfig(unittest.TestCase):
    def test_load_valid_yaml(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            path.write_text("projectname: career\nbackup_dir: .backup\n", encoding="utf-8")
            self.assertEqual(load_config(path), {"projectname": "career", "backup_dir": ".backup"})

    def test_missing_or_empty_path_returns_empty(self):
        self.assertEqual(load_config("/nonexistent/path/config.yaml"), {})
        self.assertEqual(load_config(None), {})
        self.assertEqual(load_config(""), {})

    def test_non_mapping_root_returns_empty(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "list.yaml"
            path.write_text("- a\n- b\n", encoding="utf-8")
            self.assertEqual(load_config(path), {})


class TestDumpConfig(unittest.TestCase):
    def test_dump_creates_parent_directories(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / ".resumate" / "config.yaml"
            dump_config(path, {"log_commands": False})
            self.assertEqual(load_config(path), {"log_commands": False})

    def test_dump_overwrites_existing(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yaml"
            dump_config(path, {"original": True})
            dump_config(path, {"updated": True})
            self.assertEqual(load_config(path), {"updated": True})


if __name__ == "__main__":
    unittest.main()
