"""Tests for config override behavior with defaults."""

import sys
import tempfile
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from OutlookSearch.config import load_config, load_config_with_defaults, merge_config_dicts
from OutlookSearch.config.app import parse_yaml


_BASE_YAML = """
log:
  level: INFO
  to_file: false
  dir: log

graph:
  base_url: https://graph.microsoft.com/v1.0
  access_token_env: TEST_GRAPH_TOKEN
  timeout: 30

search:
  page_size: 50
  include_body: false
  max_pages: 20
  max_items_scanned: 2000

output:
  base_dir: output
  formats: [console]

queries:
  - NAME: base
    QUERY:
      categories: work
"""


class TestConfigOverride(unittest.TestCase):
    def test_override_merges_with_defaults(self) -> None:
        override_yaml = """
log:
  level: DEBUG

search:
  page_size: 10
  max_pages: null

queries:
  - NAME: override
    QUERY:
      $or:
        - from: alice@example.com
        - subject: invoice
"""
        with tempfile.TemporaryDirectory() as tmp:
            default_path = Path(tmp) / "default.yml"
            default_path.write_text(_BASE_YAML, encoding="utf-8")
            override_path = Path(tmp) / "override.yml"
            override_path.write_text(override_yaml, encoding="utf-8")

            cfg = load_config_with_defaults(override_path, default_path=default_path)

        self.assertEqual(cfg.runtime.level, "DEBUG")
        self.assertEqual(cfg.search.page_size, 10)
        self.assertIsNone(cfg.search.max_pages)
        self.assertEqual(cfg.search.max_items_scanned, 2000)
        self.assertEqual(cfg.output.formats, ("console",))
        self.assertEqual(len(cfg.search.queries), 1)
        self.assertEqual(cfg.search.queries[0].name, "override")

    def test_empty_override_uses_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            default_path = Path(tmp) / "default.yml"
            default_path.write_text(_BASE_YAML, encoding="utf-8")
            override_path = Path(tmp) / "override.yml"
            override_path.write_text("{}", encoding="utf-8")

            cfg = load_config_with_defaults(override_path, default_path=default_path)

        self.assertEqual(cfg.runtime.level, "INFO")
        self.assertEqual(cfg.search.page_size, 50)
        self.assertEqual(cfg.search.queries[0].name, "base")

    def test_load_config_without_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "config.yml"
            path.write_text(_BASE_YAML, encoding="utf-8")
            cfg = load_config(path)
        self.assertEqual(cfg.graph.access_token_env, "TEST_GRAPH_TOKEN")

    def test_shipped_default_config_is_valid(self) -> None:
        cfg = load_config(REPO_ROOT / "config" / "default.yml")
        self.assertEqual(cfg.graph.base_url, "https://graph.microsoft.com/v1.0")
        self.assertEqual(cfg.search.queries[0].name, "work-attachments")

    def test_merge_replaces_lists_and_scalars(self) -> None:
        merged = merge_config_dicts(
            {"output": {"formats": ["console"], "base_dir": "output"}, "queries": [1, 2]},
            {"output": {"formats": ["csv"]}, "queries": [3]},
        )
        self.assertEqual(merged, {"output": {"formats": ["csv"], "base_dir": "output"}, "queries": [3]})

    def test_non_mapping_root(self) -> None:
        self.assertEqual(parse_yaml(""), {})
        with self.assertRaisesRegex(ValueError, "mapping"):
            parse_yaml("- a\n- b\n")


if __name__ == "__main__":
    unittest.main()
