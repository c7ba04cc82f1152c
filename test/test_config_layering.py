"""Tests for layered config parsing and validation."""

import os
import sys
import unittest
from copy import deepcopy
from pathlib import Path
from unittest.mock import patch

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from OutlookSearch.config import parse_config_dict
from OutlookSearch.core.query import AndQuery, FieldQuery


def _base_raw_config() -> dict:
    return {
        "log": {"level": "info", "to_file": False, "dir": "log"},
        "graph": {
            "base_url": "https://graph.microsoft.com/v1.0",
            "access_token_env": "TEST_GRAPH_TOKEN",
            "timeout": 30,
        },
        "search": {
            "page_size": 25,
            "include_body": False,
            "max_pages": 20,
            "max_items_scanned": 2000,
        },
        "output": {
            "base_dir": "output",
            "formats": ["console", "JSON"],
        },
        "queries": [
            {"NAME": "q1", "QUERY": {"$and": [{"categories": "work"}, {"hasAttachment": True}]}},
        ],
    }


class TestConfigLayering(unittest.TestCase):
    def test_parse_success_nested_access(self) -> None:
        with patch.dict(os.environ, {"TEST_GRAPH_TOKEN": " tok "}, clear=False):
            cfg = parse_config_dict(_base_raw_config())
        self.assertEqual(cfg.runtime.level, "INFO")
        self.assertEqual(cfg.graph.access_token, "tok")
        self.assertEqual(cfg.graph.timeout, 30.0)
        self.assertEqual(cfg.search.page_size, 25)
        self.assertEqual(cfg.output.formats, ("console", "json"))
        self.assertEqual(cfg.output.csv_filename, "outlook-messages.csv")
        self.assertEqual(cfg.output.export_max_items, 10000)
        self.assertEqual(cfg.search.queries[0].name, "q1")
        self.assertEqual(
            cfg.search.queries[0].query,
            AndQuery((FieldQuery(categories="work"), FieldQuery(has_attachment=True))),
        )

    def test_missing_token_is_not_a_config_error(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            cfg = parse_config_dict(_base_raw_config())
        self.assertEqual(cfg.graph.access_token, "")

    def test_caps_may_be_null(self) -> None:
        raw = _base_raw_config()
        raw["search"]["max_pages"] = None
        del raw["search"]["max_items_scanned"]
        cfg = parse_config_dict(raw)
        self.assertIsNone(cfg.search.max_pages)
        self.assertIsNone(cfg.search.max_items_scanned)

    def test_queries_are_optional(self) -> None:
        raw = _base_raw_config()
        del raw["queries"]
        self.assertEqual(parse_config_dict(raw).search.queries, ())

    def test_output_unknown_format_error_contains_key(self) -> None:
        raw = _base_raw_config()
        raw["output"]["formats"] = ["console", "markdown"]
        with self.assertRaisesRegex(ValueError, "output\\.formats"):
            parse_config_dict(raw)

    def test_page_size_range_error_contains_key(self) -> None:
        for value in (0, 1001):
            raw = _base_raw_config()
            raw["search"]["page_size"] = value
            with self.assertRaisesRegex(ValueError, "search\\.page_size"):
                parse_config_dict(raw)

    def test_search_type_error_contains_key(self) -> None:
        raw = _base_raw_config()
        raw["search"]["max_pages"] = "20"
        with self.assertRaisesRegex(TypeError, "search\\.max_pages"):
            parse_config_dict(raw)

    def test_graph_timeout_and_url(self) -> None:
        raw = _base_raw_config()
        raw["graph"]["timeout"] = 0
        with self.assertRaisesRegex(ValueError, "graph\\.timeout"):
            parse_config_dict(raw)
        raw = _base_raw_config()
        raw["graph"]["base_url"] = "graph.microsoft.com"
        with self.assertRaisesRegex(ValueError, "graph\\.base_url"):
            parse_config_dict(raw)

    def test_missing_section(self) -> None:
        raw = _base_raw_config()
        del raw["graph"]
        with self.assertRaisesRegex(ValueError, "Missing required config: graph"):
            parse_config_dict(raw)

    def test_log_level_validation(self) -> None:
        raw = _base_raw_config()
        raw["log"]["level"] = "verbose"
        with self.assertRaisesRegex(ValueError, "log\\.level"):
            parse_config_dict(raw)

    def test_export_limit_bounds(self) -> None:
        raw = _base_raw_config()
        raw["output"]["export_max_items"] = 50001
        with self.assertRaisesRegex(ValueError, "output\\.export_max_items"):
            parse_config_dict(raw)

    def test_malformed_query_error_contains_path(self) -> None:
        raw = deepcopy(_base_raw_config())
        raw["queries"][0]["QUERY"] = {"$and": [{"sender": "x"}]}
        with self.assertRaisesRegex(ValueError, "queries\\[0\\]\\.QUERY\\.\\$and\\[0\\]"):
            parse_config_dict(raw)

    def test_query_entry_unknown_key(self) -> None:
        raw = deepcopy(_base_raw_config())
        raw["queries"][0]["OR"] = ["x"]
        with self.assertRaisesRegex(ValueError, "queries\\[0\\] has unknown keys"):
            parse_config_dict(raw)

    def test_duplicate_query_names(self) -> None:
        raw = deepcopy(_base_raw_config())
        raw["queries"].append({"NAME": "q1", "QUERY": {"isRead": False}})
        with self.assertRaisesRegex(ValueError, "unique NAME"):
            parse_config_dict(raw)


if __name__ == "__main__":
    unittest.main()
