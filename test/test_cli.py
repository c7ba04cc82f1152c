"""End-to-end CLI tests with a stubbed mail source."""

import csv
import json
import sys
import unittest
from pathlib import Path
from unittest import mock

from click.testing import CliRunner

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from OutlookSearch.cli.ui import cli
from OutlookSearch.core.errors import RemoteFetchError
from OutlookSearch.core.models import Category, Message, SearchResult
from OutlookSearch.core.query import FieldQuery
from OutlookSearch.services.search import MailSearchService

_CONFIG_YAML = """
log:
  level: INFO
  to_file: false
  dir: log

graph:
  base_url: https://graph.microsoft.com/v1.0
  access_token_env: TEST_GRAPH_TOKEN
  timeout: 30

search:
  page_size: 25
  include_body: false
  max_pages: 4
  max_items_scanned: 100

output:
  base_dir: output
  formats: [console, json]
  csv_filename: messages.csv

queries:
  - NAME: invoices
    QUERY:
      subject: invoice
  - NAME: work
    QUERY:
      categories: work
"""


class _StubSource:
    name = "stub"

    def __init__(self, results=None, *, error: Exception | None = None) -> None:
        self.results = list(results or [])
        self.error = error
        self.calls = []
        self.closed = False

    def search(self, query, options=None):
        self.calls.append((query, options))
        if self.error is not None:
            raise self.error
        if self.results:
            return self.results.pop(0)
        return SearchResult(items=[])

    def get_message(self, message_id, *, include_body=True):
        self.calls.append((message_id, include_body))
        return Message(id=message_id, subject="Single")

    def list_categories(self):
        return [Category(id="1", display_name="Work", color="preset0")]

    def close(self) -> None:
        self.closed = True


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        self.runner = CliRunner()

    def _invoke(self, source: _StubSource, args: list[str], config_yaml: str = _CONFIG_YAML):
        with mock.patch(
            "OutlookSearch.cli.runner.create_search_service",
            return_value=MailSearchService(source=source),
        ):
            Path("config.yml").write_text(config_yaml, encoding="utf-8")
            return self.runner.invoke(cli, ["--config", "config.yml", *args])

    def test_search_inline_query_writes_json(self) -> None:
        source = _StubSource([SearchResult(items=[Message(id="m1", subject="Hello")], next_page_token="v2:next")])
        with self.runner.isolated_filesystem():
            result = self._invoke(
                source,
                ["search", "--query", '{"from": "alice@example.com"}', "--page-size", "5", "--include-body"],
            )
            self.assertEqual(result.exit_code, 0, result.output)
            files = list(Path("output/json").glob("search_*.json"))
            self.assertEqual(len(files), 1)
            data = json.loads(files[0].read_text(encoding="utf-8"))

        query, options = source.calls[0]
        self.assertEqual(query, FieldQuery(from_="alice@example.com"))
        self.assertEqual(options.page_size, 5)
        self.assertTrue(options.include_body)
        self.assertEqual(options.max_pages, 4)
        self.assertEqual(options.max_items_scanned, 100)
        self.assertEqual(data[0]["messages"][0]["id"], "m1")
        self.assertEqual(data[0]["next_page_token"], "v2:next")
        self.assertTrue(source.closed)

    def test_search_runs_configured_queries_in_order(self) -> None:
        source = _StubSource()
        with self.runner.isolated_filesystem():
            result = self._invoke(source, ["search"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual([call[0] for call in source.calls], [FieldQuery(subject="invoice"), FieldQuery(categories="work")])

    def test_search_by_name_with_page_token(self) -> None:
        source = _StubSource()
        with self.runner.isolated_filesystem():
            result = self._invoke(source, ["search", "--name", "work", "--page-token", "tok"])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(len(source.calls), 1)
        self.assertEqual(source.calls[0][1].page_token, "tok")

    def test_page_token_needs_single_query(self) -> None:
        with self.runner.isolated_filesystem():
            result = self._invoke(_StubSource(), ["search", "--page-token", "tok"])
        self.assertEqual(result.exit_code, 2)

    def test_invalid_inline_query(self) -> None:
        for raw in ("not json", '{"sender": "x"}', '{"$and": []}'):
            with self.runner.isolated_filesystem():
                result = self._invoke(_StubSource(), ["search", "--query", raw])
            self.assertEqual(result.exit_code, 2, raw)

    def test_unknown_query_name(self) -> None:
        with self.runner.isolated_filesystem():
            result = self._invoke(_StubSource(), ["search", "--name", "missing"])
        self.assertEqual(result.exit_code, 2)

    def test_invalid_config(self) -> None:
        with self.runner.isolated_filesystem():
            result = self._invoke(_StubSource(), ["categories"], _CONFIG_YAML.replace("page_size: 25", "page_size: 0"))
        self.assertEqual(result.exit_code, 1)
        self.assertIn("search.page_size", result.output)

    def test_remote_failure_aborts(self) -> None:
        source = _StubSource(error=RemoteFetchError("Graph API error 401: denied", status_code=401))
        with self.runner.isolated_filesystem():
            result = self._invoke(source, ["search", "--name", "work"])
        self.assertEqual(result.exit_code, 1)
        self.assertTrue(source.closed)

    def test_get_and_categories(self) -> None:
        source = _StubSource()
        with self.runner.isolated_filesystem():
            result = self._invoke(source, ["get", "AAMk1", "--no-body"])
            self.assertEqual(result.exit_code, 0, result.output)
            result = self._invoke(source, ["categories"])
            self.assertEqual(result.exit_code, 0, result.output)
        self.assertEqual(source.calls, [("AAMk1", False)])

    def test_export_writes_csv(self) -> None:
        source = _StubSource(
            [
                SearchResult(items=[Message(id="m1", subject="One")], next_page_token="t1", stop_reason="filled"),
                SearchResult(items=[Message(id="m2", subject="Two")], next_page_token=None, stop_reason="exhausted"),
            ]
        )
        with self.runner.isolated_filesystem():
            result = self._invoke(source, ["export", "--name", "invoices", "--page-size", "1", "--filename", "out.csv"])
            self.assertEqual(result.exit_code, 0, result.output)
            with open("output/csv/out.csv", encoding="utf-8", newline="") as f:
                rows = list(csv.reader(f))

        self.assertEqual([row[0] for row in rows[1:]], ["m1", "m2"])
        self.assertTrue(all(options.include_body for _, options in source.calls))
        self.assertEqual(source.calls[0][0], FieldQuery(subject="invoice"))

    def test_failed_export_leaves_no_file(self) -> None:
        class _FailingSecondCall(_StubSource):
            def search(self, query, options=None):
                if self.calls:
                    raise RemoteFetchError("Graph request failed: timeout")
                return super().search(query, options)

        source = _FailingSecondCall([SearchResult(items=[Message(id="m1")], next_page_token="t1", stop_reason="filled")])
        with self.runner.isolated_filesystem():
            result = self._invoke(source, ["export"])
            self.assertEqual(result.exit_code, 1)
            self.assertFalse(Path("output/csv/messages.csv").exists())

    def test_export_max_items_bound(self) -> None:
        with self.runner.isolated_filesystem():
            result = self._invoke(_StubSource(), ["export", "--max-items", "50001"])
        self.assertEqual(result.exit_code, 2)

    def test_missing_token_aborts(self) -> None:
        with self.runner.isolated_filesystem():
            Path("config.yml").write_text(_CONFIG_YAML, encoding="utf-8")
            result = self.runner.invoke(
                cli,
                ["--config", "config.yml", "categories"],
                env={"TEST_GRAPH_TOKEN": ""},
            )
        self.assertEqual(result.exit_code, 1)


if __name__ == "__main__":
    unittest.main()
