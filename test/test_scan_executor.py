"""Tests for the bounded client-filtered scan loop."""

import sys
import unittest
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT / "src"))

from OutlookSearch.core.models import Message, MessagePage
from OutlookSearch.sources.graph.fetch import ScanResult, scan_filtered_pages
from OutlookSearch.sources.graph.token import V2Token, decode_page_token


def _pages(*pages: list[str]) -> dict:
    out = {}
    for idx, ids in enumerate(pages):
        cursor = None if idx == 0 else f"p{idx}"
        next_cursor = f"p{idx + 1}" if idx + 1 < len(pages) else None
        out[cursor] = MessagePage(items=[Message(id=i) for i in ids], next_cursor=next_cursor)
    return out


class TestScanFilteredPages(unittest.TestCase):
    def _scan(self, pages: dict, accept: set, **kwargs) -> tuple[ScanResult, list]:
        requests = []

        def fetch_page(request):
            requests.append(request)
            return pages.get(request.cursor, MessagePage(items=[]))

        kwargs.setdefault("page_size", 2)
        kwargs.setdefault("mode", "search")
        result = scan_filtered_pages(fetch_page, predicate=lambda m: m.id in accept, search="q", **kwargs)
        return result, requests

    def test_requests_carry_search_and_body_flag(self) -> None:
        _, requests = self._scan(_pages(["a"]), set(), include_body=True)
        self.assertEqual(requests[0].search, "q")
        self.assertIsNone(requests[0].filter)
        self.assertTrue(requests[0].include_body)
        self.assertEqual(requests[0].page_size, 2)

    def test_offset_only_applies_to_first_page(self) -> None:
        result, requests = self._scan(_pages(["a", "b"], ["c", "d"]), {"a", "b", "c"}, start_offset=1)
        self.assertEqual([m.id for m in result.items], ["b", "c"])
        self.assertEqual(result.items_scanned, 2)
        self.assertEqual(decode_page_token(result.continuation_token()), V2Token(cursor="p1", offset=1, mode="search"))

    def test_offset_beyond_page_moves_to_next_page(self) -> None:
        result, requests = self._scan(_pages(["a"], ["b"]), {"a", "b"}, start_offset=5)
        self.assertEqual([m.id for m in result.items], ["b"])
        self.assertEqual([r.cursor for r in requests], [None, "p1"])
        self.assertEqual(result.stop_reason, "exhausted")

    def test_empty_page_is_exhausted(self) -> None:
        result, _ = self._scan({}, {"a"})
        self.assertEqual(result.stop_reason, "exhausted")
        self.assertEqual(result.pages_fetched, 1)
        self.assertIsNone(result.continuation_token())

    def test_item_cap_is_checked_before_fetch(self) -> None:
        result, requests = self._scan(_pages(["a", "b"], ["c"]), set(), max_items_scanned=2)
        self.assertEqual(result.stop_reason, "capped")
        self.assertEqual(len(requests), 1)
        self.assertIsNone(result.continuation_token())

    def test_zero_page_budget_fetches_nothing(self) -> None:
        result, requests = self._scan(_pages(["a"]), {"a"}, max_pages=0)
        self.assertEqual(result.stop_reason, "capped")
        self.assertEqual(requests, [])

    def test_filled_scan_without_next_cursor_has_no_token(self) -> None:
        result, _ = self._scan(_pages(["a", "b"]), {"a", "b"})
        self.assertEqual(result.stop_reason, "filled")
        self.assertIsNone(result.continuation_token())


if __name__ == "__main__":
    unittest.main()
